"""Manual triggers for the scheduled payroll and attendance passes."""

from fastapi import APIRouter

from earnings_engine.api.dependencies import Scheduler
from earnings_engine.api.schemas import JobResultResponse

router = APIRouter(tags=["payroll"])


@router.post("/payroll/run-monthly", response_model=JobResultResponse)
async def run_monthly_payroll(scheduler: Scheduler) -> JobResultResponse:
    """Run the monthly payroll pass now."""
    result = await scheduler.run_monthly_payroll()
    return JobResultResponse.model_validate(result)


@router.post("/attendance/run-daily", response_model=JobResultResponse)
async def run_daily_attendance(scheduler: Scheduler) -> JobResultResponse:
    """Run yesterday's attendance rollup now."""
    result = await scheduler.run_daily_attendance()
    return JobResultResponse.model_validate(result)
