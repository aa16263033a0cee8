"""Earnings API endpoints."""

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from earnings_engine.api.dependencies import Cache, DbSession, Earnings, EventBus, PayPeriods
from earnings_engine.api.schemas import (
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    CompanyEarningsResponse,
    EarningsBreakdownResponse,
    EarningsEventRequest,
    EarningsEventResponse,
    EmployeeEarningsResponse,
    ErrorResponse,
)
from earnings_engine.calculators.period_math import round_money
from earnings_engine.clock import utcnow
from earnings_engine.events.types import (
    ActivityIngested,
    EarningsEvent,
    LeaveStatusChanged,
    TaskRateChanged,
)
from earnings_engine.services.queries import ATTENDANCE_ROLES, list_eligible_employees

router = APIRouter(prefix="/earnings", tags=["earnings"])


@router.get(
    "/current/{user_id}",
    response_model=EarningsBreakdownResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_current_earnings(
    earnings: Earnings,
    pay_periods: PayPeriods,
    user_id: Annotated[UUID, Path()],
) -> EarningsBreakdownResponse:
    """Earnings since the company's last paid period, up to now."""
    period_start = await pay_periods.get_current_period_start(user_id)
    breakdown = await earnings.calculate_earnings(user_id, period_start, utcnow())
    return EarningsBreakdownResponse.model_validate(breakdown)


@router.get(
    "/company/{company_id}",
    response_model=CompanyEarningsResponse,
)
async def get_company_earnings(
    db: DbSession,
    earnings: Earnings,
    pay_periods: PayPeriods,
    company_id: Annotated[UUID, Path()],
) -> CompanyEarningsResponse:
    """Current-period earnings of every employee in a company."""
    employees = await list_eligible_employees(db, company_id, roles=ATTENDANCE_ROLES)
    now = utcnow()

    items: list[EmployeeEarningsResponse] = []
    for employee in employees:
        period_start = await pay_periods.get_current_period_start(employee.user_id, now)
        breakdown = await earnings.calculate_earnings(employee.user_id, period_start, now)
        items.append(
            EmployeeEarningsResponse(
                user_id=employee.user_id,
                name=employee.name,
                email=employee.email,
                earnings=EarningsBreakdownResponse.model_validate(breakdown),
            )
        )

    total = round_money(sum((item.earnings.net_amount for item in items), Decimal("0")))
    return CompanyEarningsResponse(
        company_id=company_id,
        employees=items,
        total_net_amount=total,
    )


@router.post(
    "/cache/invalidate",
    response_model=CacheInvalidateResponse,
)
async def invalidate_cache(
    cache: Cache,
    payload: CacheInvalidateRequest,
) -> CacheInvalidateResponse:
    """Drop cached breakdowns for one user, or all users."""
    return CacheInvalidateResponse(removed=cache.invalidate(payload.user_id))


@router.post(
    "/events",
    response_model=EarningsEventResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={400: {"model": ErrorResponse}},
)
async def publish_event(
    bus: EventBus,
    payload: EarningsEventRequest,
) -> EarningsEventResponse:
    """Notify the engine of a leave, activity or task-rate change."""
    event = _to_event(payload)
    errors = bus.publish(event)
    return EarningsEventResponse(event_type=event.event_type, handler_errors=len(errors))


def _to_event(payload: EarningsEventRequest) -> EarningsEvent:
    if payload.type == "task_rate_changed":
        if payload.task_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="task_id is required for task_rate_changed",
            )
        return TaskRateChanged(task_id=payload.task_id)

    if payload.user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"user_id is required for {payload.type}",
        )
    if payload.type == "leave_status_changed":
        return LeaveStatusChanged(
            user_id=payload.user_id,
            leave_request_id=payload.leave_request_id,
            status=payload.status,
        )
    return ActivityIngested(user_id=payload.user_id)
