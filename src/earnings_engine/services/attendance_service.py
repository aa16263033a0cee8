"""Daily attendance rollup.

Materializes one DailyAttendance row per employee per day from that day's
time logs and leave. The rows feed overtime hours and worked days back into
the earnings calculator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from earnings_engine.calculators.period_math import (
    SECONDS_PER_HOUR,
    ZERO,
    daily_rate,
    round_money,
    to_decimal,
)
from earnings_engine.calculators.types import AttendanceStatus, LeaveType, SalaryType
from earnings_engine.clock import Clock, utcnow
from earnings_engine.config import Settings, get_settings
from earnings_engine.database import dialect_insert
from earnings_engine.models import Company, DailyAttendance, LeaveRequest, TimeLog, User
from earnings_engine.services.queries import ATTENDANCE_ROLES, list_eligible_employees

logger = logging.getLogger(__name__)

PRESENT_THRESHOLD = Decimal("0.5")


@dataclass
class DayTotals:
    """Resolved work for one user on one day."""

    worked_seconds: int
    tasks_summary: list[dict[str, Any]]


class AttendanceService:
    """Builds daily attendance rows for a company.

    Status per employee and day:
    - on_leave: an approved leave covers the day
    - present: worked at least half the expected seconds
    - partial: worked something less than that
    - holiday: nothing worked on a Saturday or Sunday
    - absent: nothing worked on a weekday
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.clock = clock

    async def generate_daily_attendance(
        self, company_id: UUID, day: date
    ) -> list[DailyAttendance]:
        """Upsert attendance for every employee/admin of a company on `day`."""
        company = await self.session.get(Company, company_id)
        company_expected = (
            to_decimal(company.default_expected_hours) if company is not None else ZERO
        ) or self.settings.default_expected_hours
        working_days = (
            company.working_days_per_month if company is not None else None
        ) or self.settings.default_working_days_per_month

        day_start = datetime.combine(day, time.min)
        day_end = datetime.combine(day, time.max)

        employees = await list_eligible_employees(
            self.session, company_id, roles=ATTENDANCE_ROLES
        )
        records: list[DailyAttendance] = []

        for employee in employees:
            expected_hours = to_decimal(employee.expected_hours_per_day) or company_expected
            expected_seconds = int(
                (expected_hours * SECONDS_PER_HOUR).to_integral_value()
            )

            totals = await self._day_totals(employee.user_id, day_start, day_end)
            leave = await self._leave_for_day(employee.user_id, day_start, day_end)
            status = self._classify(totals.worked_seconds, expected_seconds, leave, day)
            overtime_seconds = max(0, totals.worked_seconds - expected_seconds)
            earnings_today = self._earnings_today(
                employee, status, leave, totals.worked_seconds, working_days
            )

            record = await self._upsert(
                employee,
                company_id,
                day,
                status=status,
                total_worked_seconds=totals.worked_seconds,
                expected_seconds=expected_seconds,
                overtime_seconds=overtime_seconds,
                earnings_today=earnings_today,
                tasks_summary=totals.tasks_summary,
            )
            records.append(record)

        logger.info(
            "Generated attendance for %d employee(s) of company %s on %s",
            len(records),
            company_id,
            day.isoformat(),
        )
        return records

    async def _day_totals(
        self, user_id: UUID, day_start: datetime, day_end: datetime
    ) -> DayTotals:
        result = await self.session.execute(
            select(TimeLog)
            .options(selectinload(TimeLog.task))
            .where(
                TimeLog.user_id == user_id,
                TimeLog.start_time >= day_start,
                TimeLog.start_time <= day_end,
                TimeLog.duration_seconds.is_not(None),
            )
            .order_by(TimeLog.start_time)
        )
        logs = result.scalars().all()

        by_task: dict[str, dict[str, Any]] = {}
        total = 0
        for log in logs:
            seconds = log.duration_seconds or 0
            total += seconds
            key = str(log.task_id) if log.task_id is not None else "unknown"
            if key not in by_task:
                by_task[key] = {
                    "task_id": key,
                    "task_title": log.task.title if log.task is not None else "Unknown",
                    "seconds": 0,
                }
            by_task[key]["seconds"] += seconds

        return DayTotals(worked_seconds=total, tasks_summary=list(by_task.values()))

    async def _leave_for_day(
        self, user_id: UUID, day_start: datetime, day_end: datetime
    ) -> LeaveRequest | None:
        result = await self.session.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status == "approved",
                LeaveRequest.start_date <= day_end,
                LeaveRequest.end_date >= day_start,
            )
            .order_by(LeaveRequest.start_date)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _classify(
        worked_seconds: int,
        expected_seconds: int,
        leave: LeaveRequest | None,
        day: date,
    ) -> AttendanceStatus:
        if leave is not None:
            return AttendanceStatus.ON_LEAVE
        if worked_seconds >= expected_seconds * PRESENT_THRESHOLD:
            return AttendanceStatus.PRESENT
        if worked_seconds > 0:
            return AttendanceStatus.PARTIAL
        if day.weekday() >= 5:
            return AttendanceStatus.HOLIDAY
        return AttendanceStatus.ABSENT

    @staticmethod
    def _earnings_today(
        employee: User,
        status: AttendanceStatus,
        leave: LeaveRequest | None,
        worked_seconds: int,
        working_days: int,
    ) -> Decimal:
        monthly_salary = to_decimal(employee.monthly_salary)
        if employee.salary_type == SalaryType.MONTHLY.value and monthly_salary > 0:
            # One day's pay, rounded once
            day_rate = round_money(daily_rate(monthly_salary, working_days))
            if status in (AttendanceStatus.PRESENT, AttendanceStatus.PARTIAL):
                return day_rate
            if (
                status == AttendanceStatus.ON_LEAVE
                and leave is not None
                and leave.leave_type != LeaveType.UNPAID.value
            ):
                return day_rate
            return round_money(ZERO)

        hours = Decimal(worked_seconds) / SECONDS_PER_HOUR
        return round_money(hours * to_decimal(employee.hourly_rate))

    async def _upsert(
        self,
        employee: User,
        company_id: UUID,
        day: date,
        **values: Any,
    ) -> DailyAttendance:
        values["status"] = values["status"].value
        values["updated_at"] = self.clock()
        stmt = (
            dialect_insert(self.session, DailyAttendance)
            .values(
                daily_attendance_id=uuid4(),
                user_id=employee.user_id,
                company_id=company_id,
                work_date=day,
                **values,
            )
            .on_conflict_do_update(
                index_elements=["user_id", "work_date"],
                set_=values,
            )
        )
        await self.session.execute(stmt)

        result = await self.session.execute(
            select(DailyAttendance)
            .where(
                DailyAttendance.user_id == employee.user_id,
                DailyAttendance.work_date == day,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
