"""Read access to time-tracking facts used by the earnings calculator."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from earnings_engine.calculators.period_math import to_decimal
from earnings_engine.calculators.types import (
    AttendanceRecord,
    AttendanceStatus,
    CompanyPayPolicy,
    LeaveRecord,
    LeaveType,
    PayProfile,
    PenaltyRecord,
    SalaryType,
    SubUnitRate,
    TaskRate,
    WorkInterval,
)
from earnings_engine.models import (
    Company,
    DailyAttendance,
    LeaveRequest,
    PenaltyEvent,
    Task,
    TimeLog,
    User,
)


class EarningsDataSource(Protocol):
    """Queries the calculator needs. Implementations must not write."""

    async def find_work_intervals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> Sequence[WorkInterval]:
        """Resolved and open intervals that started within [start, end]."""
        ...

    async def find_approved_leaves(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
        types: Iterable[LeaveType],
    ) -> Sequence[LeaveRecord]:
        """Approved leave of the given types overlapping [start, end]."""
        ...

    async def find_attendance(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> Sequence[AttendanceRecord]:
        ...

    async def find_penalty_events(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> Sequence[PenaltyRecord]:
        ...

    async def get_pay_profile(self, user_id: UUID) -> PayProfile | None:
        ...

    async def get_company_pay_policy(self, company_id: UUID) -> CompanyPayPolicy | None:
        ...

    async def find_tasks(self, task_ids: Iterable[UUID]) -> Sequence[TaskRate]:
        """Tasks with their sub-unit billing terms."""
        ...


class SqlAlchemyEarningsDataSource:
    """EarningsDataSource backed by the ORM models."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_work_intervals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[WorkInterval]:
        result = await self.session.execute(
            select(TimeLog)
            .where(
                TimeLog.user_id == user_id,
                TimeLog.start_time >= start,
                TimeLog.start_time <= end,
                or_(
                    TimeLog.duration_seconds.is_not(None),
                    and_(TimeLog.duration_seconds.is_(None), TimeLog.end_time.is_(None)),
                ),
            )
            .order_by(TimeLog.start_time)
        )
        return [
            WorkInterval(
                user_id=log.user_id,
                start_time=log.start_time,
                end_time=log.end_time,
                duration_seconds=log.duration_seconds,
                task_id=log.task_id,
            )
            for log in result.scalars().all()
        ]

    async def find_approved_leaves(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
        types: Iterable[LeaveType],
    ) -> list[LeaveRecord]:
        type_values = [LeaveType(t).value for t in types]
        result = await self.session.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status == "approved",
                LeaveRequest.leave_type.in_(type_values),
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
            )
            .order_by(LeaveRequest.start_date)
        )
        return [
            LeaveRecord(
                user_id=leave.user_id,
                leave_type=LeaveType(leave.leave_type),
                start_date=leave.start_date,
                end_date=leave.end_date,
            )
            for leave in result.scalars().all()
        ]

    async def find_attendance(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[AttendanceRecord]:
        result = await self.session.execute(
            select(DailyAttendance)
            .where(
                DailyAttendance.user_id == user_id,
                DailyAttendance.work_date >= start.date(),
                DailyAttendance.work_date <= end.date(),
            )
            .order_by(DailyAttendance.work_date)
        )
        return [
            AttendanceRecord(
                user_id=row.user_id,
                work_date=row.work_date,
                status=AttendanceStatus(row.status),
                total_worked_seconds=row.total_worked_seconds,
                overtime_seconds=row.overtime_seconds,
            )
            for row in result.scalars().all()
        ]

    async def find_penalty_events(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[PenaltyRecord]:
        result = await self.session.execute(
            select(PenaltyEvent).where(
                PenaltyEvent.user_id == user_id,
                PenaltyEvent.occurred_at >= start,
                PenaltyEvent.occurred_at <= end,
            )
        )
        return [
            PenaltyRecord(
                user_id=event.user_id,
                minutes=to_decimal(event.minutes),
                occurred_at=event.occurred_at,
            )
            for event in result.scalars().all()
        ]

    async def get_pay_profile(self, user_id: UUID) -> PayProfile | None:
        user = await self.session.get(User, user_id)
        if user is None:
            return None
        return PayProfile(
            user_id=user.user_id,
            company_id=user.company_id,
            hourly_rate=user.hourly_rate,
            salary_type=SalaryType(user.salary_type),
            monthly_salary=user.monthly_salary,
            expected_hours_per_day=user.expected_hours_per_day,
            currency=user.currency,
        )

    async def get_company_pay_policy(self, company_id: UUID) -> CompanyPayPolicy | None:
        company = await self.session.get(Company, company_id)
        if company is None:
            return None
        return CompanyPayPolicy(
            company_id=company.company_id,
            overtime_multiplier=to_decimal(company.overtime_rate),
            working_days_per_month=company.working_days_per_month,
            default_expected_hours=company.default_expected_hours,
        )

    async def find_tasks(self, task_ids: Iterable[UUID]) -> list[TaskRate]:
        ids = list(task_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(Task).where(Task.task_id.in_(ids)).options(selectinload(Task.sub_tasks))
        )
        return [
            TaskRate(
                task_id=task.task_id,
                hourly_rate=task.hourly_rate,
                sub_units=tuple(
                    SubUnitRate(
                        billing_type=sub.billing_type,
                        hourly_rate=sub.hourly_rate,
                        fixed_price=sub.fixed_price,
                    )
                    for sub in task.sub_tasks
                ),
            )
            for task in result.scalars().all()
        ]
