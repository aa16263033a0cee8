"""Type definitions for the earnings calculation pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class SalaryType(str, Enum):
    """How a user is paid."""

    HOURLY = "hourly"
    MONTHLY = "monthly"


class LeaveType(str, Enum):
    """Leave request types."""

    PAID = "paid"
    SICK = "sick"
    HALF_DAY = "half_day"
    UNPAID = "unpaid"


# Leave types that count toward pay
PAID_LEAVE_TYPES = (LeaveType.PAID, LeaveType.SICK, LeaveType.HALF_DAY)


class AttendanceStatus(str, Enum):
    """Daily attendance status values."""

    PRESENT = "present"
    PARTIAL = "partial"
    ABSENT = "absent"
    ON_LEAVE = "on_leave"
    HOLIDAY = "holiday"


WORKED_STATUSES = {AttendanceStatus.PRESENT, AttendanceStatus.PARTIAL}


class DiagnosticReason(str, Enum):
    """Why a breakdown came out at zero gross."""

    NO_PAY_RATE = "NO_PAY_RATE"
    NO_TIME_LOGS = "NO_TIME_LOGS"
    ZERO_HOURS = "ZERO_HOURS"


# ===== Inputs =====


@dataclass(frozen=True)
class PayProfile:
    """Per-user pay settings. None means "fall back to company/default"."""

    user_id: UUID
    company_id: UUID | None
    hourly_rate: Decimal | None
    salary_type: SalaryType
    monthly_salary: Decimal | None
    expected_hours_per_day: Decimal | None
    currency: str | None


@dataclass(frozen=True)
class CompanyPayPolicy:
    """Company-wide pay policy."""

    company_id: UUID
    overtime_multiplier: Decimal
    working_days_per_month: int | None
    default_expected_hours: Decimal | None


@dataclass(frozen=True)
class WorkInterval:
    """A tracked stretch of work. Open when end_time and duration are both unset."""

    user_id: UUID
    start_time: datetime
    end_time: datetime | None = None
    duration_seconds: int | None = None
    task_id: UUID | None = None

    @property
    def is_resolved(self) -> bool:
        return self.duration_seconds is not None

    @property
    def is_open(self) -> bool:
        return self.duration_seconds is None and self.end_time is None


@dataclass(frozen=True)
class LeaveRecord:
    """An approved leave request."""

    user_id: UUID
    leave_type: LeaveType
    start_date: datetime
    end_date: datetime


@dataclass(frozen=True)
class AttendanceRecord:
    """One user's attendance rollup for one day."""

    user_id: UUID
    work_date: date
    status: AttendanceStatus
    total_worked_seconds: int
    overtime_seconds: int


@dataclass(frozen=True)
class PenaltyRecord:
    """A time deduction in minutes."""

    user_id: UUID
    minutes: Decimal
    occurred_at: datetime


@dataclass(frozen=True)
class SubUnitRate:
    """Billing terms of one task sub-unit."""

    billing_type: str  # 'hourly' or 'fixed_price'
    hourly_rate: Decimal | None = None
    fixed_price: Decimal | None = None


@dataclass(frozen=True)
class TaskRate:
    """Billing terms of a task and its sub-units."""

    task_id: UUID
    hourly_rate: Decimal | None
    sub_units: tuple[SubUnitRate, ...] = ()


# ===== Output =====


@dataclass(frozen=True)
class EarningsDiagnostic:
    """Attached to zero-gross breakdowns for operator debugging."""

    reason: DiagnosticReason
    hourly_rate: Decimal
    monthly_salary: Decimal
    salary_type: SalaryType
    completed_interval_count: int
    open_interval_count: int


@dataclass(frozen=True)
class EarningsBreakdown:
    """Earnings of one user over one period.

    Money fields are rounded to cents and hour fields to 4 places. The
    market-value block is only set for monthly-salary users and never
    contributes to net_amount.
    """

    user_id: UUID
    period_start: datetime
    period_end: datetime

    # Work
    worked_hours: Decimal
    worked_amount: Decimal
    worked_days: int

    # Leave
    paid_leave_days: Decimal
    leave_hours: Decimal
    leave_pay: Decimal

    # Overtime
    overtime_hours: Decimal
    overtime_pay: Decimal
    overtime_rate: Decimal

    # Penalties
    penalty_hours: Decimal
    penalty_amount: Decimal

    # Pay profile as applied
    salary_type: SalaryType
    hourly_rate: Decimal
    monthly_salary: Decimal
    daily_rate: Decimal
    total_working_days: int
    expected_hours_per_day: Decimal

    # Totals
    gross_amount: Decimal
    net_amount: Decimal
    currency: str

    # Fixed-salary analytics
    virtual_hourly_rate: Decimal | None = None
    market_value: Decimal | None = None
    actual_cost: Decimal | None = None
    savings: Decimal | None = None

    diagnostic: EarningsDiagnostic | None = None
    has_open_intervals: bool = field(default=False, compare=False)

    @classmethod
    def zero(
        cls,
        user_id: UUID,
        period_start: datetime,
        period_end: datetime,
        overtime_rate: Decimal,
        expected_hours_per_day: Decimal,
        currency: str,
    ) -> EarningsBreakdown:
        """All-zero breakdown for a period that has not started yet."""
        zero = Decimal("0")
        return cls(
            user_id=user_id,
            period_start=period_start,
            period_end=period_end,
            worked_hours=zero,
            worked_amount=zero,
            worked_days=0,
            paid_leave_days=zero,
            leave_hours=zero,
            leave_pay=zero,
            overtime_hours=zero,
            overtime_pay=zero,
            overtime_rate=overtime_rate,
            penalty_hours=zero,
            penalty_amount=zero,
            salary_type=SalaryType.HOURLY,
            hourly_rate=zero,
            monthly_salary=zero,
            daily_rate=zero,
            total_working_days=0,
            expected_hours_per_day=expected_hours_per_day,
            gross_amount=zero,
            net_amount=zero,
            currency=currency,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict (enums as values) for serialization."""
        data = asdict(self)
        data["salary_type"] = self.salary_type.value
        if self.diagnostic is not None:
            data["diagnostic"]["reason"] = self.diagnostic.reason.value
            data["diagnostic"]["salary_type"] = self.diagnostic.salary_type.value
        return data
