"""Earnings calculation engine."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from earnings_engine.calculators.data_source import EarningsDataSource
from earnings_engine.calculators.period_math import (
    MINUTES_PER_HOUR,
    SECONDS_PER_HOUR,
    ZERO,
    business_days,
    daily_rate,
    hourly_equivalent,
    overlap,
    round_hours,
    round_money,
    to_decimal,
)
from earnings_engine.calculators.types import (
    PAID_LEAVE_TYPES,
    WORKED_STATUSES,
    CompanyPayPolicy,
    DiagnosticReason,
    EarningsBreakdown,
    EarningsDiagnostic,
    LeaveRecord,
    LeaveType,
    PayProfile,
    SalaryType,
    WorkInterval,
)
from earnings_engine.clock import Clock, utcnow
from earnings_engine.config import Settings, get_settings
from earnings_engine.exceptions import UserNotFoundError

HALF_DAY = Decimal("0.5")


class EarningsCalculator:
    """Turns time-tracking facts into an EarningsBreakdown.

    Pipeline (stable order):
    1) Resolve pay profile and company policy
    2) Worked time from resolved intervals plus live elapsed time of open ones
    3) Paid leave days (business days in overlap; half-day leave counts 0.5)
    4) Overtime hours from daily attendance
    5) Worked days from daily attendance (present/partial)
    6) Penalty hours from penalty events
    7) Amounts per salary type, gross, net = max(0, gross - penalty)
    8) Market-value analytics for monthly-salary users
    9) Zero-gross diagnostic

    Every sub-total is rounded before it feeds the next step.
    """

    def __init__(
        self,
        data_source: EarningsDataSource,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ):
        self.data_source = data_source
        self.settings = settings or get_settings()
        self.clock = clock

    async def calculate(
        self,
        user_id: UUID,
        period_start: datetime,
        period_end: datetime,
    ) -> EarningsBreakdown:
        """Calculate earnings for a user over [period_start, period_end].

        Raises:
            UserNotFoundError: If the user does not exist
        """
        if period_start > period_end:
            # Eligibility period has not started yet, e.g. a new user
            return EarningsBreakdown.zero(
                user_id,
                period_start,
                period_end,
                overtime_rate=self.settings.default_overtime_multiplier,
                expected_hours_per_day=self.settings.default_expected_hours,
                currency=self.settings.default_currency,
            )

        # 1) Pay profile
        profile = await self.data_source.get_pay_profile(user_id)
        if profile is None:
            raise UserNotFoundError(user_id)

        policy: CompanyPayPolicy | None = None
        if profile.company_id is not None:
            policy = await self.data_source.get_company_pay_policy(profile.company_id)

        overtime_rate = (
            policy.overtime_multiplier if policy else self.settings.default_overtime_multiplier
        )
        hourly_rate = to_decimal(profile.hourly_rate)
        monthly_salary = to_decimal(profile.monthly_salary)
        expected_hours = self._expected_hours(profile, policy)
        currency = profile.currency or self.settings.default_currency

        # 2) Worked time
        intervals = await self.data_source.find_work_intervals(
            user_id, period_start, period_end
        )
        now = self.clock()
        resolved = [iv for iv in intervals if iv.is_resolved]
        open_ = [iv for iv in intervals if iv.is_open]

        seconds_by_task: dict[UUID, int] = defaultdict(int)
        total_seconds = 0
        for iv in resolved:
            total_seconds += iv.duration_seconds or 0
            if iv.task_id is not None:
                seconds_by_task[iv.task_id] += iv.duration_seconds or 0
        for iv in open_:
            elapsed = self._elapsed_seconds(iv, now)
            total_seconds += elapsed
            if iv.task_id is not None:
                seconds_by_task[iv.task_id] += elapsed

        worked_hours = round_hours(Decimal(total_seconds) / SECONDS_PER_HOUR)

        # 3) Paid leave
        leaves = await self.data_source.find_approved_leaves(
            user_id, period_start, period_end, PAID_LEAVE_TYPES
        )
        paid_leave_days = self._paid_leave_days(leaves, period_start, period_end)
        leave_hours = round_hours(paid_leave_days * expected_hours)

        # 4) + 5) Attendance
        attendance = await self.data_source.find_attendance(
            user_id, period_start, period_end
        )
        overtime_seconds = sum(row.overtime_seconds for row in attendance)
        overtime_hours = round_hours(Decimal(overtime_seconds) / SECONDS_PER_HOUR)
        worked_days = sum(1 for row in attendance if row.status in WORKED_STATUSES)

        # 6) Penalties
        penalties = await self.data_source.find_penalty_events(
            user_id, period_start, period_end
        )
        penalty_minutes = sum((p.minutes for p in penalties), ZERO)
        penalty_hours = round_hours(penalty_minutes / MINUTES_PER_HOUR)

        # 7) Amounts
        total_working_days = business_days(period_start, period_end)
        is_monthly = profile.salary_type == SalaryType.MONTHLY and monthly_salary > 0

        if is_monthly:
            working_days = (
                (policy.working_days_per_month if policy else None)
                or total_working_days
                or self.settings.default_working_days_per_month
            )
            day_rate = daily_rate(monthly_salary, working_days)
            hourly_equiv = hourly_equivalent(
                monthly_salary, total_working_days, expected_hours
            )

            worked_amount = round_money(Decimal(worked_days) * day_rate)
            leave_pay = round_money(paid_leave_days * day_rate)
            overtime_pay = round_money(overtime_hours * hourly_equiv * overtime_rate)
            penalty_amount = round_money(penalty_hours * hourly_equiv)
        else:
            day_rate = ZERO
            hourly_equiv = ZERO

            worked_amount = round_money(worked_hours * hourly_rate)
            leave_pay = round_money(leave_hours * hourly_rate)
            overtime_pay = round_money(overtime_hours * hourly_rate * overtime_rate)
            penalty_amount = round_money(penalty_hours * hourly_rate)

        gross_amount = round_money(worked_amount + leave_pay + overtime_pay)
        net_amount = round_money(max(ZERO, gross_amount - penalty_amount))

        # 8) Market value for fixed-salary users
        virtual_hourly_rate = market_value = actual_cost = savings = None
        if is_monthly and hourly_equiv > 0:
            virtual_hourly_rate = round_money(hourly_equiv)
            actual_cost = round_money(worked_hours * virtual_hourly_rate)
            market_value = await self._market_value(seconds_by_task)
            savings = round_money(market_value - actual_cost)

        # 9) Diagnostic
        diagnostic = None
        if gross_amount == 0:
            diagnostic = EarningsDiagnostic(
                reason=self._zero_reason(hourly_rate, monthly_salary, intervals),
                hourly_rate=hourly_rate,
                monthly_salary=monthly_salary,
                salary_type=profile.salary_type,
                completed_interval_count=len(resolved),
                open_interval_count=len(open_),
            )

        return EarningsBreakdown(
            user_id=user_id,
            period_start=period_start,
            period_end=period_end,
            worked_hours=worked_hours,
            worked_amount=worked_amount,
            worked_days=worked_days,
            paid_leave_days=paid_leave_days,
            leave_hours=leave_hours,
            leave_pay=leave_pay,
            overtime_hours=overtime_hours,
            overtime_pay=overtime_pay,
            overtime_rate=overtime_rate,
            penalty_hours=penalty_hours,
            penalty_amount=penalty_amount,
            salary_type=profile.salary_type,
            hourly_rate=hourly_rate,
            monthly_salary=monthly_salary,
            daily_rate=round_money(day_rate),
            total_working_days=total_working_days,
            expected_hours_per_day=expected_hours,
            gross_amount=gross_amount,
            net_amount=net_amount,
            currency=currency,
            virtual_hourly_rate=virtual_hourly_rate,
            market_value=market_value,
            actual_cost=actual_cost,
            savings=savings,
            diagnostic=diagnostic,
            has_open_intervals=bool(open_),
        )

    def _expected_hours(
        self, profile: PayProfile, policy: CompanyPayPolicy | None
    ) -> Decimal:
        """User value, else company default, else engine default."""
        if profile.expected_hours_per_day:
            return to_decimal(profile.expected_hours_per_day)
        if policy is not None and policy.default_expected_hours:
            return to_decimal(policy.default_expected_hours)
        return self.settings.default_expected_hours

    @staticmethod
    def _elapsed_seconds(interval: WorkInterval, now: datetime) -> int:
        """Live duration of an open interval, clamped at zero."""
        return max(0, int((now - interval.start_time).total_seconds()))

    @staticmethod
    def _paid_leave_days(
        leaves: Sequence[LeaveRecord],
        period_start: datetime,
        period_end: datetime,
    ) -> Decimal:
        days = ZERO
        for leave in leaves:
            window = overlap(leave.start_date, leave.end_date, period_start, period_end)
            if window is None:
                continue
            if leave.leave_type == LeaveType.HALF_DAY:
                days += HALF_DAY
            else:
                days += Decimal(business_days(*window))
        return days

    async def _market_value(self, seconds_by_task: dict[UUID, int]) -> Decimal:
        """What the worked time would cost at task bundle rates."""
        if not seconds_by_task:
            return round_money(ZERO)

        tasks = await self.data_source.find_tasks(seconds_by_task.keys())
        total = ZERO
        for task in tasks:
            hours = Decimal(seconds_by_task.get(task.task_id, 0)) / SECONDS_PER_HOUR

            # Highest hourly sub-unit rate wins over the task rate
            sub_max = max(
                (
                    to_decimal(sub.hourly_rate)
                    for sub in task.sub_units
                    if sub.billing_type == "hourly" and sub.hourly_rate
                ),
                default=ZERO,
            )
            rate = sub_max or to_decimal(task.hourly_rate)
            total += hours * rate

            for sub in task.sub_units:
                if sub.billing_type == "fixed_price" and sub.fixed_price:
                    total += to_decimal(sub.fixed_price)

        return round_money(total)

    @staticmethod
    def _zero_reason(
        hourly_rate: Decimal,
        monthly_salary: Decimal,
        intervals: Sequence[WorkInterval],
    ) -> DiagnosticReason:
        if not hourly_rate and not monthly_salary:
            return DiagnosticReason.NO_PAY_RATE
        if not intervals:
            return DiagnosticReason.NO_TIME_LOGS
        return DiagnosticReason.ZERO_HOURS
