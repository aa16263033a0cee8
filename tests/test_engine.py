"""Tests for the earnings calculation engine."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from earnings_engine.calculators.engine import EarningsCalculator
from earnings_engine.calculators.types import (
    AttendanceRecord,
    AttendanceStatus,
    CompanyPayPolicy,
    DiagnosticReason,
    LeaveRecord,
    LeaveType,
    PenaltyRecord,
    SalaryType,
    SubUnitRate,
    TaskRate,
    WorkInterval,
)
from earnings_engine.exceptions import UserNotFoundError

from .conftest import FIXED_NOW, FakeDataSource, fixed_clock

FEB_START = datetime(2026, 2, 1)
FEB_END = datetime(2026, 2, 28, 23, 59, 59, 999999)


def make_calculator(data_source: FakeDataSource, settings) -> EarningsCalculator:
    return EarningsCalculator(data_source, settings=settings, clock=fixed_clock)


def add_policy(data_source: FakeDataSource, **overrides) -> CompanyPayPolicy:
    values = {
        "company_id": uuid4(),
        "overtime_multiplier": Decimal("1.5"),
        "working_days_per_month": 22,
        "default_expected_hours": Decimal("8.0"),
    }
    values.update(overrides)
    policy = CompanyPayPolicy(**values)
    data_source.policies[policy.company_id] = policy
    return policy


def resolved(user_id, start: datetime, seconds: int, task_id=None) -> WorkInterval:
    return WorkInterval(
        user_id=user_id,
        start_time=start,
        end_time=start + timedelta(seconds=seconds),
        duration_seconds=seconds,
        task_id=task_id,
    )


class TestHourlyEarnings:
    """Hourly-rate calculations."""

    async def test_two_resolved_intervals(self, data_source, settings):
        """3600s + 1800s at 100/hr is 1.5h and 150.00."""
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.intervals += [
            resolved(user.user_id, datetime(2026, 2, 3, 9), 3600),
            resolved(user.user_id, datetime(2026, 2, 4, 9), 1800),
        ]

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.worked_hours == Decimal("1.5")
        assert result.worked_amount == Decimal("150.00")
        assert result.gross_amount == Decimal("150.00")
        assert result.net_amount == Decimal("150.00")
        assert result.salary_type == SalaryType.HOURLY
        assert result.diagnostic is None
        assert result.has_open_intervals is False

    async def test_intervals_outside_range_ignored(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.intervals += [
            resolved(user.user_id, datetime(2026, 1, 31, 23), 3600),
            resolved(user.user_id, datetime(2026, 3, 1, 0), 3600),
        ]

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.worked_hours == Decimal("0")

    async def test_open_interval_counts_live_elapsed_time(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.intervals.append(
            WorkInterval(user_id=user.user_id, start_time=FIXED_NOW - timedelta(hours=2))
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.worked_hours == Decimal("2")
        assert result.worked_amount == Decimal("200.00")
        assert result.has_open_intervals is True

    async def test_open_interval_in_future_clamped_to_zero(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.intervals.append(
            WorkInterval(user_id=user.user_id, start_time=FIXED_NOW + timedelta(hours=1))
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.worked_hours == Decimal("0")

    async def test_overtime_uses_company_multiplier(self, data_source, settings):
        policy = add_policy(data_source, overtime_multiplier=Decimal("2"))
        user = data_source.add_user(company_id=policy.company_id, hourly_rate=Decimal("100"))
        data_source.attendance.append(
            AttendanceRecord(
                user_id=user.user_id,
                work_date=date(2026, 2, 3),
                status=AttendanceStatus.PRESENT,
                total_worked_seconds=9 * 3600,
                overtime_seconds=3600,
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.overtime_hours == Decimal("1")
        assert result.overtime_rate == Decimal("2")
        assert result.overtime_pay == Decimal("200.00")
        assert result.worked_days == 1

    async def test_default_overtime_multiplier_without_company(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.attendance.append(
            AttendanceRecord(
                user_id=user.user_id,
                work_date=date(2026, 2, 3),
                status=AttendanceStatus.PRESENT,
                total_worked_seconds=9 * 3600,
                overtime_seconds=1800,
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.overtime_rate == Decimal("1.5")
        assert result.overtime_pay == Decimal("75.00")

    async def test_paid_leave_uses_expected_hours(self, data_source, settings):
        """Two weekday leave days at 8h/day and 100/hr is 1600.00."""
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.PAID,
                start_date=datetime(2026, 2, 16),
                end_date=datetime(2026, 2, 17),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.paid_leave_days == Decimal("2")
        assert result.leave_hours == Decimal("16")
        assert result.leave_pay == Decimal("1600.00")

    async def test_leave_over_weekend_counts_business_days_only(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.SICK,
                start_date=datetime(2026, 2, 6),
                end_date=datetime(2026, 2, 9),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        # Fri + Mon
        assert result.paid_leave_days == Decimal("2")

    async def test_leave_clipped_to_period(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.PAID,
                start_date=datetime(2026, 1, 29),
                end_date=datetime(2026, 2, 3),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        # Mon 2 and Tue 3 February
        assert result.paid_leave_days == Decimal("2")

    async def test_unpaid_leave_not_counted(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.UNPAID,
                start_date=datetime(2026, 2, 16),
                end_date=datetime(2026, 2, 17),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.paid_leave_days == Decimal("0")

    async def test_expected_hours_fall_back_to_company(self, data_source, settings):
        policy = add_policy(data_source, default_expected_hours=Decimal("7"))
        user = data_source.add_user(company_id=policy.company_id, hourly_rate=Decimal("10"))
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.PAID,
                start_date=datetime(2026, 2, 16),
                end_date=datetime(2026, 2, 16),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.expected_hours_per_day == Decimal("7")
        assert result.leave_hours == Decimal("7")
        assert result.leave_pay == Decimal("70.00")

    async def test_currency_defaults(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"), currency=None)

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.currency == "BDT"


class TestHalfDayLeave:
    """Half-day leave always counts as half a day."""

    @pytest.mark.parametrize("expected_hours", [Decimal("4"), Decimal("8"), Decimal("10")])
    async def test_single_day(self, data_source, settings, expected_hours):
        user = data_source.add_user(
            hourly_rate=Decimal("100"), expected_hours_per_day=expected_hours
        )
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.HALF_DAY,
                start_date=datetime(2026, 2, 10),
                end_date=datetime(2026, 2, 10),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.paid_leave_days == Decimal("0.5")
        assert result.leave_hours == Decimal("0.5") * expected_hours

    async def test_multi_day_range_still_half(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.HALF_DAY,
                start_date=datetime(2026, 2, 9),
                end_date=datetime(2026, 2, 13),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.paid_leave_days == Decimal("0.5")


class TestMonthlyEarnings:
    """Monthly-salary calculations."""

    async def test_worked_days_and_paid_leave(self, data_source, settings):
        """22000/month over 22 days: 20 worked + 2 leave is 22000.00."""
        policy = add_policy(data_source, working_days_per_month=22)
        user = data_source.add_user(
            company_id=policy.company_id,
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("22000"),
        )
        for day in range(1, 21):
            data_source.attendance.append(
                AttendanceRecord(
                    user_id=user.user_id,
                    work_date=date(2026, 2, day),
                    status=AttendanceStatus.PRESENT,
                    total_worked_seconds=8 * 3600,
                    overtime_seconds=0,
                )
            )
        data_source.leaves.append(
            LeaveRecord(
                user_id=user.user_id,
                leave_type=LeaveType.PAID,
                start_date=datetime(2026, 2, 23),
                end_date=datetime(2026, 2, 24),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.daily_rate == Decimal("1000.00")
        assert result.worked_days == 20
        assert result.worked_amount == Decimal("20000.00")
        assert result.paid_leave_days == Decimal("2")
        assert result.leave_pay == Decimal("2000.00")
        assert result.gross_amount == Decimal("22000.00")
        assert result.net_amount == Decimal("22000.00")

    async def test_partial_days_count_as_worked(self, data_source, settings):
        policy = add_policy(data_source, working_days_per_month=22)
        user = data_source.add_user(
            company_id=policy.company_id,
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("22000"),
        )
        statuses = [
            AttendanceStatus.PRESENT,
            AttendanceStatus.PARTIAL,
            AttendanceStatus.ABSENT,
            AttendanceStatus.HOLIDAY,
            AttendanceStatus.ON_LEAVE,
        ]
        for offset, status in enumerate(statuses):
            data_source.attendance.append(
                AttendanceRecord(
                    user_id=user.user_id,
                    work_date=date(2026, 2, 2 + offset),
                    status=status,
                    total_worked_seconds=0,
                    overtime_seconds=0,
                )
            )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.worked_days == 2
        assert result.worked_amount == Decimal("2000.00")

    async def test_divisor_falls_back_to_business_days(self, data_source, settings):
        """Without a company setting, February's 20 business days divide the salary."""
        user = data_source.add_user(
            salary_type=SalaryType.MONTHLY, monthly_salary=Decimal("22000")
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.total_working_days == 20
        assert result.daily_rate == Decimal("1100.00")

    async def test_uneven_daily_rate_rounded_after_multiplying(self, data_source, settings):
        """25000 / 22 is 1136.3636...; twenty days pay 22727.27, not 20 x 1136.36."""
        policy = add_policy(data_source, working_days_per_month=22)
        user = data_source.add_user(
            company_id=policy.company_id,
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("25000"),
        )
        for day in range(1, 21):
            data_source.attendance.append(
                AttendanceRecord(
                    user_id=user.user_id,
                    work_date=date(2026, 2, day),
                    status=AttendanceStatus.PRESENT,
                    total_worked_seconds=8 * 3600,
                    overtime_seconds=0,
                )
            )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.worked_days == 20
        assert result.daily_rate == Decimal("1136.36")
        assert result.worked_amount == Decimal("22727.27")
        assert result.gross_amount == Decimal("22727.27")

    async def test_uneven_hourly_equivalent_rounded_after_multiplying(self, data_source, settings):
        # 10000 / (20 business days * 7h) = 71.428571...; 3h overtime at 1.5x
        policy = add_policy(data_source, working_days_per_month=22)
        user = data_source.add_user(
            company_id=policy.company_id,
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("10000"),
            expected_hours_per_day=Decimal("7"),
        )
        data_source.attendance.append(
            AttendanceRecord(
                user_id=user.user_id,
                work_date=date(2026, 2, 3),
                status=AttendanceStatus.PRESENT,
                total_worked_seconds=11 * 3600,
                overtime_seconds=3 * 3600,
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.overtime_pay == Decimal("321.43")

    async def test_overtime_and_penalty_use_hourly_equivalent(self, data_source, settings):
        policy = add_policy(data_source, working_days_per_month=22)
        user = data_source.add_user(
            company_id=policy.company_id,
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("22000"),
        )
        data_source.attendance.append(
            AttendanceRecord(
                user_id=user.user_id,
                work_date=date(2026, 2, 3),
                status=AttendanceStatus.PRESENT,
                total_worked_seconds=10 * 3600,
                overtime_seconds=2 * 3600,
            )
        )
        data_source.penalties.append(
            PenaltyRecord(
                user_id=user.user_id,
                minutes=Decimal("60"),
                occurred_at=datetime(2026, 2, 3, 10),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        # 22000 / (20 business days * 8h) = 137.50
        assert result.overtime_pay == Decimal("412.50")
        assert result.penalty_amount == Decimal("137.50")
        assert result.gross_amount == Decimal("1412.50")
        assert result.net_amount == Decimal("1275.00")

    async def test_zero_salary_uses_hourly_branch(self, data_source, settings):
        user = data_source.add_user(
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("0"),
            hourly_rate=Decimal("50"),
        )
        data_source.intervals.append(resolved(user.user_id, datetime(2026, 2, 3, 9), 7200))

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.worked_amount == Decimal("100.00")
        assert result.daily_rate == Decimal("0")
        assert result.market_value is None

    async def test_market_value(self, data_source, settings):
        """Highest hourly sub-unit rate wins and fixed prices are added on top."""
        policy = add_policy(data_source, working_days_per_month=22)
        user = data_source.add_user(
            company_id=policy.company_id,
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("22000"),
        )
        task_id = uuid4()
        data_source.tasks[task_id] = TaskRate(
            task_id=task_id,
            hourly_rate=Decimal("150"),
            sub_units=(
                SubUnitRate(billing_type="hourly", hourly_rate=Decimal("200")),
                SubUnitRate(billing_type="hourly", hourly_rate=Decimal("300")),
                SubUnitRate(billing_type="fixed_price", fixed_price=Decimal("500")),
            ),
        )
        data_source.intervals.append(
            resolved(user.user_id, datetime(2026, 2, 3, 9), 7200, task_id=task_id)
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.virtual_hourly_rate == Decimal("137.50")
        assert result.market_value == Decimal("1100.00")
        assert result.actual_cost == Decimal("275.00")
        assert result.savings == Decimal("825.00")
        # Analytics never feed into pay
        assert result.gross_amount == Decimal("0.00")

    async def test_market_value_falls_back_to_task_rate(self, data_source, settings):
        policy = add_policy(data_source, working_days_per_month=22)
        user = data_source.add_user(
            company_id=policy.company_id,
            salary_type=SalaryType.MONTHLY,
            monthly_salary=Decimal("22000"),
        )
        task_id = uuid4()
        data_source.tasks[task_id] = TaskRate(task_id=task_id, hourly_rate=Decimal("150"))
        data_source.intervals.append(
            resolved(user.user_id, datetime(2026, 2, 3, 9), 3600, task_id=task_id)
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.market_value == Decimal("150.00")


class TestNetAmount:
    """net = max(0, gross - penalty)."""

    async def test_penalty_deducted(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.intervals.append(resolved(user.user_id, datetime(2026, 2, 3, 9), 3600))
        data_source.penalties.append(
            PenaltyRecord(
                user_id=user.user_id,
                minutes=Decimal("30"),
                occurred_at=datetime(2026, 2, 3, 11),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.penalty_hours == Decimal("0.5")
        assert result.penalty_amount == Decimal("50.00")
        assert result.net_amount == Decimal("50.00")

    async def test_net_floored_at_zero(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.intervals.append(resolved(user.user_id, datetime(2026, 2, 3, 9), 3600))
        data_source.penalties.append(
            PenaltyRecord(
                user_id=user.user_id,
                minutes=Decimal("120"),
                occurred_at=datetime(2026, 2, 3, 11),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.gross_amount == Decimal("100.00")
        assert result.penalty_amount == Decimal("200.00")
        assert result.net_amount == Decimal("0.00")

    @pytest.mark.parametrize(
        "seconds,penalty_minutes",
        [(3600, "0"), (5400, "45"), (1234, "17"), (100, "600")],
    )
    async def test_net_is_gross_less_penalty_floored(self, data_source, settings, seconds, penalty_minutes):
        user = data_source.add_user(hourly_rate=Decimal("33.33"))
        data_source.intervals.append(resolved(user.user_id, datetime(2026, 2, 3, 9), seconds))
        data_source.penalties.append(
            PenaltyRecord(
                user_id=user.user_id,
                minutes=Decimal(penalty_minutes),
                occurred_at=datetime(2026, 2, 3, 11),
            )
        )

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.net_amount == max(
            Decimal("0"), result.gross_amount - result.penalty_amount
        )


class TestGuardsAndErrors:
    """Degenerate inputs."""

    async def test_reversed_period_returns_zero_without_queries(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_END, FEB_START
        )

        assert data_source.total_calls == 0
        assert result.gross_amount == Decimal("0")
        assert result.net_amount == Decimal("0")
        assert result.worked_hours == Decimal("0")
        assert result.overtime_rate == Decimal("1.5")
        assert result.currency == "BDT"

    async def test_unknown_user_raises(self, data_source, settings):
        with pytest.raises(UserNotFoundError):
            await make_calculator(data_source, settings).calculate(
                uuid4(), FEB_START, FEB_END
            )

    async def test_identical_inputs_identical_output(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("37.77"))
        data_source.intervals += [
            resolved(user.user_id, datetime(2026, 2, 3, 9), 3333),
            resolved(user.user_id, datetime(2026, 2, 4, 9), 1777),
        ]
        calculator = make_calculator(data_source, settings)

        first = await calculator.calculate(user.user_id, FEB_START, FEB_END)
        second = await calculator.calculate(user.user_id, FEB_START, FEB_END)

        assert first == second
        assert first.to_dict() == second.to_dict()


class TestDiagnostics:
    """Zero-gross breakdowns explain themselves."""

    async def test_no_pay_rate(self, data_source, settings):
        user = data_source.add_user()
        data_source.intervals.append(resolved(user.user_id, datetime(2026, 2, 3, 9), 3600))

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.diagnostic is not None
        assert result.diagnostic.reason == DiagnosticReason.NO_PAY_RATE
        assert result.diagnostic.completed_interval_count == 1

    async def test_no_time_logs(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.diagnostic.reason == DiagnosticReason.NO_TIME_LOGS
        assert result.diagnostic.open_interval_count == 0

    async def test_zero_hours(self, data_source, settings):
        user = data_source.add_user(hourly_rate=Decimal("100"))
        data_source.intervals.append(resolved(user.user_id, datetime(2026, 2, 3, 9), 0))

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )

        assert result.diagnostic.reason == DiagnosticReason.ZERO_HOURS

    async def test_to_dict_serializes_enums(self, data_source, settings):
        user = data_source.add_user()

        result = await make_calculator(data_source, settings).calculate(
            user.user_id, FEB_START, FEB_END
        )
        data = result.to_dict()

        assert data["salary_type"] == "hourly"
        assert data["diagnostic"]["reason"] == "NO_PAY_RATE"
