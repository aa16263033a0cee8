"""Calendar and rounding helpers for earnings calculation. No I/O."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

MONEY_PLACES = Decimal("0.01")
HOURS_PLACES = Decimal("0.0001")
ZERO = Decimal("0")

SECONDS_PER_HOUR = Decimal(3600)
MINUTES_PER_HOUR = Decimal(60)


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """Coerce a stored numeric to Decimal; None becomes zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_hours(value: Decimal) -> Decimal:
    """Round an hour quantity to 4 places, half-up."""
    return value.quantize(HOURS_PLACES, rounding=ROUND_HALF_UP)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def business_days(start: date | datetime, end: date | datetime) -> int:
    """Count Mon-Fri calendar days in [start, end], ignoring time of day."""
    current = _as_date(start)
    last = _as_date(end)
    count = 0
    while current <= last:
        if current.weekday() < 5:
            count += 1
        current += timedelta(days=1)
    return count


def overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> tuple[datetime, datetime] | None:
    """Intersection of two closed intervals, or None if they are disjoint."""
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start > end:
        return None
    return start, end


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First and last instant of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime(year, month, last_day, 23, 59, 59, 999999),
    )


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def daily_rate(monthly_salary: Decimal, working_days: int) -> Decimal:
    """Monthly salary spread over the company's working days.

    Unrounded; callers round the amounts it is multiplied into.
    """
    if working_days <= 0:
        return ZERO
    return monthly_salary / Decimal(working_days)


def hourly_equivalent(
    monthly_salary: Decimal,
    total_working_days: int,
    expected_hours_per_day: Decimal,
) -> Decimal:
    """Hourly rate implied by a monthly salary over the given working days (unrounded)."""
    if total_working_days <= 0 or expected_hours_per_day <= 0:
        return ZERO
    return monthly_salary / (Decimal(total_working_days) * expected_hours_per_day)
