"""
Pure interval arithmetic for the scheduling core.

All values are UTC datetimes; rendering in local time happens at the edges.
Intervals are half-open, so an appointment ending at 10:00 and one starting at
10:00 do not overlap.
"""

from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from .types import Interval, RecurrencePattern

_DAY_STEPS = {
    RecurrencePattern.WEEKLY: 7,
    RecurrencePattern.BIWEEKLY: 14,
}


def overlaps(a: Interval, b: Interval) -> bool:
    """True iff ``a`` and ``b`` share at least one instant"""
    return a.start < b.end and b.start < a.end


def duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between ``start`` and ``end`` (negative when inverted)"""
    return int((end - start).total_seconds() // 60)


def shift_by_days(value: datetime, days: int) -> datetime:
    return value + timedelta(days=days)


def add_months(value: datetime, months: int) -> datetime:
    """
    Advance ``value`` by calendar months, keeping the time of day.

    When the target month is shorter than the source day-of-month the result is
    clamped to the last day of that month (Jan 31 + 1 month -> Feb 28/29).
    """
    return value + relativedelta(months=months)


def add_occurrence(base: datetime, pattern: RecurrencePattern, n: int) -> datetime:
    """Start of occurrence ``n`` (0-indexed) of a series starting at ``base``"""
    pattern = RecurrencePattern(pattern)
    if pattern is RecurrencePattern.MONTHLY:
        # Always measured from the base so a clamp in February does not
        # drag March back to the 28th
        return add_months(base, n)
    return shift_by_days(base, _DAY_STEPS[pattern] * n)


def to_utc_naive(value: datetime) -> datetime:
    """Normalise to a naive UTC datetime, the storage representation"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a stored naive datetime for serialization"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
