"""Time window helpers; all timestamps are UTC."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_start(value: date | datetime) -> datetime:
    """Zero the time of day, returning an aware UTC midnight."""
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def day_window(value: date | datetime) -> tuple[datetime, datetime]:
    """Return the half-open ``[start, start + 1 day)`` bucket for a day."""
    start = day_start(value)
    return start, start + timedelta(days=1)


def iter_days(date_from: date, date_to: date):
    """Yield whole days from ``date_from`` to ``date_to`` inclusive."""
    current = date_from
    while current <= date_to:
        yield current
        current += timedelta(days=1)
