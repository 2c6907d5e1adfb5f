"""Time utility helpers for consistent timezone handling."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple


def utc_now() -> datetime:
    """Return the current time in UTC as an aware datetime."""

    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Coerce a datetime into UTC, assuming naive values are already UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string."""

    return date.fromisoformat(value)


def day_bounds(value: str | date) -> Tuple[datetime, datetime]:
    """Return the half-open UTC range ``[start of day, start of next day)``."""

    day = parse_date(value) if isinstance(value, str) else value
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def period_bounds(start: str | date, end: str | date) -> Tuple[datetime, datetime]:
    """Return the half-open UTC range covering both dates inclusively."""

    range_start, _ = day_bounds(start)
    _, range_end = day_bounds(end)
    return range_start, range_end


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """Return ``(first day of month, first day of next month)``."""

    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end
