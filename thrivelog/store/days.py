"""Per-day flags (period, housekeeping, ...) and the day's free-form note."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..database import commit_with_retry
from ..models import Day
from ..time_utils import month_bounds, parse_date
from ._common import apply_updates, require_user

DAY_FIELDS = ("is_period", "is_pooped", "is_housekeeping_day", "reflection", "temperature")


def _find_day(session: Session, user_id: str, date_str: str) -> Optional[Day]:
    return (
        session.query(Day)
        .filter(Day.user_id == user_id, Day.date == parse_date(date_str))
        .first()
    )


def get_day(session: Session, user_id: Optional[str], date_str: str) -> Dict[str, Any]:
    """Return the day's fields, with defaults when no row exists yet."""

    row = _find_day(session, require_user(user_id), date_str)
    return {
        "date": date_str,
        "is_period": bool(row.is_period) if row else False,
        "is_pooped": bool(row.is_pooped) if row else False,
        "is_housekeeping_day": bool(row.is_housekeeping_day) if row else False,
        "reflection": (row.reflection or "") if row else "",
        "temperature": row.temperature if row else None,
    }


def set_day(
    session: Session, user_id: Optional[str], fields: Dict[str, Any], date_str: str
) -> Day:
    """Upsert on ``(user_id, date)``, touching only the given fields."""

    user_id = require_user(user_id)
    row = _find_day(session, user_id, date_str)
    if row is None:
        row = Day(user_id=user_id, date=parse_date(date_str))
        session.add(row)
    apply_updates(row, fields, DAY_FIELDS)
    commit_with_retry(session)
    session.refresh(row)
    return row


def get_days_for_month(
    session: Session, user_id: Optional[str], year: int, month: int
) -> List[Day]:
    start, end = month_bounds(year, month)
    return (
        session.query(Day)
        .filter(Day.user_id == require_user(user_id), Day.date >= start, Day.date < end)
        .order_by(Day.date.asc())
        .all()
    )
