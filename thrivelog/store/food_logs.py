"""Meal log persistence."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models import FoodLog
from ..time_utils import day_bounds, utc_now
from ._common import as_utc, distinct_casefold, require_user, save


def add_food_log(
    session: Session,
    user_id: Optional[str],
    *,
    food: str,
    notes: Optional[str] = None,
    category: Optional[str] = None,
    photo_url: Optional[str] = None,
    time: Optional[datetime] = None,
) -> FoodLog:
    user_id = require_user(user_id)
    row = FoodLog(
        user_id=user_id,
        food=food,
        notes=notes,
        category=category,
        photo_url=photo_url,
        time=as_utc(time) or utc_now(),
    )
    return save(session, row)


def get_food_logs(
    session: Session, user_id: Optional[str], date_str: Optional[str] = None
) -> List[FoodLog]:
    """Return the user's meal logs, newest first, optionally for one day."""

    user_id = require_user(user_id)
    query = session.query(FoodLog).filter(FoodLog.user_id == user_id)
    if date_str:
        start, end = day_bounds(date_str)
        query = query.filter(FoodLog.time >= start, FoodLog.time < end)
    return query.order_by(FoodLog.created_at.desc(), FoodLog.id.desc()).all()


def get_distinct_foods(session: Session, user_id: Optional[str]) -> List[str]:
    """Unique food names for autosuggest, most recent first."""

    user_id = require_user(user_id)
    rows = (
        session.query(FoodLog.food)
        .filter(FoodLog.user_id == user_id)
        .order_by(FoodLog.created_at.desc(), FoodLog.id.desc())
        .all()
    )
    return distinct_casefold(row.food for row in rows)
