"""Follow-up responses recorded against earlier logs ("how did that sit?")."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models import AfterEffect
from ..time_utils import day_bounds, period_bounds
from ._common import require_user, save

LOG_TYPES = ("food", "symptom", "product", "canon")


def add_after_effect(
    session: Session,
    user_id: Optional[str],
    *,
    log_type: str,
    log_id: Optional[int] = None,
    response: Optional[str] = None,
    log_name: Optional[str] = None,
) -> AfterEffect:
    if log_type not in LOG_TYPES:
        raise ValueError(f"Unknown log type '{log_type}'")
    row = AfterEffect(
        user_id=require_user(user_id),
        log_type=log_type,
        log_id=log_id,
        response=response,
        log_name=log_name,
    )
    return save(session, row)


def get_after_effects_for_day(
    session: Session, user_id: Optional[str], day: str | date
) -> List[AfterEffect]:
    start, end = day_bounds(day)
    return (
        session.query(AfterEffect)
        .filter(
            AfterEffect.user_id == require_user(user_id),
            AfterEffect.created_at >= start,
            AfterEffect.created_at < end,
        )
        .order_by(AfterEffect.created_at.asc(), AfterEffect.id.asc())
        .all()
    )


def get_after_effects_for_period(
    session: Session,
    user_id: Optional[str],
    start_date: str | date,
    end_date: str | date,
) -> List[AfterEffect]:
    start, end = period_bounds(start_date, end_date)
    return (
        session.query(AfterEffect)
        .filter(
            AfterEffect.user_id == require_user(user_id),
            AfterEffect.created_at >= start,
            AfterEffect.created_at < end,
        )
        .order_by(AfterEffect.created_at.asc(), AfterEffect.id.asc())
        .all()
    )


def latest_canon_response(
    session: Session, user_id: Optional[str], log_id: int
) -> Optional[str]:
    row = (
        session.query(AfterEffect)
        .filter(
            AfterEffect.user_id == require_user(user_id),
            AfterEffect.log_type == "canon",
            AfterEffect.log_id == log_id,
        )
        .order_by(AfterEffect.created_at.desc(), AfterEffect.id.desc())
        .first()
    )
    return row.response if row else None
