"""Symptom log persistence."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models import SymptomLog
from ..time_utils import day_bounds, utc_now
from ._common import as_utc, require_user, save


def add_symptom_log(
    session: Session,
    user_id: Optional[str],
    *,
    symptom: str,
    intensity: Optional[int] = None,
    time: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> SymptomLog:
    user_id = require_user(user_id)
    row = SymptomLog(
        user_id=user_id,
        symptom=symptom,
        intensity=intensity,
        time=as_utc(time) or utc_now(),
        notes=notes,
    )
    return save(session, row)


def get_symptom_logs(
    session: Session, user_id: Optional[str], date_str: Optional[str] = None
) -> List[SymptomLog]:
    user_id = require_user(user_id)
    query = session.query(SymptomLog).filter(SymptomLog.user_id == user_id)
    if date_str:
        start, end = day_bounds(date_str)
        query = query.filter(SymptomLog.time >= start, SymptomLog.time < end)
    return query.order_by(SymptomLog.created_at.desc(), SymptomLog.id.desc()).all()
