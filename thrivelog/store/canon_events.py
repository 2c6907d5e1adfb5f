"""Canon events: significant life events tracked for ongoing impact."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..database import commit_with_retry
from ..models import CanonEvent
from ..time_utils import day_bounds, period_bounds, utc_now
from ._common import as_utc, get_owned, require_user, save


def add_canon_event(
    session: Session,
    user_id: Optional[str],
    *,
    title: str,
    event_time: Optional[datetime] = None,
    intensity: Optional[int] = None,
    notes: Optional[str] = None,
    category: Optional[str] = None,
    emotional_impact: Optional[str] = None,
) -> CanonEvent:
    user_id = require_user(user_id)
    row = CanonEvent(
        user_id=user_id,
        title=title,
        event_time=as_utc(event_time) or utc_now(),
        intensity=intensity,
        notes=notes,
        category=category,
        emotional_impact=emotional_impact,
    )
    return save(session, row)


def get_canon_events_for_day(
    session: Session, user_id: Optional[str], day: str | date
) -> List[CanonEvent]:
    start, end = day_bounds(day)
    return _events_between(session, require_user(user_id), start, end)


def get_canon_events_for_period(
    session: Session,
    user_id: Optional[str],
    start_date: str | date,
    end_date: str | date,
) -> List[CanonEvent]:
    start, end = period_bounds(start_date, end_date)
    return _events_between(session, require_user(user_id), start, end)


def _events_between(
    session: Session, user_id: str, start: datetime, end: datetime
) -> List[CanonEvent]:
    return (
        session.query(CanonEvent)
        .filter(
            CanonEvent.user_id == user_id,
            CanonEvent.event_time >= start,
            CanonEvent.event_time < end,
        )
        .order_by(CanonEvent.event_time.asc(), CanonEvent.id.asc())
        .all()
    )


def close_canon_event(
    session: Session, user_id: Optional[str], event_id: int
) -> CanonEvent:
    """Mark an event as no longer affecting the user."""

    row = get_owned(session, CanonEvent, event_id, require_user(user_id))
    row.closed_time = utc_now()
    commit_with_retry(session)
    session.refresh(row)
    return row
