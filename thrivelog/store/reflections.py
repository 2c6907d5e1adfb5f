"""Reflection journal entries.

A reflection answers one prompt question. Tags are stored as a plain list of
strings; which provider suggested each tag is not persisted.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..database import commit_with_retry
from ..models import Reflection
from ..time_utils import day_bounds, period_bounds, utc_now
from ._common import apply_updates, as_utc, get_owned, require_user, save


REFLECTION_FIELDS = (
    "text",
    "photo_url",
    "voice_url",
    "voice_duration",
    "prompt_question",
    "mood_rating",
    "tags",
    "groq_mood_label",
    "groq_mood_score",
    "groq_confidence",
    "groq_analysis_timestamp",
)


def create_reflection(
    session: Session,
    user_id: Optional[str],
    *,
    text: Optional[str] = None,
    photo_url: Optional[str] = None,
    voice_url: Optional[str] = None,
    voice_duration: Optional[float] = None,
    prompt_question: Optional[str] = None,
    mood_rating: Optional[int] = None,
    tags: Sequence[str] = (),
    groq_mood_label: Optional[str] = None,
    groq_mood_score: Optional[int] = None,
    groq_confidence: Optional[float] = None,
    groq_analysis_timestamp: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
) -> Reflection:
    user_id = require_user(user_id)
    row = Reflection(
        user_id=user_id,
        text=text or None,
        photo_url=photo_url or None,
        voice_url=voice_url or None,
        voice_duration=voice_duration or None,
        prompt_question=prompt_question or None,
        mood_rating=mood_rating or None,
        tags=list(tags) if tags else None,
        groq_mood_label=groq_mood_label or None,
        groq_mood_score=groq_mood_score or None,
        groq_confidence=groq_confidence,
        groq_analysis_timestamp=as_utc(groq_analysis_timestamp),
        created_at=as_utc(created_at) or utc_now(),
    )
    return save(session, row)


def _between(
    session: Session, user_id: str, start: datetime, end: datetime
) -> List[Reflection]:
    return (
        session.query(Reflection)
        .filter(
            Reflection.user_id == user_id,
            Reflection.created_at >= start,
            Reflection.created_at < end,
        )
        .order_by(Reflection.created_at.desc(), Reflection.id.desc())
        .all()
    )


def get_reflections_for_date(
    session: Session, user_id: Optional[str], day: str | date
) -> List[Reflection]:
    start, end = day_bounds(day)
    return _between(session, require_user(user_id), start, end)


def get_reflections_for_period(
    session: Session,
    user_id: Optional[str],
    start_date: str | date,
    end_date: str | date,
) -> List[Reflection]:
    start, end = period_bounds(start_date, end_date)
    return _between(session, require_user(user_id), start, end)


def get_recent_reflections(
    session: Session, user_id: Optional[str], limit: int = 20
) -> List[Reflection]:
    return (
        session.query(Reflection)
        .filter(Reflection.user_id == require_user(user_id))
        .order_by(Reflection.created_at.desc(), Reflection.id.desc())
        .limit(limit)
        .all()
    )


def update_reflection(
    session: Session,
    user_id: Optional[str],
    reflection_id: int,
    updates: Dict[str, Any],
) -> Reflection:
    row = get_owned(session, Reflection, reflection_id, require_user(user_id))
    if "tags" in updates:
        updates = {**updates, "tags": list(updates["tags"] or []) or None}
    apply_updates(row, updates, REFLECTION_FIELDS)
    commit_with_retry(session)
    session.refresh(row)
    return row


def delete_reflection(
    session: Session, user_id: Optional[str], reflection_id: int
) -> bool:
    row = get_owned(session, Reflection, reflection_id, require_user(user_id))
    session.delete(row)
    commit_with_retry(session)
    return True


def answered_questions(session: Session, user_id: Optional[str]) -> List[str]:
    """Every prompt question the user has already written a reflection for."""

    rows = (
        session.query(Reflection.prompt_question)
        .filter(
            Reflection.user_id == require_user(user_id),
            Reflection.prompt_question.isnot(None),
        )
        .all()
    )
    return [row.prompt_question for row in rows]


def has_answered(session: Session, user_id: Optional[str], question: str) -> bool:
    """Exact-match check for an existing reflection on ``question``."""

    return (
        session.query(Reflection.id)
        .filter(
            Reflection.user_id == require_user(user_id),
            Reflection.prompt_question == question,
        )
        .first()
        is not None
    )
