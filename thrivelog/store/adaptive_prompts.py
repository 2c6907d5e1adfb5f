"""Stored sets of generated reflection questions."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..models import AdaptivePrompt
from ._common import require_user, save


def get_adaptive_prompts(
    session: Session, user_id: Optional[str]
) -> Optional[AdaptivePrompt]:
    """Return the most recently generated set, or None."""

    return (
        session.query(AdaptivePrompt)
        .filter(AdaptivePrompt.user_id == require_user(user_id))
        .order_by(AdaptivePrompt.id.desc())
        .first()
    )


def save_adaptive_prompts(
    session: Session, user_id: Optional[str], questions: Sequence[str]
) -> AdaptivePrompt:
    return save(
        session, AdaptivePrompt(user_id=require_user(user_id), prompts=list(questions))
    )


def questions_from_payload(prompts: Any) -> Optional[List[Any]]:
    """Unwrap either a bare list or ``{"questions": [...]}``."""

    if isinstance(prompts, dict):
        prompts = prompts.get("questions")
    if isinstance(prompts, list):
        return prompts
    return None
