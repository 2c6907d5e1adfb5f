"""User-defined chat personas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..database import commit_with_retry
from ..models import Persona
from ._common import apply_updates, get_owned, require_user, save

PERSONA_FIELDS = (
    "name",
    "relationship",
    "personality",
    "communication_style",
    "interests",
    "memories",
    "speaking_style",
    "avatar",
)


def create_persona(
    session: Session, user_id: Optional[str], persona_data: Dict[str, Any]
) -> Persona:
    row = Persona(user_id=require_user(user_id))
    apply_updates(row, persona_data, PERSONA_FIELDS)
    return save(session, row)


def get_personas(session: Session, user_id: Optional[str]) -> List[Persona]:
    return (
        session.query(Persona)
        .filter(Persona.user_id == require_user(user_id))
        .order_by(Persona.created_at.desc(), Persona.id.desc())
        .all()
    )


def get_persona_by_id(
    session: Session, user_id: Optional[str], persona_id: int
) -> Persona:
    return get_owned(session, Persona, persona_id, require_user(user_id))


def update_persona(
    session: Session, user_id: Optional[str], persona_id: int, updates: Dict[str, Any]
) -> Persona:
    row = get_owned(session, Persona, persona_id, require_user(user_id))
    apply_updates(row, updates, PERSONA_FIELDS)
    commit_with_retry(session)
    session.refresh(row)
    return row


def delete_persona(session: Session, user_id: Optional[str], persona_id: int) -> bool:
    row = get_owned(session, Persona, persona_id, require_user(user_id))
    session.delete(row)
    commit_with_retry(session)
    return True
