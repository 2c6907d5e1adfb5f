"""Helpers shared by the per-entity data-access modules."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..database import commit_with_retry
from ..errors import NotAuthenticatedError, NotFoundError
from ..time_utils import ensure_utc

RowT = TypeVar("RowT")


def require_user(user_id: Optional[str]) -> str:
    """Return ``user_id`` or raise ``NotAuthenticatedError`` when it is missing."""

    if not user_id:
        raise NotAuthenticatedError()
    return user_id


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def save(session: Session, row: RowT) -> RowT:
    session.add(row)
    commit_with_retry(session)
    session.refresh(row)
    return row


def get_owned(session: Session, model: Type[RowT], row_id: Any, user_id: str) -> RowT:
    """Fetch a row by id scoped to ``user_id`` or raise ``NotFoundError``."""

    row = (
        session.query(model)
        .filter(model.id == row_id, model.user_id == user_id)  # type: ignore[attr-defined]
        .first()
    )
    if row is None:
        raise NotFoundError(f"{model.__tablename__} row {row_id} not found")  # type: ignore[attr-defined]
    return row


def apply_updates(row: Any, updates: Dict[str, Any], allowed: Iterable[str]) -> None:
    allowed_fields = set(allowed)
    for field, value in updates.items():
        if field not in allowed_fields:
            raise ValueError(f"Field '{field}' cannot be updated")
        if isinstance(value, datetime):
            value = ensure_utc(value)
        setattr(row, field, value)


def distinct_casefold(values: Iterable[Optional[str]]) -> list[str]:
    """Keep the first occurrence of each value, comparing case-insensitively."""

    seen: set[str] = set()
    unique = []
    for value in values:
        if not value or value.lower() in seen:
            continue
        seen.add(value.lower())
        unique.append(value)
    return unique
