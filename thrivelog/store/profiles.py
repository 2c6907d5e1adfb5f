"""User profiles, keyed by the user id."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..database import commit_with_retry
from ..errors import NotFoundError
from ..models import Profile
from ..time_utils import utc_now
from ._common import apply_updates, require_user, save

PROFILE_FIELDS = ("name", "gender", "language", "about", "tracking_prefs")


def get_profile(session: Session, user_id: Optional[str]) -> Profile:
    profile = session.get(Profile, require_user(user_id))
    if profile is None:
        raise NotFoundError(f"Profile {user_id} not found")
    return profile


def create_profile(
    session: Session, user_id: Optional[str], profile: Dict[str, Any]
) -> Profile:
    row = Profile(id=require_user(user_id))
    apply_updates(row, profile, PROFILE_FIELDS)
    return save(session, row)


def update_profile(
    session: Session, user_id: Optional[str], updates: Dict[str, Any]
) -> Profile:
    row = get_profile(session, user_id)
    apply_updates(row, updates, PROFILE_FIELDS)
    row.updated_at = utc_now()
    commit_with_retry(session)
    session.refresh(row)
    return row
