"""Engine, session factory and commit helper for the Thrivelog store."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

COMMIT_ATTEMPTS = 5
COMMIT_BACKOFF_SECONDS = 0.2

_LOCKED_MESSAGES = ("database is locked", "database table is locked")


def _build_engine(url: str) -> Engine:
    kwargs: Dict[str, Any] = {"pool_pre_ping": True}
    if not url.startswith("sqlite"):
        # Postgres, e.g. the database behind a Supabase project
        return create_engine(url, **kwargs)

    if ":memory:" in url:
        kwargs["poolclass"] = StaticPool
    sqlite_engine = create_engine(
        url, connect_args={"check_same_thread": False, "timeout": 30}, **kwargs
    )

    @event.listens_for(sqlite_engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):  # type: ignore[override]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    return sqlite_engine


engine = _build_engine(DATABASE_URL)

# One session per request; rows stay readable after commit for response models
SessionLocal = sessionmaker(
    bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
)

Base = declarative_base()


def init_database() -> None:
    """Create any missing tables."""
    from . import models  # noqa: F401  # pylint: disable=unused-import

    Base.metadata.create_all(bind=engine)


def _is_locked(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(locked in message for locked in _LOCKED_MESSAGES)


def commit_with_retry(session: Session) -> None:
    """Commit, rolling back and retrying while SQLite reports a lock.

    Any other ``OperationalError`` propagates on the first attempt.
    """
    for attempt in range(1, COMMIT_ATTEMPTS + 1):
        try:
            session.commit()
            return
        except OperationalError as exc:
            session.rollback()
            if not _is_locked(exc) or attempt == COMMIT_ATTEMPTS:
                raise
            logger.warning(
                "Database locked on commit (attempt %d/%d), retrying",
                attempt,
                COMMIT_ATTEMPTS,
            )
            time.sleep(COMMIT_BACKOFF_SECONDS * attempt)
