"""Product log persistence (skincare, supplements and the like)."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models import ProductLog
from ..time_utils import day_bounds, utc_now
from ._common import as_utc, distinct_casefold, require_user, save


def add_product_log(
    session: Session,
    user_id: Optional[str],
    *,
    product: str,
    notes: Optional[str] = None,
    category: Optional[str] = None,
    photo_url: Optional[str] = None,
    time: Optional[datetime] = None,
) -> ProductLog:
    user_id = require_user(user_id)
    row = ProductLog(
        user_id=user_id,
        product=product,
        notes=notes,
        category=category,
        photo_url=photo_url,
        time=as_utc(time) or utc_now(),
    )
    return save(session, row)


def get_product_logs(
    session: Session, user_id: Optional[str], date_str: Optional[str] = None
) -> List[ProductLog]:
    """Return the user's product logs, newest first, optionally for one day."""

    user_id = require_user(user_id)
    query = session.query(ProductLog).filter(ProductLog.user_id == user_id)
    if date_str:
        start, end = day_bounds(date_str)
        query = query.filter(ProductLog.time >= start, ProductLog.time < end)
    return query.order_by(ProductLog.created_at.desc(), ProductLog.id.desc()).all()


def get_distinct_products(session: Session, user_id: Optional[str]) -> List[str]:
    user_id = require_user(user_id)
    rows = (
        session.query(ProductLog.product)
        .filter(ProductLog.user_id == user_id)
        .order_by(ProductLog.created_at.desc(), ProductLog.id.desc())
        .all()
    )
    return distinct_casefold(row.product for row in rows)
