"""Everything logged for one day, gathered for the day view."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from . import after_effects, canon_events, days, food_logs, product_logs, reflections, symptom_logs
from ._common import require_user


def get_day_summary(
    session: Session, user_id: Optional[str], date_str: str
) -> Dict[str, Any]:
    user_id = require_user(user_id)
    foods = food_logs.get_food_logs(session, user_id, date_str)
    symptoms = symptom_logs.get_symptom_logs(session, user_id, date_str)
    events = canon_events.get_canon_events_for_day(session, user_id, date_str)
    effects = after_effects.get_after_effects_for_day(session, user_id, date_str)

    return {
        "date": date_str,
        "day": days.get_day(session, user_id, date_str),
        "food_logs": foods,
        "symptom_logs": symptoms,
        "product_logs": product_logs.get_product_logs(session, user_id, date_str),
        "canon_events": events,
        "after_effects": effects,
        "reflections": reflections.get_reflections_for_date(session, user_id, date_str),
        "meals_logged": len(foods),
        "symptoms_logged": len(symptoms),
        "canon_responses": {
            event.id: after_effects.latest_canon_response(session, user_id, event.id)
            for event in events
        },
    }
