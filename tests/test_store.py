from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from thrivelog import database
from thrivelog.errors import NotAuthenticatedError, NotFoundError
from thrivelog.store import (
    adaptive_prompts,
    after_effects,
    canon_events,
    day_summary,
    days,
    food_logs,
    personas,
    product_logs,
    profiles,
    reflections,
    symptom_logs,
)


def _at(day: int, hour: int = 12) -> datetime:
    return datetime(2025, 3, day, hour, 0, tzinfo=timezone.utc)


def test_user_scoped_calls_require_a_user(db_session: Session) -> None:
    with pytest.raises(NotAuthenticatedError) as excinfo:
        food_logs.add_food_log(db_session, None, food="Toast")
    assert str(excinfo.value) == "Not logged in"

    with pytest.raises(NotAuthenticatedError):
        reflections.get_recent_reflections(db_session, "")


def test_food_logs_filter_by_day_and_distinct(db_session: Session, user_id: str) -> None:
    food_logs.add_food_log(db_session, user_id, food="Toast", time=_at(1, 8))
    food_logs.add_food_log(db_session, user_id, food="Salad", time=_at(1, 13))
    food_logs.add_food_log(db_session, user_id, food="toast", time=_at(2, 8))
    food_logs.add_food_log(db_session, "someone-else", food="Soup", time=_at(1, 9))

    day_one = food_logs.get_food_logs(db_session, user_id, "2025-03-01")
    assert sorted(row.food for row in day_one) == ["Salad", "Toast"]
    assert len(food_logs.get_food_logs(db_session, user_id)) == 3

    # Most recent first, compared case-insensitively
    assert food_logs.get_distinct_foods(db_session, user_id) == ["toast", "Salad"]


def test_midnight_belongs_to_the_next_day(db_session: Session, user_id: str) -> None:
    symptom_logs.add_symptom_log(
        db_session, user_id, symptom="Headache", intensity=4, time=_at(2, 0)
    )

    assert symptom_logs.get_symptom_logs(db_session, user_id, "2025-03-01") == []
    assert len(symptom_logs.get_symptom_logs(db_session, user_id, "2025-03-02")) == 1


def test_product_logs_distinct(db_session: Session, user_id: str) -> None:
    product_logs.add_product_log(db_session, user_id, product="Sunscreen", category="skin")
    product_logs.add_product_log(db_session, user_id, product="SUNSCREEN")

    assert product_logs.get_distinct_products(db_session, user_id) == ["SUNSCREEN"]


def test_canon_events_period_and_close(db_session: Session, user_id: str) -> None:
    later = canon_events.add_canon_event(db_session, user_id, title="Moved house", event_time=_at(5))
    earlier = canon_events.add_canon_event(db_session, user_id, title="New job", event_time=_at(3))

    period = canon_events.get_canon_events_for_period(db_session, user_id, "2025-03-01", "2025-03-05")
    assert [event.title for event in period] == ["New job", "Moved house"]
    assert canon_events.get_canon_events_for_day(db_session, user_id, "2025-03-04") == []

    closed = canon_events.close_canon_event(db_session, user_id, earlier.id)
    assert closed.closed_time is not None
    assert later.closed_time is None

    with pytest.raises(NotFoundError):
        canon_events.close_canon_event(db_session, "someone-else", later.id)


def test_day_defaults_and_upsert(db_session: Session, user_id: str) -> None:
    assert days.get_day(db_session, user_id, "2025-03-01") == {
        "date": "2025-03-01",
        "is_period": False,
        "is_pooped": False,
        "is_housekeeping_day": False,
        "reflection": "",
        "temperature": None,
    }

    days.set_day(db_session, user_id, {"is_period": True}, "2025-03-01")
    days.set_day(db_session, user_id, {"temperature": 36.8}, "2025-03-01")

    day = days.get_day(db_session, user_id, "2025-03-01")
    assert day["is_period"] is True
    assert day["temperature"] == 36.8
    assert len(days.get_days_for_month(db_session, user_id, 2025, 3)) == 1
    assert days.get_days_for_month(db_session, user_id, 2025, 4) == []


def test_day_rejects_unknown_fields(db_session: Session, user_id: str) -> None:
    with pytest.raises(ValueError):
        days.set_day(db_session, user_id, {"mood": "great"}, "2025-03-01")


def test_reflection_tags_round_trip_in_order(db_session: Session, user_id: str) -> None:
    created = reflections.create_reflection(
        db_session,
        user_id,
        text="A long walk by the river",
        prompt_question="How calm do you feel?",
        mood_rating=4,
        tags=["calm", "hopeful", "tired"],
    )

    db_session.expire_all()
    fetched = reflections.get_recent_reflections(db_session, user_id)[0]
    assert fetched.id == created.id
    assert fetched.tags == ["calm", "hopeful", "tired"]


def test_reflection_empty_tags_are_null(db_session: Session, user_id: str) -> None:
    created = reflections.create_reflection(db_session, user_id, text="Quiet day", tags=[])
    assert created.tags is None

    updated = reflections.update_reflection(
        db_session, user_id, created.id, {"tags": ["grateful"]}
    )
    assert updated.tags == ["grateful"]

    cleared = reflections.update_reflection(db_session, user_id, created.id, {"tags": []})
    assert cleared.tags is None


def test_reflections_by_date_and_period(db_session: Session, user_id: str) -> None:
    reflections.create_reflection(db_session, user_id, text="one", created_at=_at(1))
    reflections.create_reflection(db_session, user_id, text="two", created_at=_at(2))
    reflections.create_reflection(db_session, user_id, text="three", created_at=_at(3))

    assert [row.text for row in reflections.get_reflections_for_date(db_session, user_id, "2025-03-02")] == ["two"]
    period = reflections.get_reflections_for_period(db_session, user_id, "2025-03-01", "2025-03-02")
    assert [row.text for row in period] == ["two", "one"]
    assert len(reflections.get_recent_reflections(db_session, user_id, limit=2)) == 2


def test_answered_questions(db_session: Session, user_id: str) -> None:
    reflections.create_reflection(db_session, user_id, text="x", prompt_question="Q1")
    reflections.create_reflection(db_session, user_id, text="y")

    assert reflections.answered_questions(db_session, user_id) == ["Q1"]
    assert reflections.has_answered(db_session, user_id, "Q1") is True
    assert reflections.has_answered(db_session, user_id, "q1") is False


def test_delete_reflection_is_owner_scoped(db_session: Session, user_id: str) -> None:
    row = reflections.create_reflection(db_session, user_id, text="mine")

    with pytest.raises(NotFoundError):
        reflections.delete_reflection(db_session, "someone-else", row.id)
    assert reflections.delete_reflection(db_session, user_id, row.id) is True
    assert reflections.get_recent_reflections(db_session, user_id) == []


def test_adaptive_prompts_newest_set_wins(db_session: Session, user_id: str) -> None:
    assert adaptive_prompts.get_adaptive_prompts(db_session, user_id) is None

    adaptive_prompts.save_adaptive_prompts(db_session, user_id, ["Q1"])
    adaptive_prompts.save_adaptive_prompts(db_session, user_id, ["Q2", "Q3"])

    stored = adaptive_prompts.get_adaptive_prompts(db_session, user_id)
    assert adaptive_prompts.questions_from_payload(stored.prompts) == ["Q2", "Q3"]


def test_questions_from_payload_shapes() -> None:
    assert adaptive_prompts.questions_from_payload({"questions": ["A"]}) == ["A"]
    assert adaptive_prompts.questions_from_payload(["B"]) == ["B"]
    assert adaptive_prompts.questions_from_payload("nope") is None


def test_personas_crud(db_session: Session, user_id: str) -> None:
    persona = personas.create_persona(
        db_session, user_id, {"name": "Grandma", "personality": "gentle"}
    )
    assert [row.name for row in personas.get_personas(db_session, user_id)] == ["Grandma"]

    updated = personas.update_persona(db_session, user_id, persona.id, {"interests": "gardening"})
    assert updated.interests == "gardening"

    assert personas.delete_persona(db_session, user_id, persona.id) is True
    with pytest.raises(NotFoundError):
        personas.get_persona_by_id(db_session, user_id, persona.id)


def test_profile_lifecycle(db_session: Session, user_id: str) -> None:
    with pytest.raises(NotFoundError):
        profiles.get_profile(db_session, user_id)

    profiles.create_profile(db_session, user_id, {"name": "Sam", "language": "ko"})
    updated = profiles.update_profile(db_session, user_id, {"about": "Night owl"})

    assert updated.id == user_id
    assert updated.language == "ko"
    assert updated.about == "Night owl"
    assert updated.updated_at is not None


def test_after_effects_and_day_summary(db_session: Session, user_id: str) -> None:
    event = canon_events.add_canon_event(db_session, user_id, title="Breakup", event_time=_at(4, 9))
    food_logs.add_food_log(db_session, user_id, food="Oats", time=_at(4, 8))
    food_logs.add_food_log(db_session, user_id, food="Rice", time=_at(4, 19))
    symptom_logs.add_symptom_log(db_session, user_id, symptom="Bloating", time=_at(4, 20))
    after_effects.add_after_effect(db_session, user_id, log_type="canon", log_id=event.id, response="Still sad")
    after_effects.add_after_effect(db_session, user_id, log_type="canon", log_id=event.id, response="Better")

    with pytest.raises(ValueError):
        after_effects.add_after_effect(db_session, user_id, log_type="mood")

    assert after_effects.latest_canon_response(db_session, user_id, event.id) == "Better"

    today = datetime.now(timezone.utc).date().isoformat()
    assert len(after_effects.get_after_effects_for_day(db_session, user_id, today)) == 2

    summary = day_summary.get_day_summary(db_session, user_id, "2025-03-04")
    assert summary["meals_logged"] == 2
    assert summary["symptoms_logged"] == 1
    assert [row.title for row in summary["canon_events"]] == ["Breakup"]
    assert summary["canon_responses"] == {event.id: "Better"}
    assert summary["day"]["is_period"] is False


class FlakySession:
    def __init__(self, *errors: Exception) -> None:
        self.errors = list(errors)
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1
        if self.errors:
            raise self.errors.pop(0)

    def rollback(self) -> None:
        self.rollbacks += 1


def _locked() -> OperationalError:
    return OperationalError("COMMIT", {}, Exception("database is locked"))


def test_commit_retries_while_locked(monkeypatch) -> None:
    monkeypatch.setattr(database.time, "sleep", lambda seconds: None)
    session = FlakySession(_locked(), _locked())

    database.commit_with_retry(session)

    assert session.commits == 3
    assert session.rollbacks == 2


def test_commit_other_errors_propagate(monkeypatch) -> None:
    monkeypatch.setattr(database.time, "sleep", lambda seconds: None)
    session = FlakySession(OperationalError("COMMIT", {}, Exception("disk I/O error")))

    with pytest.raises(OperationalError):
        database.commit_with_retry(session)

    assert session.commits == 1
