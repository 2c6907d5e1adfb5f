from __future__ import annotations

from typing import Any, List

import pytest
from sqlalchemy.orm import Session

from thrivelog.errors import ErrorKind, ProviderError
from thrivelog.prompt_rotation import (
    ALREADY_ANSWERED_NOTICE,
    FALLBACK_QUESTIONS,
    AdaptivePromptGenerator,
    PromptRotation,
    advisory_for,
    get_user_context_for_prompts,
    pick_replacement,
)
from thrivelog.schemas import PromptSource, PromptState
from thrivelog.store import adaptive_prompts, reflections


class FakeGenerator:
    def __init__(self, *results: Any) -> None:
        self.results = list(results)
        self.contexts: List[dict] = []

    async def generate(self, context, count=7):
        self.contexts.append(context)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeAnthropic:
    def __init__(self, content: str) -> None:
        self.content = content

    async def messages(self, prompt, **kwargs):
        return self.content


def _answer(session: Session, user_id: str, question: str, **fields) -> None:
    reflections.create_reflection(
        session, user_id, text="answer", prompt_question=question, **fields
    )


@pytest.mark.asyncio
async def test_load_resumes_at_first_unanswered(db_session: Session, user_id: str) -> None:
    adaptive_prompts.save_adaptive_prompts(db_session, user_id, ["Q1", "Q2", "Q3"])
    _answer(db_session, user_id, "Q1")
    rotation = PromptRotation(db_session, FakeGenerator())

    state = await rotation.load_prompts(user_id)

    assert state.questions == ["Q1", "Q2", "Q3"]
    assert state.current_index == 1
    assert state.current_question == "Q2"
    assert state.source is PromptSource.STORED


@pytest.mark.asyncio
async def test_load_accepts_wrapped_payload(db_session: Session, user_id: str) -> None:
    adaptive_prompts.save_adaptive_prompts(db_session, user_id, [])
    stored = adaptive_prompts.get_adaptive_prompts(db_session, user_id)
    stored.prompts = {"questions": ["How rested do you feel?"]}
    db_session.commit()

    state = await PromptRotation(db_session, FakeGenerator()).load_prompts(user_id)

    assert state.questions == ["How rested do you feel?"]


@pytest.mark.asyncio
async def test_load_generates_when_nothing_stored(db_session: Session, user_id: str) -> None:
    generator = FakeGenerator(["How calm do you feel?", "How connected do you feel?"])

    state = await PromptRotation(db_session, generator).load_prompts(user_id)

    assert state.source is PromptSource.GENERATED
    assert state.current_index == 0
    stored = adaptive_prompts.get_adaptive_prompts(db_session, user_id)
    assert stored.prompts == ["How calm do you feel?", "How connected do you feel?"]


@pytest.mark.asyncio
async def test_generation_failure_uses_fallback_with_advisory(
    db_session: Session, user_id: str
) -> None:
    error = ProviderError(
        "anthropic",
        ErrorKind.RATE_LIMITED,
        "Anthropic API error: 429 - rate limit exceeded, temporarily unavailable due to high usage",
    )
    state = await PromptRotation(db_session, FakeGenerator(error)).generate_new_prompts(user_id)

    assert state.questions == FALLBACK_QUESTIONS
    assert len(state.questions) == 7
    assert state.source is PromptSource.FALLBACK
    assert "temporarily unavailable due to high usage" in state.notice


@pytest.mark.asyncio
async def test_unrecognised_failure_has_no_advisory(db_session: Session, user_id: str) -> None:
    error = ProviderError("anthropic", ErrorKind.NETWORK, "connection reset")

    state = await PromptRotation(db_session, FakeGenerator(error)).generate_new_prompts(user_id)

    assert state.source is PromptSource.FALLBACK
    assert state.notice is None


@pytest.mark.asyncio
async def test_empty_generation_falls_back(db_session: Session, user_id: str) -> None:
    state = await PromptRotation(db_session, FakeGenerator([])).generate_new_prompts(user_id)

    assert state.source is PromptSource.FALLBACK


def test_advisory_for_known_messages() -> None:
    assert "quota exceeded" in advisory_for(Exception("Groq quota exceeded"))
    assert "currently unavailable" in advisory_for(Exception("Service is currently unavailable"))
    assert advisory_for(Exception("boom")) is None


def test_navigation_wraps_and_blocks_answered(db_session: Session, user_id: str) -> None:
    rotation = PromptRotation(db_session, FakeGenerator())
    state = PromptState(questions=["Q1", "Q2", "Q3"], current_index=2)

    wrapped = rotation.next_prompt(user_id, state)
    assert wrapped.current_index == 0

    _answer(db_session, user_id, "Q2")
    blocked = rotation.previous_prompt(user_id, state)
    assert blocked.current_index == 2
    assert blocked.notice == ALREADY_ANSWERED_NOTICE


@pytest.mark.asyncio
async def test_refresh_replaces_only_current(db_session: Session, user_id: str) -> None:
    generator = FakeGenerator(
        ["How calm do you feel?", "How calm are you today?", "How rested do you feel?"]
    )
    rotation = PromptRotation(db_session, generator)
    state = PromptState(questions=["Q1", "How calm do you feel?", "Q3"], current_index=1)

    refreshed = await rotation.refresh_current_prompt(user_id, state)

    assert refreshed.questions == ["Q1", "How rested do you feel?", "Q3"]
    assert refreshed.current_index == 1
    stored = adaptive_prompts.get_adaptive_prompts(db_session, user_id)
    assert stored.prompts == refreshed.questions


@pytest.mark.asyncio
async def test_refresh_refuses_answered_question(db_session: Session, user_id: str) -> None:
    _answer(db_session, user_id, "Q1")
    generator = FakeGenerator(["New question?"])
    state = PromptState(questions=["Q1", "Q2"], current_index=0)

    refreshed = await PromptRotation(db_session, generator).refresh_current_prompt(user_id, state)

    assert refreshed.questions == ["Q1", "Q2"]
    assert refreshed.notice == ALREADY_ANSWERED_NOTICE
    assert generator.contexts == []


@pytest.mark.asyncio
async def test_refresh_failure_leaves_state(db_session: Session, user_id: str) -> None:
    generator = FakeGenerator(ProviderError("anthropic", ErrorKind.TIMEOUT, "timeout"))
    state = PromptState(questions=["Q1", "Q2"], current_index=1)

    refreshed = await PromptRotation(db_session, generator).refresh_current_prompt(user_id, state)

    assert refreshed == state


def test_pick_replacement() -> None:
    assert pick_replacement("How calm do you feel?", ["How calm do you feel?", "How CALM now?", "How open?"]) == "How open?"
    assert pick_replacement("How calm?", ["How calm?", "Still calm?"]) == "How calm?"
    assert pick_replacement("Mood", ["Mood", "Energy?"]) == "Energy?"


def test_user_context_summarises_recent_reflections(db_session: Session, user_id: str) -> None:
    _answer(db_session, user_id, "Q1", mood_rating=5, tags=["calm", "grateful"])
    _answer(db_session, user_id, "Q2", mood_rating=4, tags=["calm"])
    _answer(db_session, user_id, "Q3", tags=["tired"])

    context = get_user_context_for_prompts(db_session, user_id)

    assert context["recentMoodAverage"] == 4.5
    assert context["commonTags"][0] == "calm"
    assert set(context["commonTags"]) == {"calm", "grateful", "tired"}
    assert context["reflectionCount"] == 3
    assert context["userPreferences"]["moodPattern"] == "positive"


def test_user_context_defaults(db_session: Session, user_id: str) -> None:
    context = get_user_context_for_prompts(db_session, user_id)

    assert context["recentMoodAverage"] == 3
    assert context["userPreferences"] == {
        "focusAreas": ["emotional", "gratitude"],
        "moodPattern": "neutral",
    }


@pytest.mark.asyncio
async def test_generator_parses_wrapped_and_quoted_output() -> None:
    wrapped = AdaptivePromptGenerator(
        FakeAnthropic('```json\n{"questions": ["How calm do you feel?", ""]}\n```')
    )
    assert await wrapped.generate({}) == ["How calm do you feel?"]

    quoted = AdaptivePromptGenerator(
        FakeAnthropic('"questions": "How hopeful do you feel?" and "How rested are you?"')
    )
    assert await quoted.generate({}) == ["How hopeful do you feel?", "How rested are you?"]
