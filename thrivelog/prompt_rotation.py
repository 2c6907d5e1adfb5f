"""Adaptive reflection prompts.

Each user has an ordered set of LLM-generated questions. The current index
is not stored; it is derived on load as the first question the user has
not yet written a reflection for.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import ADAPTIVE_QUESTION_COUNT
from .errors import MalformedResponseError, ThrivelogError
from .json_extract import extract_json, extract_quoted_strings
from .models import Reflection
from .providers import AnthropicClient
from .schemas import PromptSource, PromptState
from .store import adaptive_prompts, reflections
from .store._common import require_user
from .templates import adaptive_questions_prompt

logger = logging.getLogger(__name__)

FALLBACK_QUESTIONS = [
    "How are you feeling right now?",
    "What's one thing you're grateful for today?",
    "What was the highlight of your day?",
    "How would you rate your energy level?",
    "What's on your mind?",
    "How did you handle stress today?",
    "What are you looking forward to?",
]

ALREADY_ANSWERED_NOTICE = (
    "You've already answered this question. Please complete your current reflection first."
)

_ADVISORIES = (
    (
        ("temporarily unavailable", "high usage"),
        "Personalized question generation is temporarily unavailable due to high "
        "usage. Using default questions for now.",
    ),
    (
        ("service is currently unavailable",),
        "Personalized question generation service is currently unavailable. "
        "Using default questions for now.",
    ),
    (
        ("quota exceeded",),
        "Personalized question generation quota exceeded. Using default questions for now.",
    ),
)


def advisory_for(error: BaseException) -> Optional[str]:
    """Return the user-facing advisory for recognised failures, else None."""
    message = str(error).lower()
    for needles, advisory in _ADVISORIES:
        if any(needle in message for needle in needles):
            return advisory
    return None


def _default_context(user_id: str) -> Dict[str, Any]:
    return {
        "userId": user_id,
        "recentMoodAverage": 3,
        "commonTags": [],
        "reflectionCount": 0,
        "lastReflectionDate": None,
        "userPreferences": {
            "focusAreas": ["emotional", "gratitude"],
            "moodPattern": "neutral",
        },
    }


def get_user_context_for_prompts(session: Session, user_id: str) -> Dict[str, Any]:
    """Summarise recent mood and tags to seed question generation.

    Looks at the last 10 reflections: their mean mood rating (3 when none are
    rated) and the three most frequent tags.
    """
    try:
        recent = (
            session.query(Reflection.mood_rating, Reflection.tags, Reflection.created_at)
            .filter(Reflection.user_id == user_id)
            .order_by(Reflection.created_at.desc(), Reflection.id.desc())
            .limit(10)
            .all()
        )
    except SQLAlchemyError:
        logger.exception("Could not load reflections for prompt context")
        session.rollback()
        return _default_context(user_id)

    ratings = [row.mood_rating for row in recent if row.mood_rating]
    average_mood = sum(ratings) / len(ratings) if ratings else 3

    # most_common keeps first-seen order on ties
    tag_counts = Counter(tag for row in recent for tag in (row.tags or []))
    common_tags = [tag for tag, _ in tag_counts.most_common(3)]

    if average_mood > 3.5:
        mood_pattern = "positive"
    elif average_mood < 2.5:
        mood_pattern = "struggling"
    else:
        mood_pattern = "neutral"

    last_date = recent[0].created_at if recent else None
    return {
        "userId": user_id,
        "recentMoodAverage": average_mood,
        "commonTags": common_tags,
        "reflectionCount": len(recent),
        "lastReflectionDate": last_date.isoformat() if last_date else None,
        "userPreferences": {
            "focusAreas": common_tags or ["emotional", "gratitude"],
            "moodPattern": mood_pattern,
        },
    }


def _clean_questions(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [value.strip() for value in values if isinstance(value, str) and value.strip()]


class AdaptivePromptGenerator:
    """Asks Anthropic for questions the user can rate on a 1-5 scale."""

    def __init__(self, anthropic: AnthropicClient) -> None:
        self.anthropic = anthropic

    async def generate(
        self, context: Mapping[str, Any], count: int = ADAPTIVE_QUESTION_COUNT
    ) -> List[str]:
        content = await self.anthropic.messages(
            adaptive_questions_prompt(context, count), max_tokens=1000
        )
        try:
            parsed = extract_json(content)
        except MalformedResponseError:
            logger.info("Adaptive questions were not JSON; using quoted strings")
            return [
                question
                for question in _clean_questions(extract_quoted_strings(content))
                if question != "questions"
            ]

        if isinstance(parsed, dict):
            parsed = parsed.get("questions")
        return _clean_questions(parsed)


def pick_replacement(current: str, candidates: List[str]) -> str:
    """Pick the first candidate that differs from ``current``.

    A candidate also has to avoid the current question's second word, so
    "How calm do you feel?" is not swapped for "How calm are you today?".
    When nothing qualifies the first candidate is used.
    """
    words = current.lower().split(" ")
    key = words[1] if len(words) > 1 else None
    for candidate in candidates:
        if candidate == current:
            continue
        if key is not None and key in candidate.lower():
            continue
        return candidate
    return candidates[0]


class PromptRotation:
    """Load, navigate and refresh a user's reflection questions."""

    def __init__(
        self,
        session: Session,
        generator: AdaptivePromptGenerator,
        question_count: int = ADAPTIVE_QUESTION_COUNT,
    ) -> None:
        self.session = session
        self.generator = generator
        self.question_count = question_count

    async def load_prompts(self, user_id: Optional[str]) -> PromptState:
        user_id = require_user(user_id)
        try:
            stored = adaptive_prompts.get_adaptive_prompts(self.session, user_id)
            questions = _clean_questions(
                adaptive_prompts.questions_from_payload(stored.prompts) if stored else None
            )
            if not questions:
                logger.info("No usable stored prompts for %s; generating", user_id)
                return await self.generate_new_prompts(user_id)

            answered = set(reflections.answered_questions(self.session, user_id))
        except SQLAlchemyError:
            logger.exception("Loading stored prompts failed; generating new ones")
            self.session.rollback()
            return await self.generate_new_prompts(user_id)

        current_index = next(
            (index for index, question in enumerate(questions) if question not in answered),
            0,
        )
        return PromptState(
            questions=questions, current_index=current_index, source=PromptSource.STORED
        )

    async def generate_new_prompts(self, user_id: Optional[str]) -> PromptState:
        """Generate and persist a new set, or fall back to the default questions."""
        user_id = require_user(user_id)
        try:
            questions = await self._generate(user_id)
            adaptive_prompts.save_adaptive_prompts(self.session, user_id, questions)
        except (ThrivelogError, SQLAlchemyError) as exc:
            logger.warning("Adaptive prompt generation failed, using defaults: %s", exc)
            if isinstance(exc, SQLAlchemyError):
                self.session.rollback()
            return PromptState(
                questions=list(FALLBACK_QUESTIONS),
                current_index=0,
                notice=advisory_for(exc),
                source=PromptSource.FALLBACK,
            )

        return PromptState(
            questions=questions, current_index=0, source=PromptSource.GENERATED
        )

    async def _generate(self, user_id: str) -> List[str]:
        context = get_user_context_for_prompts(self.session, user_id)
        questions = await self.generator.generate(context, self.question_count)
        if not questions:
            raise MalformedResponseError("No questions generated")
        return questions

    def next_prompt(self, user_id: Optional[str], state: PromptState) -> PromptState:
        return self._move(user_id, state, 1)

    def previous_prompt(self, user_id: Optional[str], state: PromptState) -> PromptState:
        return self._move(user_id, state, -1)

    def _move(self, user_id: Optional[str], state: PromptState, step: int) -> PromptState:
        user_id = require_user(user_id)
        if not state.questions:
            return state

        candidate = (state.current_index + step) % len(state.questions)
        if reflections.has_answered(self.session, user_id, state.questions[candidate]):
            return state.model_copy(update={"notice": ALREADY_ANSWERED_NOTICE})
        return state.model_copy(update={"current_index": candidate, "notice": None})

    async def refresh_current_prompt(
        self, user_id: Optional[str], state: PromptState
    ) -> PromptState:
        """Replace only the current question with a freshly generated one.

        The other entries keep their order. Generation failures leave the
        state as it was.
        """
        user_id = require_user(user_id)
        current = state.current_question
        if current is None:
            return await self.generate_new_prompts(user_id)
        if reflections.has_answered(self.session, user_id, current):
            return state.model_copy(update={"notice": ALREADY_ANSWERED_NOTICE})

        try:
            candidates = await self._generate(user_id)
            updated = list(state.questions)
            updated[state.current_index] = pick_replacement(current, candidates)
            adaptive_prompts.save_adaptive_prompts(self.session, user_id, updated)
        except (ThrivelogError, SQLAlchemyError) as exc:
            logger.warning("Refreshing the current prompt failed: %s", exc)
            if isinstance(exc, SQLAlchemyError):
                self.session.rollback()
            return state

        return state.model_copy(
            update={"questions": updated, "notice": None, "source": PromptSource.GENERATED}
        )
