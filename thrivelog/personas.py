"""Chat with supportive personas backed by Gemini."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .config import GEMINI_PERSONA_MODELS
from .errors import ErrorKind, ProviderError
from .providers import GeminiClient, GeminiReply
from .templates import (
    contextual_starter_prompt,
    describe_persona,
    generic_starter_prompt,
    persona_details,
    persona_reply_prompt,
)

logger = logging.getLogger(__name__)

PERSONA_TEMPERATURE = 0.8
PERSONA_MAX_TOKENS = 1000


def _has_context(context: Optional[Mapping[str, Any]]) -> bool:
    if not context:
        return False
    return bool(context.get("mood") or context.get("theme") or context.get("reflection_text"))


class PersonaChat:
    """Conversation starters and replies in a persona's voice.

    ``details`` is a stored persona (name, personality, communication style,
    ...) that replaces the built-in description when given.
    """

    def __init__(
        self, gemini: GeminiClient, models: Optional[List[str]] = None
    ) -> None:
        self.gemini = gemini
        self.models = list(models or GEMINI_PERSONA_MODELS)

    def resolve(
        self, persona_id: str, details: Optional[Mapping[str, Any]] = None
    ) -> Tuple[str, str]:
        builtin = persona_details(persona_id)
        name = (details or {}).get("name") or builtin["name"]
        return name, describe_persona(details, builtin["description"])

    async def _generate(self, prompt: str) -> GeminiReply:
        """Try each model in turn, moving on only when a model is not found."""
        for position, model in enumerate(self.models):
            try:
                reply = await self.gemini.generate_text(
                    prompt,
                    model=model,
                    temperature=PERSONA_TEMPERATURE,
                    max_output_tokens=PERSONA_MAX_TOKENS,
                )
            except ProviderError as exc:
                if exc.kind is ErrorKind.NOT_FOUND and position < len(self.models) - 1:
                    logger.warning("Model %s not available, trying next", model)
                    continue
                raise
            logger.debug("Persona reply generated with %s", model)
            return reply

        raise ProviderError("gemini", ErrorKind.NOT_FOUND, "No Gemini model available")

    @staticmethod
    def _text_or_fallback(reply: GeminiReply, fallback: str) -> str:
        if reply.text:
            return reply.text
        if reply.finish_reason == "MAX_TOKENS":
            logger.warning("Persona reply truncated by token limit, using fallback")
            return fallback
        raise ProviderError("gemini", ErrorKind.MALFORMED, "No content generated")

    async def conversation_starter(
        self,
        persona_id: str,
        context: Optional[Mapping[str, Any]] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> str:
        name, description = self.resolve(persona_id, details)
        if _has_context(context):
            prompt = contextual_starter_prompt(
                name,
                description,
                context.get("mood"),
                context.get("theme"),
                context.get("reflection_text"),
            )
        else:
            prompt = generic_starter_prompt(name, description)

        reply = await self._generate(prompt)
        return self._text_or_fallback(
            reply,
            f"Hello! I'm {name}. How are you feeling today? "
            "I'm here to listen and support you.",
        )

    async def respond(
        self,
        persona_id: str,
        message: str,
        history: Iterable[Mapping[str, Any]] = (),
        context: Optional[Mapping[str, Any]] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> str:
        name, description = self.resolve(persona_id, details)
        prompt = persona_reply_prompt(
            name,
            description,
            message,
            history,
            mood=(context or {}).get("mood"),
            theme=(context or {}).get("theme"),
            has_context=bool(context),
        )
        reply = await self._generate(prompt)
        return self._text_or_fallback(
            reply,
            "I understand. I'm here to listen and support you. "
            "Can you tell me more about what's on your mind?",
        )
