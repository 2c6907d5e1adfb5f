"""Translation of app and reflection text through OpenAI chat."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from .errors import RateLimitExceeded, ThrivelogError
from .providers import OpenAIClient
from .rate_limiter import RateLimiter
from .templates import TRANSCRIPT_TRANSLATION_PROMPT, TRANSLATION_SYSTEM_PROMPT, language_name

logger = logging.getLogger(__name__)


async def translate_to_language(
    openai: OpenAIClient, text: str, target_language: str = "en"
) -> str:
    """Translate a transcript; errors propagate to the caller."""
    return await openai.chat(
        [
            {
                "role": "system",
                "content": TRANSCRIPT_TRANSLATION_PROMPT.format(language=target_language),
            },
            {"role": "user", "content": text},
        ],
        temperature=0.3,
        max_tokens=1000,
    )


class TranslationService:
    """Best-effort translation with a per-instance cache.

    The original text comes back whenever translation is not needed, the
    throttle is full or the provider fails.
    """

    def __init__(self, openai: OpenAIClient, limiter: RateLimiter) -> None:
        self.openai = openai
        self.limiter = limiter
        self._cache: Dict[str, str] = {}

    @staticmethod
    def needs_translation(language: Optional[str]) -> bool:
        return bool(language) and language != "en"

    async def translate(self, text: str, language: Optional[str], context: str = "") -> str:
        if not text or not self.needs_translation(language):
            return text

        cache_key = f"{language}:{text}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            self.limiter.acquire()
        except RateLimitExceeded as exc:
            logger.info("Translation throttled, using original text: %s", exc)
            return text

        try:
            translated = await self.openai.chat(
                [
                    {
                        "role": "system",
                        "content": TRANSLATION_SYSTEM_PROMPT.format(
                            language=language_name(language), context=context
                        ),
                    },
                    {"role": "user", "content": text},
                ],
                temperature=0.1,
                max_tokens=500,
            )
        except ThrivelogError as exc:
            logger.warning("Translation failed, using original text: %s", exc)
            return text

        if translated and translated != text:
            self._cache[cache_key] = translated
            return translated
        return text

    async def translate_batch(
        self, texts: Mapping[str, str], language: Optional[str], context: str = ""
    ) -> Dict[str, str]:
        if not self.needs_translation(language):
            return dict(texts)
        return {key: await self.translate(text, language, context) for key, text in texts.items()}

    def clear_cache(self) -> None:
        self._cache.clear()
