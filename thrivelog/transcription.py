"""Voice reflections: Whisper transcription plus optional translation."""

from __future__ import annotations

import logging
import re

from .providers import OpenAIClient
from .schemas import Transcription
from .translation import translate_to_language

logger = logging.getLogger(__name__)

# Hangul, CJK ideographs, kana, Cyrillic, Greek and Arabic
_NON_LATIN_SCRIPT = re.compile(
    r"[\u1100-\u11FF\u3130-\u318F\uAC00-\uD7AF\u4e00-\u9fff"
    r"\u3040-\u309f\u30a0-\u30ff\u0400-\u04ff\u0370-\u03ff\u0600-\u06ff]"
)


def looks_non_english(text: str) -> bool:
    return bool(_NON_LATIN_SCRIPT.search(text or ""))


async def transcribe_audio(
    openai: OpenAIClient,
    audio: bytes,
    filename: str = "recording.m4a",
    content_type: str = "audio/m4a",
) -> str:
    return await openai.transcribe(audio, filename=filename, content_type=content_type)


async def transcribe_and_translate(
    openai: OpenAIClient,
    audio: bytes,
    target_language: str = "en",
    filename: str = "recording.m4a",
    content_type: str = "audio/m4a",
) -> Transcription:
    """Transcribe, then translate when the script or target language calls for it."""
    text = await transcribe_audio(openai, audio, filename, content_type)

    if looks_non_english(text) or target_language != "en":
        logger.info("Translating transcript to %s", target_language)
        text = await translate_to_language(openai, text, target_language)

    return Transcription(text=text, language=target_language)
