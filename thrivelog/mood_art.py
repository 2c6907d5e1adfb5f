"""Mood art rendered with Fal.ai."""

from __future__ import annotations

import logging
from typing import Optional

from .providers import FalClient
from .schemas import MoodArt
from .templates import mood_art_prompt

logger = logging.getLogger(__name__)


def build_mood_art_prompt(
    mood: str,
    theme: Optional[str] = None,
    postcard_text: str = "",
    summary: Optional[str] = None,
) -> str:
    return mood_art_prompt(mood, theme=theme, summary=summary, postcard_text=postcard_text)


async def generate_mood_art(
    fal: FalClient,
    mood: str,
    theme: Optional[str] = None,
    postcard_text: str = "",
) -> MoodArt:
    """Render an abstract image for ``mood``, optionally lettered with a note."""
    prompt = build_mood_art_prompt(mood, theme, postcard_text)
    image_url = await fal.generate_image(prompt)
    logger.info("Generated mood art for %s", mood)
    return MoodArt(
        image_url=image_url,
        mood=mood,
        theme=theme,
        postcard_text=postcard_text,
        prompt=prompt,
    )
