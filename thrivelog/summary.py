"""Weekly digest of recent reflections."""

from __future__ import annotations

import logging
import re
from typing import List

from sqlalchemy.orm import Session

from .errors import ErrorKind, MalformedResponseError, ProviderError
from .json_extract import extract_json
from .providers import GroqClient
from .rate_limiter import RateLimiter
from .schemas import WeeklyDigest
from .store import reflections
from .templates import DIGEST_SYSTEM_PROMPT, digest_prompt

logger = logging.getLogger(__name__)

DIGEST_REFLECTION_COUNT = 10


def empty_digest() -> WeeklyDigest:
    return WeeklyDigest(
        summary="No reflections found. Start reflecting to get AI insights!",
        bullets=["Add your first reflection to see personalized insights"],
        tip="Try reflecting daily to build meaningful patterns",
    )


def limited_digest() -> WeeklyDigest:
    return WeeklyDigest(
        summary=(
            "AI insights temporarily unavailable due to API limits. "
            "Your reflections are being processed."
        ),
        bullets=[
            "Continue reflecting daily",
            "Track your emotional patterns",
            "Focus on self-awareness",
        ],
        tip="Regular reflection helps build emotional intelligence and self-understanding.",
        theme="Personal Growth",
    )


_BULLET_PREFIX = re.compile(r"^[\*\-\d\.\s]+")


def _scan_digest(content: str) -> WeeklyDigest:
    """Pull a digest out of Markdown-ish prose."""
    lines = [line for line in content.split("\n") if line.strip()]

    summary_line = next((line for line in lines if "Summary" in line), None)
    if summary_line is not None:
        summary = re.sub(r".*Summary[:\s]*", "", summary_line, flags=re.IGNORECASE)
    elif lines:
        summary = lines[0]
    else:
        summary = ""
    summary = summary.replace("**", "").strip()

    bullets: List[str] = []
    in_bullets = False
    for line in lines:
        if "Key Areas" in line or "Areas for Reflection" in line:
            in_bullets = True
            continue
        if in_bullets and (line.startswith(("*", "-")) or re.match(r"^\d+\.", line)):
            bullets.append(_BULLET_PREFIX.sub("", line).strip())

    tip_line = next((line for line in lines if "Tip" in line), None)
    tip = ""
    if tip_line is not None:
        tip = re.sub(r".*Tip[:\s]*", "", tip_line, flags=re.IGNORECASE)
        tip = tip.replace("**", "").strip()

    return WeeklyDigest(
        summary=summary or "Your reflection patterns show interesting insights",
        bullets=bullets or ["Keep up the great reflection work"],
        tip=tip or "Continue your wellness journey",
        theme="Wellness",
    )


def parse_digest(content: str) -> WeeklyDigest:
    try:
        parsed = extract_json(content, expect=dict)
    except MalformedResponseError:
        logger.info("Digest response was not JSON; scanning lines")
        return _scan_digest(content)

    bullets = parsed.get("bullets")
    if not isinstance(bullets, list) or not bullets:
        bullets = ["Keep up the great reflection work"]
    return WeeklyDigest(
        summary=parsed.get("summary") or "Your reflection patterns show interesting insights",
        bullets=[str(bullet) for bullet in bullets],
        tip=parsed.get("tip") or "Continue your wellness journey",
        theme=parsed.get("theme") or "Wellness",
    )


def _is_limit_error(exc: ProviderError) -> bool:
    if exc.kind in (ErrorKind.RATE_LIMITED, ErrorKind.QUOTA_EXCEEDED):
        return True
    message = exc.message.lower()
    return "rate limit" in message or "quota" in message


async def generate_weekly_digest(
    session: Session, user_id: str, groq: GroqClient, limiter: RateLimiter
) -> WeeklyDigest:
    """Summarise the user's most recent reflections.

    The client-side throttle raises ``RateLimitExceeded`` before anything is
    read. Provider rate-limit and quota failures turn into a fixed digest;
    other provider errors propagate.
    """
    limiter.acquire()

    recent = reflections.get_recent_reflections(
        session, user_id, limit=DIGEST_REFLECTION_COUNT
    )
    if not recent:
        return empty_digest()

    texts = [row.text.strip() for row in recent if row.text and row.text.strip()]
    if not texts:
        return empty_digest()
    try:
        content = await groq.chat(
            [
                {"role": "system", "content": DIGEST_SYSTEM_PROMPT},
                {"role": "user", "content": digest_prompt(texts)},
            ],
            temperature=0.7,
            max_tokens=500,
        )
    except ProviderError as exc:
        if _is_limit_error(exc):
            logger.warning("Groq quota/rate limit hit, providing fallback digest: %s", exc)
            return limited_digest()
        raise

    return parse_digest(content)
