"""Mood and content analysis across providers.

Images go to Gemini first and Groq vision second, and end on a fixed
default so the caller always gets something to show. Text mood scores come
from Groq and may fail outright. Mood tags come from Groq and degrade to an
empty list.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import httpx

from .config import (
    GROQ_VISION_MODEL,
    HTTP_TIMEOUT_SECONDS,
    MOOD_TEXT_DEBOUNCE_SECONDS,
    MOOD_TEXT_MIN_LENGTH,
)
from .errors import ErrorKind, MalformedResponseError, ProviderError, ThrivelogError
from .json_extract import (
    extract_field_number,
    extract_field_str,
    extract_json,
    extract_quoted_strings,
    find_line,
    lines_containing,
)
from .providers import GeminiClient, GroqClient
from .rate_limiter import RateLimiter
from .schemas import (
    ImageAnalysis,
    MoodAnalysis,
    ProviderResult,
    TagSource,
    normalize_provider_result,
)
from .templates import (
    IMAGE_ANALYSIS_PROMPT,
    MOOD_RATING_SYSTEM_PROMPT,
    MOOD_TAGS_SYSTEM_PROMPT,
    mood_rating_user_prompt,
    mood_tags_user_prompt,
)
from .time_utils import utc_now

logger = logging.getLogger(__name__)

MAX_MOOD_TAGS = 7
MIN_TAG_TEXT_LENGTH = 10

DEFAULT_IMAGE_ANALYSIS = {
    "caption": "Image captured - analysis will be available shortly",
    "mood_tags": ["content", "peaceful", "reflective"],
    "mood": "content",
}


def default_image_analysis() -> ImageAnalysis:
    return ImageAnalysis(
        caption=DEFAULT_IMAGE_ANALYSIS["caption"],
        mood_tags=list(DEFAULT_IMAGE_ANALYSIS["mood_tags"]),
        mood=DEFAULT_IMAGE_ANALYSIS["mood"],
        provider=None,
    )


def normalize_confidence(value: float) -> float:
    """Map a 0-100 or 0-1 confidence onto 0-1 with two decimals.

    Values above 1 are read as percentages.
    """
    confidence = float(value)
    if confidence > 1:
        confidence = confidence / 100
    confidence = min(max(confidence, 0.0), 1.0)
    return round(confidence, 2)


def _round_score(value: float) -> int:
    score = int(float(value) + 0.5)
    return min(max(score, 1), 10)


def decode_image(image: Union[bytes, str]) -> bytes:
    """Accept raw bytes, a base64 string or a ``data:`` URI."""
    if isinstance(image, bytes):
        return image
    payload = image.split(",", 1)[1] if image.startswith("data:") else image
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image is not valid base64 data") from exc


async def fetch_image(
    url: str, timeout: float = HTTP_TIMEOUT_SECONDS
) -> Tuple[bytes, str]:
    """Download an image and return ``(bytes, mime_type)``."""
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise ProviderError("image", ErrorKind.TIMEOUT, "Image download timed out") from exc
    except httpx.HTTPStatusError as exc:
        raise ProviderError(
            "image",
            ErrorKind.NOT_FOUND if exc.response.status_code == 404 else ErrorKind.UNKNOWN,
            f"Image download failed: {exc.response.status_code}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.TransportError as exc:
        raise ProviderError("image", ErrorKind.NETWORK, f"Network error: {exc}") from exc

    mime_type = response.headers.get("content-type", "image/jpeg").split(";")[0]
    return response.content, mime_type or "image/jpeg"


def _as_tag_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def parse_image_analysis(content: str, provider: str) -> ImageAnalysis:
    """Read ``{caption, moodTags, mood}`` from provider output.

    Falls back to scanning lines for the field names when no JSON object
    can be recovered.
    """
    try:
        parsed = extract_json(content, expect=dict)
    except MalformedResponseError:
        logger.info("%s image analysis was not JSON; scanning lines", provider)
        return ImageAnalysis(
            caption=find_line(content, "caption") or "Image analyzed",
            mood_tags=lines_containing(content, "tag"),
            mood=find_line(content, "mood") or "neutral",
            provider=provider,
        )

    return ImageAnalysis(
        caption=parsed.get("caption") or "Image analyzed",
        mood_tags=_as_tag_list(parsed.get("moodTags") or parsed.get("mood_tags")),
        mood=parsed.get("mood") or "neutral",
        provider=provider,
    )


async def _image_attempt(
    provider: str, call: Callable[[], Awaitable[str]]
) -> ProviderResult:
    """Run one provider and fold its parsed analysis or failure into a result."""
    try:
        outcome: Any = parse_image_analysis(await call(), provider)
    except (ThrivelogError, ValueError, httpx.HTTPError) as exc:
        outcome = exc
    return normalize_provider_result(provider, outcome)


def parse_mood_rating(content: str) -> MoodAnalysis:
    try:
        parsed = extract_json(content, expect=dict)
        label = parsed.get("mood_label") or "neutral"
        score = parsed.get("mood_score") or 5
        confidence = parsed.get("confidence") or 50
        score = float(score)
        confidence = float(confidence)
    except (MalformedResponseError, TypeError, ValueError):
        logger.info("Mood rating was not JSON; extracting fields")
        label = extract_field_str(content, "mood_label") or "neutral"
        score = extract_field_number(content, "mood_score") or 5
        confidence = extract_field_number(content, "confidence") or 50

    return MoodAnalysis(
        groq_mood_label=str(label),
        groq_mood_score=_round_score(score),
        groq_confidence=normalize_confidence(confidence),
        groq_analysis_timestamp=utc_now(),
    )


def dedupe_tags(tags: Iterable[str], limit: int = MAX_MOOD_TAGS) -> List[str]:
    unique: List[str] = []
    for tag in tags:
        if tag and tag not in unique:
            unique.append(tag)
    return unique[:limit]


class MoodAnalyzer:
    """Coordinates the image, mood-score and tag calls."""

    def __init__(
        self,
        gemini: GeminiClient,
        groq: GroqClient,
        image_limiter: RateLimiter,
        text_limiter: RateLimiter,
        groq_vision_model: str = GROQ_VISION_MODEL,
    ) -> None:
        self.gemini = gemini
        self.groq = groq
        self.image_limiter = image_limiter
        self.text_limiter = text_limiter
        self.groq_vision_model = groq_vision_model

    async def analyze_image(
        self, image: Union[bytes, str], mime_type: str = "image/jpeg"
    ) -> ImageAnalysis:
        """Caption and tag an image.

        Raises ``RateLimitExceeded`` before any provider call when the image
        throttle is full. Provider failures never escape: Gemini falls back
        to Groq vision, and Groq falls back to a fixed default.
        """
        image_bytes = decode_image(image)
        self.image_limiter.acquire()

        attempts = (
            (
                "gemini",
                lambda: self.gemini.analyze_image(image_bytes, mime_type, IMAGE_ANALYSIS_PROMPT),
            ),
            ("groq", lambda: self._analyze_image_with_groq(image_bytes, mime_type)),
        )
        for provider, call in attempts:
            result = await _image_attempt(provider, call)
            if result.ok:
                return result.data
            logger.warning(
                "%s image analysis failed (%s): %s", provider, result.kind.value, result.message
            )

        logger.error("Both Gemini and Groq image analysis failed; using the default")
        return default_image_analysis()

    async def _analyze_image_with_groq(self, image_bytes: bytes, mime_type: str) -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": IMAGE_ANALYSIS_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                    },
                ],
            }
        ]
        return await self.groq.chat(
            messages, model=self.groq_vision_model, temperature=0.7, max_tokens=300
        )

    async def analyze_mood_text(self, text: str) -> Optional[MoodAnalysis]:
        """Score the mood of ``text`` from 1 to 10.

        Text shorter than ``MOOD_TEXT_MIN_LENGTH`` gives None without a call.
        Errors propagate; there is no default result for this path.
        """
        if len((text or "").strip()) < MOOD_TEXT_MIN_LENGTH:
            return None
        self.text_limiter.acquire()
        content = await self.groq.chat(
            [
                {"role": "system", "content": MOOD_RATING_SYSTEM_PROMPT},
                {"role": "user", "content": mood_rating_user_prompt(text)},
            ],
            temperature=0.3,
            max_tokens=150,
        )
        return parse_mood_rating(content)

    async def generate_mood_tags(self, text: Optional[str]) -> List[str]:
        """Suggest up to seven mood tags; any failure yields ``[]``."""
        if not text or len(text.strip()) < MIN_TAG_TEXT_LENGTH:
            return []

        try:
            content = await self.groq.chat(
                [
                    {"role": "system", "content": MOOD_TAGS_SYSTEM_PROMPT},
                    {"role": "user", "content": mood_tags_user_prompt(text)},
                ],
                temperature=0.7,
                max_tokens=150,
            )
        except ThrivelogError as exc:
            logger.warning("Mood tag generation failed: %s", exc)
            return []

        try:
            tags = _as_tag_list(extract_json(content, expect=list))
        except MalformedResponseError:
            tags = extract_quoted_strings(content)
        return dedupe_tags(tags)


@dataclass
class MoodTagSelection:
    """The user's chosen tags plus which provider suggested each one."""

    selected: List[str] = field(default_factory=list)
    sources: Dict[str, TagSource] = field(default_factory=dict)

    @classmethod
    def from_state(
        cls, selected: Iterable[str], sources: Mapping[str, Union[str, TagSource]]
    ) -> "MoodTagSelection":
        return cls(
            selected=list(selected),
            sources={tag: TagSource(source) for tag, source in sources.items()},
        )

    def record_text_tags(self, tags: Iterable[str]) -> None:
        for tag in tags:
            self.sources.setdefault(tag, TagSource.GROQ)

    def merge_image_tags(self, tags: Iterable[str]) -> None:
        # An existing source is kept, so text tags stay attributed to groq
        for tag in tags:
            if tag not in self.selected:
                self.selected.append(tag)
            self.sources.setdefault(tag, TagSource.GEMINI)

    def clear_image_tags(self) -> None:
        image_tags = {
            tag for tag, source in self.sources.items() if source is TagSource.GEMINI
        }
        self.selected = [tag for tag in self.selected if tag not in image_tags]
        for tag in image_tags:
            del self.sources[tag]

    def toggle(self, tag: str) -> None:
        if tag in self.selected:
            self.selected.remove(tag)
        else:
            self.selected.append(tag)

    def clear(self) -> None:
        self.selected.clear()
        self.sources.clear()


class MoodTextDebouncer:
    """Delays mood scoring until typing pauses.

    Each ``submit`` cancels the previous pending analysis. Text shorter than
    ``min_length`` resolves to None without calling the provider.
    """

    def __init__(
        self,
        analyzer: MoodAnalyzer,
        delay: float = MOOD_TEXT_DEBOUNCE_SECONDS,
        min_length: int = MOOD_TEXT_MIN_LENGTH,
    ) -> None:
        self.analyzer = analyzer
        self.delay = delay
        self.min_length = min_length
        self._pending: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def submit(self, text: str) -> Optional[MoodAnalysis]:
        self.cancel()
        if len((text or "").strip()) < self.min_length:
            return None

        task = asyncio.ensure_future(self._analyze_later(text))
        self._pending = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    async def _analyze_later(self, text: str) -> Optional[MoodAnalysis]:
        await asyncio.sleep(self.delay)
        try:
            return await self.analyzer.analyze_mood_text(text)
        except ThrivelogError as exc:
            logger.info("Mood analysis skipped: %s", exc)
            return None
