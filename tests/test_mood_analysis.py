from __future__ import annotations

import asyncio
import base64
from typing import Any, List

import pytest

from thrivelog.errors import ErrorKind, ProviderError, RateLimitExceeded
from thrivelog.mood_analysis import (
    DEFAULT_IMAGE_ANALYSIS,
    MoodAnalyzer,
    MoodTagSelection,
    MoodTextDebouncer,
    decode_image,
    normalize_confidence,
    parse_image_analysis,
    parse_mood_rating,
)
from thrivelog.rate_limiter import RateLimit, RateLimiter
from thrivelog.schemas import TagSource

IMAGE = b"\x89PNG fake image bytes"


class FakeGemini:
    def __init__(self, result: Any = None, error: Exception = None) -> None:
        self.result = result
        self.error = error
        self.calls: List[tuple] = []

    async def analyze_image(self, image_bytes, mime_type, prompt):
        self.calls.append((image_bytes, mime_type, prompt))
        if self.error is not None:
            raise self.error
        return self.result


class FakeGroq:
    def __init__(self, *results: Any) -> None:
        self.results = list(results)
        self.calls: List[dict] = []

    async def chat(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _limiter(max_requests: int = 0) -> RateLimiter:
    return RateLimiter(RateLimit(window_seconds=60, max_requests=max_requests), "test")


def _analyzer(gemini, groq, image_limiter=None, text_limiter=None) -> MoodAnalyzer:
    return MoodAnalyzer(
        gemini,
        groq,
        image_limiter or _limiter(),
        text_limiter or _limiter(),
        groq_vision_model="vision-test",
    )


@pytest.mark.asyncio
async def test_image_analysis_uses_gemini_first():
    gemini = FakeGemini('{"caption": "A sunny park", "moodTags": ["joyful"], "mood": "happy"}')
    groq = FakeGroq()

    result = await _analyzer(gemini, groq).analyze_image(IMAGE, "image/png")

    assert result.caption == "A sunny park"
    assert result.mood_tags == ["joyful"]
    assert result.provider == "gemini"
    assert gemini.calls[0][1] == "image/png"
    assert groq.calls == []


@pytest.mark.asyncio
async def test_image_analysis_falls_back_to_groq_with_same_image():
    gemini = FakeGemini(error=ProviderError("gemini", ErrorKind.UNAVAILABLE, "overloaded"))
    groq = FakeGroq('```json\n{"caption": "Rainy window", "moodTags": ["calm"], "mood": "calm"}\n```')

    result = await _analyzer(gemini, groq).analyze_image(IMAGE, "image/png")

    assert result.provider == "groq"
    assert result.caption == "Rainy window"
    call = groq.calls[0]
    assert call["model"] == "vision-test"
    image_part = call["messages"][0]["content"][1]
    expected = base64.b64encode(IMAGE).decode("ascii")
    assert image_part["image_url"]["url"] == f"data:image/png;base64,{expected}"


@pytest.mark.asyncio
async def test_image_analysis_defaults_when_both_fail():
    gemini = FakeGemini(error=ProviderError("gemini", ErrorKind.TIMEOUT, "slow"))
    groq = FakeGroq(ProviderError("groq", ErrorKind.RATE_LIMITED, "rate limit"))

    result = await _analyzer(gemini, groq).analyze_image(IMAGE)

    assert result.caption == DEFAULT_IMAGE_ANALYSIS["caption"]
    assert result.mood_tags == ["content", "peaceful", "reflective"]
    assert result.mood == "content"
    assert result.provider is None


@pytest.mark.asyncio
async def test_image_limiter_rejects_before_any_provider_call():
    gemini = FakeGemini('{"caption": "x", "moodTags": [], "mood": "calm"}')
    groq = FakeGroq()
    analyzer = _analyzer(gemini, groq, image_limiter=_limiter(max_requests=1))

    await analyzer.analyze_image(IMAGE)
    with pytest.raises(RateLimitExceeded):
        await analyzer.analyze_image(IMAGE)

    assert len(gemini.calls) == 1
    assert groq.calls == []


@pytest.mark.asyncio
async def test_image_analysis_accepts_base64_strings():
    gemini = FakeGemini('{"caption": "x", "moodTags": [], "mood": "calm"}')
    encoded = base64.b64encode(IMAGE).decode("ascii")

    await _analyzer(gemini, FakeGroq()).analyze_image(f"data:image/png;base64,{encoded}")

    assert gemini.calls[0][0] == IMAGE


@pytest.mark.asyncio
async def test_unparseable_gemini_payload_falls_back_to_groq(caplog):
    gemini = FakeGemini('{"caption": {"text": "nested"}, "moodTags": [], "mood": "calm"}')
    groq = FakeGroq('{"caption": "Quiet desk", "moodTags": ["focused"], "mood": "calm"}')

    with caplog.at_level("WARNING", logger="thrivelog.mood_analysis"):
        result = await _analyzer(gemini, groq).analyze_image(IMAGE)

    assert result.provider == "groq"
    assert result.caption == "Quiet desk"
    assert "gemini" in caplog.text


@pytest.mark.asyncio
async def test_invalid_image_does_not_use_a_limiter_slot():
    gemini = FakeGemini('{"caption": "x", "moodTags": [], "mood": "calm"}')
    analyzer = _analyzer(gemini, FakeGroq(), image_limiter=_limiter(max_requests=1))

    with pytest.raises(ValueError):
        await analyzer.analyze_image("not base64 !!")
    result = await analyzer.analyze_image(IMAGE)

    assert result.provider == "gemini"
    assert len(gemini.calls) == 1


def test_decode_image_rejects_garbage():
    with pytest.raises(ValueError):
        decode_image("not base64 !!")


def test_parse_image_analysis_line_scan_fallback():
    content = "caption: Friends at dinner\nmood: happy\ntag: warm\ntag: social"
    result = parse_image_analysis(content, "groq")

    assert result.caption == "caption Friends at dinner"
    assert result.mood == "mood happy"
    assert result.mood_tags == ["tag warm", "tag social"]
    assert result.provider == "groq"


def test_normalize_confidence():
    assert normalize_confidence(85) == 0.85
    assert normalize_confidence(0.4) == 0.4
    assert normalize_confidence(150) == 1.0
    assert normalize_confidence(-3) == 0.0


def test_parse_mood_rating_json_and_fallback():
    parsed = parse_mood_rating('{"mood_label": "anxious", "mood_score": 3.5, "confidence": 85}')
    assert parsed.groq_mood_label == "anxious"
    assert parsed.groq_mood_score == 4
    assert parsed.groq_confidence == 0.85

    scanned = parse_mood_rating('mood_label: "tired", mood_score: 12, confidence: 0.4')
    assert scanned.groq_mood_label == "tired"
    assert scanned.groq_mood_score == 10
    assert scanned.groq_confidence == 0.4


@pytest.mark.asyncio
async def test_mood_text_analysis_propagates_errors():
    groq = FakeGroq(ProviderError("groq", ErrorKind.NETWORK, "offline"))

    with pytest.raises(ProviderError):
        await _analyzer(FakeGemini(), groq).analyze_mood_text("I had a rough day at work")


@pytest.mark.asyncio
async def test_mood_text_analysis_is_throttled():
    groq = FakeGroq('{"mood_label": "calm", "mood_score": 7, "confidence": 90}')
    analyzer = _analyzer(FakeGemini(), groq, text_limiter=_limiter(max_requests=1))

    result = await analyzer.analyze_mood_text("A slow and peaceful morning")
    assert result.groq_mood_score == 7

    with pytest.raises(RateLimitExceeded):
        await analyzer.analyze_mood_text("Another entry about the afternoon")


@pytest.mark.asyncio
async def test_mood_tags_dedupe_and_limit():
    groq = FakeGroq('["calm", "calm", "hopeful", "a", "b", "c", "d", "e", "f"]')

    tags = await _analyzer(FakeGemini(), groq).generate_mood_tags("Feeling settled after a long walk")

    assert tags == ["calm", "hopeful", "a", "b", "c", "d", "e"]


@pytest.mark.asyncio
async def test_mood_tags_degrade_to_empty():
    groq = FakeGroq(ProviderError("groq", ErrorKind.TIMEOUT, "slow"))
    analyzer = _analyzer(FakeGemini(), groq)

    assert await analyzer.generate_mood_tags("short") == []
    assert await analyzer.generate_mood_tags("Long enough text to analyse") == []


@pytest.mark.asyncio
async def test_mood_tags_fall_back_to_quoted_strings():
    groq = FakeGroq('Tags: "grateful", "tired"')

    tags = await _analyzer(FakeGemini(), groq).generate_mood_tags("Thankful but worn out today")

    assert tags == ["grateful", "tired"]


def test_merge_keeps_existing_source():
    selection = MoodTagSelection.from_state(["calm"], {"calm": "groq"})

    selection.merge_image_tags(["calm", "sunny"])

    assert selection.selected == ["calm", "sunny"]
    assert selection.sources["calm"] is TagSource.GROQ
    assert selection.sources["sunny"] is TagSource.GEMINI


def test_clear_image_tags_only_removes_gemini_tags():
    selection = MoodTagSelection()
    selection.record_text_tags(["calm"])
    selection.toggle("calm")
    selection.merge_image_tags(["sunny"])

    selection.clear_image_tags()

    assert selection.selected == ["calm"]
    assert selection.sources == {"calm": TagSource.GROQ}

    selection.toggle("calm")
    assert selection.selected == []
    selection.clear()
    assert selection.sources == {}


class CountingAnalyzer:
    def __init__(self) -> None:
        self.texts: List[str] = []

    async def analyze_mood_text(self, text):
        self.texts.append(text)
        return text


@pytest.mark.asyncio
async def test_debouncer_only_analyzes_last_text():
    analyzer = CountingAnalyzer()
    debouncer = MoodTextDebouncer(analyzer, delay=0.05, min_length=5)

    first = asyncio.ensure_future(debouncer.submit("first draft of the entry"))
    await asyncio.sleep(0)
    second = await debouncer.submit("second draft of the entry")

    assert await first is None
    assert second == "second draft of the entry"
    assert analyzer.texts == ["second draft of the entry"]


@pytest.mark.asyncio
async def test_debouncer_skips_short_text():
    analyzer = CountingAnalyzer()
    debouncer = MoodTextDebouncer(analyzer, delay=0, min_length=20)

    assert await debouncer.submit("too short") is None
    assert analyzer.texts == []
