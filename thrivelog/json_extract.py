"""Tolerant JSON extraction for LLM output.

Providers are asked for bare JSON but routinely wrap it in Markdown fences,
add a sentence of preamble, or bold a heading. ``extract_json`` recovers the
payload when one is present and raises ``MalformedResponseError`` otherwise;
the regex helpers below are the second line of recovery for callers that can
make do with individual fields.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional, Type, Union

from .errors import MalformedResponseError

_FENCE_OPEN = re.compile(r"```[\w-]*\s*")
_BOLD = re.compile(r"\*\*")
_HEADING = re.compile(r"^#{1,6}\s*", re.MULTILINE)
_NON_WORD = re.compile(r"[^\w\s]")
_QUOTED = re.compile(r'"([^"]+)"')


def strip_code_fences(text: Optional[str]) -> str:
    """Remove optional Markdown code fences from text."""

    if not text:
        return ""

    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = re.sub(r"^```[\w-]*\s*", "", stripped, count=1)
        if stripped.endswith("```"):
            stripped = stripped[: stripped.rfind("```")]

    return stripped.strip()


def _clean(text: str) -> str:
    cleaned = _FENCE_OPEN.sub("", text).replace("```", "")
    cleaned = _BOLD.sub("", cleaned)
    cleaned = _HEADING.sub("", cleaned)
    return cleaned.strip()


def _span(text: str, opener: str, closer: str) -> Optional[str]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def extract_json(
    text: Optional[str], expect: Optional[Union[Type[dict], Type[list]]] = None
) -> Any:
    """Parse the JSON object or array embedded in ``text``.

    ``expect`` restricts the accepted top-level type. Raises
    ``MalformedResponseError`` when nothing parseable of that type is found.
    """

    if not text or not text.strip():
        raise MalformedResponseError("Empty response")

    candidates: List[str] = [text.strip()]
    cleaned = _clean(text)
    if cleaned:
        candidates.append(cleaned)

    if expect is dict:
        brackets = [("{", "}")]
    elif expect is list:
        brackets = [("[", "]")]
    else:
        brackets = sorted(
            [("{", "}"), ("[", "]")],
            key=lambda pair: (cleaned.find(pair[0]) == -1, cleaned.find(pair[0])),
        )
    for opener, closer in brackets:
        span = _span(cleaned, opener, closer)
        if span:
            candidates.append(span)

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if expect is None and isinstance(parsed, (dict, list)):
            return parsed
        if expect is not None and isinstance(parsed, expect):
            return parsed

    raise MalformedResponseError(f"No JSON payload found in: {text[:200]!r}")


def extract_field_str(text: str, key: str) -> Optional[str]:
    """Best-effort ``"key": "value"`` lookup for unparseable output."""

    match = re.search(rf'{re.escape(key)}["\s]*:["\s]*([^,}}\n]+)', text, re.IGNORECASE)
    if not match:
        return None
    value = match.group(1).replace('"', "").replace("'", "").strip()
    return value or None


def extract_field_number(text: str, key: str) -> Optional[float]:
    """Best-effort numeric ``key: 12.5`` lookup for unparseable output."""

    match = re.search(
        rf'{re.escape(key)}["\s]*:["\s]*(-?\d+(?:\.\d+)?)', text, re.IGNORECASE
    )
    if not match:
        return None
    return float(match.group(1))


def extract_quoted_strings(text: str) -> List[str]:
    """Return every double-quoted string in order of appearance."""

    return _QUOTED.findall(text or "")


def strip_punctuation(text: str) -> str:
    return _NON_WORD.sub("", text).strip()


def find_line(text: str, keyword: str) -> Optional[str]:
    """Return the first line containing ``keyword``, stripped of punctuation."""

    for line in (text or "").split("\n"):
        if keyword in line:
            return strip_punctuation(line)
    return None


def lines_containing(text: str, keyword: str) -> List[str]:
    """Return every non-empty line containing ``keyword``, stripped of punctuation."""

    results = []
    for line in (text or "").split("\n"):
        if keyword in line:
            cleaned = strip_punctuation(line)
            if cleaned:
                results.append(cleaned)
    return results
