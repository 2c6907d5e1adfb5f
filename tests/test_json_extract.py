import pytest

from thrivelog.errors import MalformedResponseError
from thrivelog.json_extract import (
    extract_field_number,
    extract_field_str,
    extract_json,
    extract_quoted_strings,
    find_line,
    lines_containing,
    strip_code_fences,
)


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences("plain") == "plain"
    assert strip_code_fences(None) == ""


def test_extract_json_plain_object():
    assert extract_json('{"mood": "calm"}') == {"mood": "calm"}


def test_extract_json_fenced_with_preamble():
    text = 'Here is the analysis:\n```json\n{"caption": "A park", "moodTags": ["calm"]}\n```'
    assert extract_json(text, expect=dict) == {"caption": "A park", "moodTags": ["calm"]}


def test_extract_json_bold_heading_and_array():
    text = '**Tags**\n["calm", "hopeful"]'
    assert extract_json(text, expect=list) == ["calm", "hopeful"]


def test_extract_json_respects_expected_type():
    with pytest.raises(MalformedResponseError):
        extract_json('["calm"]', expect=dict)


def test_extract_json_raises_on_prose():
    with pytest.raises(MalformedResponseError):
        extract_json("I could not analyze this image.")

    with pytest.raises(MalformedResponseError):
        extract_json("   ")


def test_field_helpers_read_broken_json():
    text = '{"mood_label": "anxious", "mood_score": 3.6, "confidence": 85'
    assert extract_field_str(text, "mood_label") == "anxious"
    assert extract_field_number(text, "mood_score") == 3.6
    assert extract_field_number(text, "confidence") == 85
    assert extract_field_number(text, "missing") is None


def test_extract_quoted_strings_keeps_order():
    assert extract_quoted_strings('tags: "calm", "hopeful", "calm"') == ["calm", "hopeful", "calm"]


def test_line_scan_helpers():
    text = "Caption: A quiet lake!\nmood: peaceful\ntag one: calm\ntag two: serene"
    assert find_line(text, "Caption") == "Caption A quiet lake"
    assert find_line(text, "absent") is None
    assert lines_containing(text, "tag") == ["tag one calm", "tag two serene"]
