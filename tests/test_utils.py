import math

import pytest

from learning_timeline.common.utils import (clamp_non_negative, clamp_seconds, extract_json_object,
                                            format_number, parse_seconds, seconds_to_mmss,
                                            strip_code_fences)


def test_strip_code_fences_removes_json_fence():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_strip_code_fences_leaves_plain_text():
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'
    assert strip_code_fences(None) == ""


def test_extract_json_object_tolerates_prose():
    text = 'Here are my suggestions:\n{"conceptsToAdd": [{"reason": "gap {x}"}]}\nHope this helps!'
    assert extract_json_object(text) == {"conceptsToAdd": [{"reason": "gap {x}"}]}


def test_extract_json_object_skips_broken_candidates():
    assert extract_json_object('{not json} then {"ok": true}') == {"ok": True}


def test_extract_json_object_returns_none_without_object():
    assert extract_json_object("no json here") is None
    assert extract_json_object("[1, 2, 3]") is None
    assert extract_json_object("") is None


@pytest.mark.parametrize("value, expected", [
    (145, 145.0),
    (12.5, 12.5),
    ("2:25", 145.0),
    ("1:02:03", 3723.0),
    ("145s", 145.0),
    ("~90 seconds", 90.0),
    ("  42 ", 42.0),
])
def test_parse_seconds_accepts_model_formats(value, expected):
    assert parse_seconds(value) == expected


@pytest.mark.parametrize("value", [None, True, False, "soon", "", float("nan"), float("inf"), [], {}])
def test_parse_seconds_rejects_non_numeric(value):
    assert parse_seconds(value) is None


def test_clamp_seconds_bounds_to_duration():
    assert clamp_seconds(1194.0, 694) == 694
    assert clamp_seconds(-5.0, 694) == 0
    assert clamp_seconds(300.0, 694) == 300.0


def test_clamp_seconds_with_unknown_duration_only_enforces_non_negative():
    assert clamp_seconds(5000.0, None) == 5000.0
    assert clamp_seconds(5000.0, 0) == 5000.0
    assert clamp_seconds(-1.0, None) == 0


def test_clamp_seconds_unparseable_becomes_zero():
    assert clamp_seconds(None, 100) == 0
    assert clamp_seconds(math.nan, 100) == 0


def test_clamp_non_negative():
    assert clamp_non_negative(None) is None
    assert clamp_non_negative(-0.5) == 0
    assert clamp_non_negative(0.35) == 0.35


def test_seconds_to_mmss_and_format_number():
    assert seconds_to_mmss(90) == "1:30"
    assert seconds_to_mmss(5.9) == "0:05"
    assert format_number(52.0) == "52"
    assert format_number(52.5) == "52.5"
