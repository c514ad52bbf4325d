"""Chart JSON interchange and debug listing."""

import json

import pytest

from chart_export import (
    CHART_SCHEMA_VERSION,
    ChartFormatError,
    chart_from_dict,
    chart_from_json,
    chart_to_dict,
    chart_to_json,
    format_chart_debug,
)
from gameplay_models import Chart, NoteEvent


def test_json_round_trip(simple_chart):
    text = chart_to_json(simple_chart)
    payload = json.loads(text)
    assert payload["version"] == CHART_SCHEMA_VERSION
    assert payload["notes"][1] == {"time": 1.5, "lane": 1}
    assert chart_from_json(text) == simple_chart


def _payload(**overrides):
    payload = {
        "version": 1,
        "bpm": 120.0,
        "lane_count": 4,
        "duration_seconds": 3.0,
        "notes": [{"time": 0.5, "lane": 0}, {"time": 1.0, "lane": 1}],
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize(
    "overrides",
    [
        {"version": 2},
        {"notes": [{"time": 0.5, "lane": 4}]},
        {"notes": [{"time": 1.0, "lane": 0}, {"time": 0.5, "lane": 0}]},
        {"notes": [{"time": 0.5, "lane": 0}, {"time": 0.5, "lane": 0}]},
        {"notes": [{"time": 0.5}]},
        {"bpm": "fast"},
        {"lane_count": None},
    ],
)
def test_malformed_payloads_are_rejected(overrides):
    with pytest.raises(ChartFormatError):
        chart_from_dict(_payload(**overrides))


def test_missing_key_names_the_field():
    payload = _payload()
    del payload["duration_seconds"]
    with pytest.raises(ChartFormatError, match="duration_seconds"):
        chart_from_dict(payload)


def test_invalid_json_text():
    with pytest.raises(ChartFormatError):
        chart_from_json("{not json")
    with pytest.raises(ChartFormatError):
        chart_from_json("[]")


def test_optional_fields_default(simple_chart):
    payload = chart_to_dict(simple_chart)
    del payload["subdivision"]
    del payload["tempo_is_fallback"]
    restored = chart_from_dict(payload)
    assert restored.subdivision == 4
    assert restored.tempo_is_fallback is False


def test_debug_listing(simple_chart):
    text = format_chart_debug(simple_chart, limit=2)
    lines = text.splitlines()
    assert lines[0].startswith("bpm=120.00")
    assert "notes=4" in lines[0]
    assert lines[1].endswith("#...")
    assert lines[2].endswith(".#..")
    assert lines[-1] == "... 2 more"
