# -*- coding: utf-8 -*-
########################
# chart_export.py
########################
# Purpose:
# - Serialize charts for display, debugging and interchange.
# - JSON round trip and a plain text listing.
#
# Design notes:
# - JSON schema is versioned. Loading validates lanes, ordering and duplicates and never silently repairs.
#
########################
# Interfaces:
# Public exceptions:
# - class ChartFormatError(ValueError)
#
# Public constants:
# - CHART_SCHEMA_VERSION = 1
#
# Public functions:
# - chart_to_dict(chart: Chart) -> dict
# - chart_from_dict(payload: dict) -> Chart
# - chart_to_json(chart: Chart, *, indent: Optional[int] = 2) -> str
# - chart_from_json(text: str) -> Chart
# - format_chart_debug(chart: Chart, *, limit: int = 200) -> str
#
# Inputs:
# - gameplay_models.Chart.
#
# Outputs:
# - JSON text and debug text.
#
########################

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

from gameplay_models import Chart, NoteEvent
from note_synthesizer import GENERATOR_VERSION


CHART_SCHEMA_VERSION = 1

class ChartFormatError(ValueError):
    """Raised when a serialized chart is malformed or inconsistent."""


def chart_to_dict(chart: Chart) -> Dict[str, Any]:
    return {
        "version": CHART_SCHEMA_VERSION,
        "generator_version": GENERATOR_VERSION,
        "bpm": float(chart.bpm),
        "subdivision": int(chart.subdivision),
        "lane_count": int(chart.lane_count),
        "duration_seconds": float(chart.duration_seconds),
        "tempo_is_fallback": bool(chart.tempo_is_fallback),
        "notes": [{"time": float(note.time_seconds), "lane": int(note.lane)} for note in chart.notes],
    }


def _require(payload: Dict[str, Any], key: str) -> Any:
    if key not in payload:
        raise ChartFormatError(f"Chart payload is missing {key!r}")
    return payload[key]


def chart_from_dict(payload: Dict[str, Any]) -> Chart:
    if not isinstance(payload, dict):
        raise ChartFormatError("Chart payload root must be a JSON object")

    version = _require(payload, "version")
    if version != CHART_SCHEMA_VERSION:
        raise ChartFormatError(f"Unsupported chart schema version {version!r}")

    try:
        lane_count = int(_require(payload, "lane_count"))
        bpm = float(_require(payload, "bpm"))
        subdivision = int(payload.get("subdivision", 4))
        duration_seconds = float(_require(payload, "duration_seconds"))
        raw_notes = list(_require(payload, "notes"))
        notes = [NoteEvent(time_seconds=float(item["time"]), lane=int(item["lane"])) for item in raw_notes]
    except ChartFormatError:
        raise
    except (TypeError, KeyError) as exc:
        raise ChartFormatError(f"Chart payload has an invalid field: {exc}") from exc
    except ValueError as exc:
        raise ChartFormatError(f"Chart payload has a non-numeric field: {exc}") from exc

    seen: set = set()
    previous_key: Optional[Tuple[float, int]] = None
    for note in notes:
        if not 0 <= note.lane < lane_count:
            raise ChartFormatError(f"Note lane {note.lane} outside [0, {lane_count})")
        key = (note.time_seconds, note.lane)
        if key in seen:
            raise ChartFormatError(f"Duplicate note at {note.time_seconds:.3f}s lane {note.lane}")
        if previous_key is not None and key < previous_key:
            raise ChartFormatError("Chart notes must be sorted by (time, lane)")
        seen.add(key)
        previous_key = key

    return Chart(
        notes=tuple(notes),
        duration_seconds=duration_seconds,
        bpm=bpm,
        subdivision=subdivision,
        lane_count=lane_count,
        tempo_is_fallback=bool(payload.get("tempo_is_fallback", False)),
    )


def chart_to_json(chart: Chart, *, indent: Optional[int] = 2) -> str:
    return json.dumps(chart_to_dict(chart), ensure_ascii=False, indent=indent)


def chart_from_json(text: str) -> Chart:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ChartFormatError(f"Chart is not valid JSON: {exc}") from exc
    return chart_from_dict(payload)


def format_chart_debug(chart: Chart, *, limit: int = 200) -> str:
    header = (
        f"bpm={chart.bpm:.2f}{' (fallback)' if chart.tempo_is_fallback else ''} "
        f"subdivision=1/{chart.subdivision} lanes={chart.lane_count} notes={len(chart.notes)}"
    )
    lines = [header]
    for note in chart.notes[: max(0, int(limit))]:
        cells = ["."] * int(chart.lane_count)
        cells[note.lane] = "#"
        lines.append(f"{note.time_seconds:9.3f}  {''.join(cells)}")
    hidden = len(chart.notes) - max(0, int(limit))
    if hidden > 0:
        lines.append(f"... {hidden} more")
    return "\n".join(lines)


def _run_unit_tests() -> None:
    chart = Chart(
        notes=(NoteEvent(time_seconds=0.0, lane=0), NoteEvent(time_seconds=0.5, lane=3)),
        duration_seconds=2.0,
        bpm=120.0,
    )
    restored = chart_from_json(chart_to_json(chart))
    assert restored == chart

    try:
        chart_from_json('{"version": 1, "lane_count": 4, "bpm": 120, "duration_seconds": 1, "notes": [{"time": 0, "lane": 9}]}')
    except ChartFormatError:
        pass
    else:
        raise AssertionError("Expected ChartFormatError for out-of-range lane")

    debug_text = format_chart_debug(chart, limit=1)
    assert "... 1 more" in debug_text


if __name__ == "__main__":
    _run_unit_tests()
    print("chart_export.py: ok")
