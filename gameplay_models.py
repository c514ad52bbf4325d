# -*- coding: utf-8 -*-
########################
# gameplay_models.py
########################
# Purpose:
# - Core gameplay data models shared by chart synthesis and the judgement pipeline.
# - Defines the Chart representation, lane press events and judgement outcomes.
#
# Design notes:
# - Keep these models stable. Prefer extending with new optional fields rather than breaking changes.
# - Chart notes are a tuple sorted by (time_seconds, lane); a Chart is never mutated after synthesis.
# - Plain dataclasses and enums only.
#
########################
# Interfaces:
# Public enums:
# - class JudgementKind(enum.Enum): PERFECT | GOOD | MISS
#
# Public dataclasses:
# - NoteEvent(time_seconds: float, lane: int)
# - Chart(notes: tuple[NoteEvent, ...], duration_seconds: float, bpm: float, subdivision: int,
#         lane_count: int, tempo_is_fallback: bool)
# - InputEvent(time_seconds: float, lane: int)
# - HitResult(kind: JudgementKind, lane: int, time_seconds: float,
#             note: Optional[NoteEvent], delta_seconds: Optional[float])
#
# Inputs/Outputs:
# - These types are exchanged between note_synthesizer, chart_pipeline, NoteScheduler, judge,
#   PlaybackSession and chart_export.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import enum
from typing import Optional, Tuple


class JudgementKind(enum.Enum):
    PERFECT = "perfect"
    GOOD = "good"
    MISS = "miss"


@dataclass(frozen=True)
class NoteEvent:
    time_seconds: float
    lane: int


@dataclass(frozen=True)
class Chart:
    notes: Tuple[NoteEvent, ...]
    duration_seconds: float
    bpm: float
    subdivision: int = 4
    lane_count: int = 4
    tempo_is_fallback: bool = False

    def __len__(self) -> int:
        return len(self.notes)


@dataclass(frozen=True)
class InputEvent:
    time_seconds: float
    lane: int


@dataclass(frozen=True)
class HitResult:
    kind: JudgementKind
    lane: int
    time_seconds: float
    note: Optional[NoteEvent] = None
    delta_seconds: Optional[float] = None

    @property
    def is_hit(self) -> bool:
        return self.kind is not JudgementKind.MISS


def _run_unit_tests() -> None:
    chart = Chart(
        notes=(NoteEvent(time_seconds=0.5, lane=0), NoteEvent(time_seconds=1.0, lane=3)),
        duration_seconds=2.0,
        bpm=120.0,
    )
    assert len(chart) == 2
    assert chart.lane_count == 4

    miss = HitResult(kind=JudgementKind.MISS, lane=1, time_seconds=0.2)
    assert not miss.is_hit
    assert miss.note is None


if __name__ == "__main__":
    _run_unit_tests()
    print("gameplay_models.py: ok")
