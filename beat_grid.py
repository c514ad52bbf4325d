# -*- coding: utf-8 -*-
########################
# beat_grid.py
########################
# Purpose:
# - Regular grid of candidate note times from a tempo and a subdivision.
#
# Design notes:
# - t_n = n * (60 / bpm) * (4 / subdivision), n = 0, 1, ... while t_n <= duration.
# - Times are computed by multiplication, never by accumulation, so spacing stays exact per index.
# - The caller must supply a positive tempo; substitute the fallback tempo before calling.
#
########################
# Interfaces:
# Public exceptions:
# - class DegenerateTempoError(ValueError)
#
# Public functions:
# - grid_spacing_seconds(bpm: float, subdivision: int) -> float
# - build_beat_grid(bpm: float, subdivision: int, duration_seconds: float) -> list[float]
#
# Inputs:
# - bpm from tempo_estimator, subdivision from config (4 = quarter, 8 = eighth, 16 = sixteenth).
#
# Outputs:
# - Ascending grid times in seconds.
#
########################

from __future__ import annotations

import math
from typing import List


_END_TOLERANCE_SECONDS = 1e-9


class DegenerateTempoError(ValueError):
    """Raised when a non-positive or non-finite tempo reaches the grid builder."""


def grid_spacing_seconds(bpm: float, subdivision: int) -> float:
    tempo = float(bpm)
    if not math.isfinite(tempo) or tempo <= 0.0:
        raise DegenerateTempoError(f"bpm must be a positive finite number, got {bpm!r}")
    if int(subdivision) <= 0:
        raise ValueError(f"subdivision must be positive, got {subdivision!r}")
    return (60.0 / tempo) * (4.0 / float(int(subdivision)))


def build_beat_grid(bpm: float, subdivision: int, duration_seconds: float) -> List[float]:
    spacing = grid_spacing_seconds(bpm, subdivision)
    duration = float(duration_seconds)
    if duration < 0.0:
        return []

    slot_total = int(math.floor(duration / spacing + _END_TOLERANCE_SECONDS)) + 1
    return [float(index) * spacing for index in range(slot_total)]


def _run_unit_tests() -> None:
    assert build_beat_grid(120.0, 4, 2.0) == [0.0, 0.5, 1.0, 1.5, 2.0]
    assert build_beat_grid(120.0, 8, 1.0) == [0.0, 0.25, 0.5, 0.75, 1.0]
    assert build_beat_grid(120.0, 4, -1.0) == []

    for bad_bpm in (0.0, -10.0, float("nan")):
        try:
            build_beat_grid(bad_bpm, 4, 2.0)
        except DegenerateTempoError:
            pass
        else:
            raise AssertionError(f"Expected DegenerateTempoError for bpm={bad_bpm!r}")


if __name__ == "__main__":
    _run_unit_tests()
    print("beat_grid.py: ok")
