# -*- coding: utf-8 -*-
########################
# note_synthesizer.py
########################
# Purpose:
# - Merge onsets, the beat grid and lane assignments into the final note chart.
#
# Design notes:
# - Each onset snaps to its nearest grid time (ties to the earlier slot). Onsets farther than half a grid
#   spacing from every slot are dropped.
# - Lane comes from the LaneMapper at the onset time, not the snapped time.
# - Duplicates collapse on (grid slot, lane). Output is sorted by (time, lane).
# - Pure function of its inputs: same onsets, grid and mapper answers give the same chart.
# - Optional filler for long silent runs is off by default.
#
########################
# Interfaces:
# Public constants:
# - GENERATOR_VERSION = "onset_grid_v1"
#
# Public dataclasses:
# - FillerOptions(enabled: bool = False, gap_seconds: float = 2.0)
#
# Public functions:
# - nearest_grid_index(grid: Sequence[float], time_seconds: float) -> Optional[int]
# - synthesize_notes(onsets, grid, lane_mapper, *, bpm, subdivision, filler=None) -> tuple[NoteEvent, ...]
# - synthesize_chart(onsets, grid, lane_mapper, *, bpm, subdivision, duration_seconds,
#                    tempo_is_fallback=False, filler=None) -> Chart
#
# Inputs:
# - onsets from onset_detector, grid from beat_grid, LaneMapper from lane_mapper.
#
# Outputs:
# - gameplay_models.Chart.
#
########################

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from beat_grid import grid_spacing_seconds
from gameplay_models import Chart, NoteEvent
from lane_mapper import LaneMapper


logger = logging.getLogger(__name__)

GENERATOR_VERSION = "onset_grid_v1"


@dataclass(frozen=True)
class FillerOptions:
    enabled: bool = False
    gap_seconds: float = 2.0


def nearest_grid_index(grid: Sequence[float], time_seconds: float) -> Optional[int]:
    if not grid:
        return None
    target = float(time_seconds)
    right = bisect.bisect_left(grid, target)
    if right == 0:
        return 0
    if right >= len(grid):
        return len(grid) - 1
    left = right - 1
    if target - float(grid[left]) <= float(grid[right]) - target:
        return left
    return right


def _checked_lane(lane_mapper: LaneMapper, time_seconds: float) -> int:
    lane = int(lane_mapper.lane_for_time(float(time_seconds)))
    lane_count = int(lane_mapper.lane_count)
    if not 0 <= lane < lane_count:
        raise ValueError(f"Lane mapper returned lane {lane} outside [0, {lane_count})")
    return lane


def _filler_slots(
    occupied_slots: Iterable[int],
    *,
    slot_total: int,
    spacing_seconds: float,
    subdivision: int,
    gap_seconds: float,
) -> List[int]:
    """Beat-aligned grid slots inside empty runs longer than gap_seconds."""
    beat_stride = max(1, int(subdivision) // 4)
    boundaries = [-1] + sorted(set(occupied_slots)) + [int(slot_total)]
    slots: List[int] = []
    for previous, following in zip(boundaries, boundaries[1:]):
        empty_count = following - previous - 1
        if empty_count <= 0 or empty_count * spacing_seconds <= float(gap_seconds):
            continue
        slots.extend(index for index in range(previous + 1, following) if index % beat_stride == 0)
    return slots


def synthesize_notes(
    onsets: Sequence[float],
    grid: Sequence[float],
    lane_mapper: LaneMapper,
    *,
    bpm: float,
    subdivision: int,
    filler: Optional[FillerOptions] = None,
) -> Tuple[NoteEvent, ...]:
    spacing = grid_spacing_seconds(bpm, subdivision)
    snap_window = spacing / 2.0

    merged: Dict[Tuple[int, int], NoteEvent] = {}
    dropped = 0
    for onset_time in onsets:
        slot = nearest_grid_index(grid, onset_time)
        if slot is None:
            dropped += 1
            continue
        grid_time = float(grid[slot])
        if abs(grid_time - float(onset_time)) > snap_window:
            dropped += 1
            continue
        lane = _checked_lane(lane_mapper, onset_time)
        merged[(slot, lane)] = NoteEvent(time_seconds=grid_time, lane=lane)

    filler_total = 0
    if filler is not None and filler.enabled and grid:
        occupied = [slot for slot, _lane in merged.keys()]
        for slot in _filler_slots(
            occupied,
            slot_total=len(grid),
            spacing_seconds=spacing,
            subdivision=subdivision,
            gap_seconds=filler.gap_seconds,
        ):
            grid_time = float(grid[slot])
            lane = _checked_lane(lane_mapper, grid_time)
            merged[(slot, lane)] = NoteEvent(time_seconds=grid_time, lane=lane)
            filler_total += 1

    notes = sorted(merged.values(), key=lambda note: (note.time_seconds, note.lane))
    logger.debug(
        "Synthesized %d notes from %d onsets (%d off-grid dropped, %d filler)",
        len(notes),
        len(onsets),
        dropped,
        filler_total,
    )
    return tuple(notes)


def synthesize_chart(
    onsets: Sequence[float],
    grid: Sequence[float],
    lane_mapper: LaneMapper,
    *,
    bpm: float,
    subdivision: int,
    duration_seconds: float,
    tempo_is_fallback: bool = False,
    filler: Optional[FillerOptions] = None,
) -> Chart:
    notes = synthesize_notes(onsets, grid, lane_mapper, bpm=bpm, subdivision=subdivision, filler=filler)
    if not notes:
        logger.info("Chart is empty: no onsets could be placed on the grid")
    return Chart(
        notes=notes,
        duration_seconds=float(duration_seconds),
        bpm=float(bpm),
        subdivision=int(subdivision),
        lane_count=int(lane_mapper.lane_count),
        tempo_is_fallback=bool(tempo_is_fallback),
    )


def _run_unit_tests() -> None:
    from beat_grid import build_beat_grid
    from lane_mapper import ConstantLaneMapper

    grid = build_beat_grid(120.0, 4, 2.0)
    mapper = ConstantLaneMapper(1)

    notes = synthesize_notes([0.02, 0.49, 0.51, 1.3], grid, mapper, bpm=120.0, subdivision=4)
    assert [(n.time_seconds, n.lane) for n in notes] == [(0.0, 1), (0.5, 1), (1.5, 1)]
    assert synthesize_notes([0.02, 0.49, 0.51, 1.3], grid, mapper, bpm=120.0, subdivision=4) == notes

    assert synthesize_notes([], grid, mapper, bpm=120.0, subdivision=4) == tuple()

    long_grid = build_beat_grid(120.0, 4, 10.0)
    filled = synthesize_notes(
        [0.0], long_grid, mapper, bpm=120.0, subdivision=4, filler=FillerOptions(enabled=True, gap_seconds=2.0)
    )
    assert len(filled) == len(long_grid)


if __name__ == "__main__":
    _run_unit_tests()
    print("note_synthesizer.py: ok")
