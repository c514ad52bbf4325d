"""Note synthesis: snapping, dedup, ordering, filler."""

import pytest

from beat_grid import build_beat_grid
from lane_mapper import ConstantLaneMapper
from note_synthesizer import FillerOptions, nearest_grid_index, synthesize_chart, synthesize_notes


class _ScriptedLaneMapper:
    """Lane by onset time bucket, so tests control lane assignment."""

    def __init__(self, lanes_by_time, lane_count=4):
        self._lanes_by_time = lanes_by_time
        self.lane_count = lane_count
        self.calls = []

    def lane_for_time(self, time_seconds):
        self.calls.append(time_seconds)
        return self._lanes_by_time.get(round(time_seconds, 3), 0)


def test_nearest_grid_index_ties_to_earlier_slot():
    grid = [0.0, 0.5, 1.0]
    assert nearest_grid_index(grid, 0.25) == 0
    assert nearest_grid_index(grid, 0.26) == 1
    assert nearest_grid_index([], 0.3) is None


def test_onsets_snap_to_grid_and_far_onsets_drop():
    grid = build_beat_grid(120.0, 4, 2.0)
    notes = synthesize_notes([0.1, 0.74, 2.4], grid, ConstantLaneMapper(0), bpm=120.0, subdivision=4)
    # 2.4 is 0.4 s past the last slot, beyond the 0.25 s snap window.
    assert [(n.time_seconds, n.lane) for n in notes] == [(0.0, 0), (0.5, 0)]


def test_duplicates_collapse_and_lanes_differ():
    grid = build_beat_grid(120.0, 4, 2.0)
    mapper = _ScriptedLaneMapper({0.49: 1, 0.52: 1, 0.55: 3})
    notes = synthesize_notes([0.49, 0.52, 0.55], grid, mapper, bpm=120.0, subdivision=4)
    assert [(n.time_seconds, n.lane) for n in notes] == [(0.5, 1), (0.5, 3)]


def test_lane_is_taken_at_onset_time_not_grid_time():
    grid = build_beat_grid(120.0, 4, 2.0)
    mapper = _ScriptedLaneMapper({0.45: 2})
    synthesize_notes([0.45], grid, mapper, bpm=120.0, subdivision=4)
    assert mapper.calls == [0.45]


def test_chart_is_sorted_unique_and_deterministic():
    grid = build_beat_grid(140.0, 8, 10.0)
    onsets = [0.03 * i * i % 10.0 for i in range(200)]
    onsets = sorted(set(onsets))
    mapper = _ScriptedLaneMapper({round(t, 3): i % 4 for i, t in enumerate(onsets)})
    first = synthesize_notes(onsets, grid, mapper, bpm=140.0, subdivision=8)
    second = synthesize_notes(onsets, grid, mapper, bpm=140.0, subdivision=8)
    assert first == second
    keys = [(n.time_seconds, n.lane) for n in first]
    assert keys == sorted(keys)
    assert len(keys) == len(set(keys))


def test_no_onsets_gives_empty_chart():
    grid = build_beat_grid(120.0, 4, 4.0)
    chart = synthesize_chart([], grid, ConstantLaneMapper(0), bpm=120.0, subdivision=4, duration_seconds=4.0)
    assert chart.notes == tuple()
    assert chart.lane_count == 4


def test_bad_lane_from_mapper_is_rejected():
    grid = build_beat_grid(120.0, 4, 2.0)
    with pytest.raises(ValueError):
        synthesize_notes([0.5], grid, _ScriptedLaneMapper({0.5: 7}), bpm=120.0, subdivision=4)


def test_filler_is_off_by_default():
    grid = build_beat_grid(120.0, 8, 10.0)
    notes = synthesize_notes([0.0, 9.0], grid, ConstantLaneMapper(0), bpm=120.0, subdivision=8)
    assert len(notes) == 2


def test_filler_places_beat_notes_in_long_gaps():
    grid = build_beat_grid(120.0, 8, 10.0)
    notes = synthesize_notes(
        [0.0, 9.0],
        grid,
        ConstantLaneMapper(0),
        bpm=120.0,
        subdivision=8,
        filler=FillerOptions(enabled=True, gap_seconds=2.0),
    )
    times = [n.time_seconds for n in notes]
    # Beats between the two onsets, every other eighth slot.
    assert times[:4] == [0.0, 0.5, 1.0, 1.5]
    assert 9.0 in times
    assert all(abs(t / 0.5 - round(t / 0.5)) < 1e-9 for t in times)


def test_filler_skips_short_gaps():
    grid = build_beat_grid(120.0, 4, 3.0)
    notes = synthesize_notes(
        [0.0, 1.0, 2.0, 3.0],
        grid,
        ConstantLaneMapper(0),
        bpm=120.0,
        subdivision=4,
        filler=FillerOptions(enabled=True, gap_seconds=2.0),
    )
    assert [n.time_seconds for n in notes] == [0.0, 1.0, 2.0, 3.0]
