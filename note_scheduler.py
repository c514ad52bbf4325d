# -*- coding: utf-8 -*-
########################
# note_scheduler.py
########################
# Purpose:
# - Per-playback copy of a chart, organized into per-lane schedules for judgement and rendering.
# - Tracks consumption with tombstones (ScheduledNote.is_judged) instead of removing notes from lists.
#
# Design notes:
# - Schedule order is deterministic: sort by (time_seconds, lane).
# - The source Chart is never mutated; reset() or a new scheduler gives a fresh playthrough.
# - Cursors only move forward, past notes that are already judged:
#   - one global cursor over the whole chart (earliest unjudged note)
#   - one cursor per lane (LaneTrack), where candidate scans start
# - Window edges are inclusive, with TIME_EPSILON_SECONDS of float tolerance.
# - Window lookups bisect the lane time list, so a press costs O(log n) plus the notes inside the window.
#
########################
# Interfaces:
# Public constants:
# - TIME_EPSILON_SECONDS = 1e-9
#
# Public dataclasses:
# - ScheduledNote(
#     note_event: NoteEvent,
#     index: int,
#     is_judged: bool = False,
#     judgement: Optional[JudgementKind] = None,
#     judgement_delta_seconds: Optional[float] = None,
#   )
#
# Public classes:
# - class NoteScheduler
#   - __init__(chart: gameplay_models.Chart)
#   - reset() -> None
#   - cursor() -> int
#   - mark_judged(scheduled_note, *, judgement: JudgementKind, delta_seconds: float) -> None
#   - remaining_notes() -> tuple[NoteEvent, ...]
#   - visible_notes(*, song_time_seconds: float, lookback_seconds: float, lookahead_seconds: float) -> list[ScheduledNote]
#   - find_nearest_unjudged_note(*, lane: int, target_time_seconds: float, max_window_seconds: float) -> Optional[ScheduledNote]
#   - advance_lane_index(lane: int) -> None
#   - unjudged_notes_past_miss_window(*, song_time_seconds: float, miss_window_seconds: float) -> list[ScheduledNote]
#
# Inputs:
# - Chart and time parameters.
#
# Outputs:
# - ScheduledNote views for rendering and candidate selection for the judge.
#
########################

from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import gameplay_models


TIME_EPSILON_SECONDS = 1e-9


@dataclass
class ScheduledNote:
    note_event: gameplay_models.NoteEvent
    index: int
    is_judged: bool = False
    judgement: Optional[gameplay_models.JudgementKind] = None
    judgement_delta_seconds: Optional[float] = None

    @property
    def time_seconds(self) -> float:
        return float(self.note_event.time_seconds)


class _LaneTrack:
    """Notes of one lane in time order, with a forward-only cursor past judged notes."""

    def __init__(self) -> None:
        self.notes: List[ScheduledNote] = []
        self.times: List[float] = []
        self.cursor = 0

    def append(self, scheduled_note: ScheduledNote) -> None:
        self.notes.append(scheduled_note)
        self.times.append(scheduled_note.time_seconds)

    def advance(self) -> None:
        while self.cursor < len(self.notes) and self.notes[self.cursor].is_judged:
            self.cursor += 1

    def unjudged_between(self, start_time: float, end_time: float) -> Iterator[ScheduledNote]:
        first = max(self.cursor, bisect.bisect_left(self.times, start_time))
        last = bisect.bisect_right(self.times, end_time)
        for scheduled_note in self.notes[first:last]:
            if not scheduled_note.is_judged:
                yield scheduled_note


class NoteScheduler:
    def __init__(self, chart: gameplay_models.Chart) -> None:
        ordered = sorted(chart.notes, key=lambda note: (float(note.time_seconds), int(note.lane)))
        self._notes = [ScheduledNote(note_event=note, index=index) for index, note in enumerate(ordered)]
        self._times = [item.time_seconds for item in self._notes]
        self._tracks: Dict[int, _LaneTrack] = {}
        for scheduled_note in self._notes:
            self._tracks.setdefault(int(scheduled_note.note_event.lane), _LaneTrack()).append(scheduled_note)
        self._cursor = 0

    def cursor(self) -> int:
        """Index of the earliest unjudged note, len(chart) once everything is judged."""
        return self._cursor

    def reset(self) -> None:
        for scheduled_note in self._notes:
            scheduled_note.is_judged = False
            scheduled_note.judgement = None
            scheduled_note.judgement_delta_seconds = None
        for track in self._tracks.values():
            track.cursor = 0
        self._cursor = 0

    def mark_judged(
        self,
        scheduled_note: ScheduledNote,
        *,
        judgement: gameplay_models.JudgementKind,
        delta_seconds: float,
    ) -> None:
        scheduled_note.is_judged = True
        scheduled_note.judgement = judgement
        scheduled_note.judgement_delta_seconds = float(delta_seconds)
        while self._cursor < len(self._notes) and self._notes[self._cursor].is_judged:
            self._cursor += 1

    def advance_lane_index(self, lane: int) -> None:
        track = self._tracks.get(int(lane))
        if track is not None:
            track.advance()

    def remaining_notes(self) -> Tuple[gameplay_models.NoteEvent, ...]:
        return tuple(item.note_event for item in self._notes[self._cursor :] if not item.is_judged)

    def visible_notes(
        self,
        *,
        song_time_seconds: float,
        lookback_seconds: float,
        lookahead_seconds: float,
    ) -> List[ScheduledNote]:
        """Notes inside [now - lookback, now + lookahead] from the global cursor on, judged ones included."""
        now = float(song_time_seconds)
        first = max(self._cursor, bisect.bisect_left(self._times, now - float(lookback_seconds)))
        last = bisect.bisect_right(self._times, now + float(lookahead_seconds))
        return self._notes[first:last]

    def find_nearest_unjudged_note(
        self,
        *,
        lane: int,
        target_time_seconds: float,
        max_window_seconds: float,
    ) -> Optional[ScheduledNote]:
        track = self._tracks.get(int(lane))
        if track is None:
            return None

        target = float(target_time_seconds)
        reach = float(max_window_seconds) + TIME_EPSILON_SECONDS
        candidates = track.unjudged_between(target - reach, target + reach)
        # min() keeps the first of equal keys, so ties go to the earlier note.
        return min(candidates, key=lambda item: abs(target - item.time_seconds), default=None)

    def unjudged_notes_past_miss_window(
        self,
        *,
        song_time_seconds: float,
        miss_window_seconds: float,
    ) -> List[ScheduledNote]:
        cutoff_time = float(song_time_seconds) - float(miss_window_seconds) - TIME_EPSILON_SECONDS
        expired: List[ScheduledNote] = []
        for track in self._tracks.values():
            first = track.cursor
            last = bisect.bisect_left(track.times, cutoff_time)
            expired.extend(item for item in track.notes[first:last] if not item.is_judged)
        expired.sort(key=lambda item: item.index)
        return expired


def _run_unit_tests() -> None:
    NoteEvent = gameplay_models.NoteEvent
    chart = gameplay_models.Chart(
        notes=(NoteEvent(time_seconds=2.0, lane=3), NoteEvent(time_seconds=2.0, lane=1), NoteEvent(time_seconds=1.25, lane=1)),
        duration_seconds=4.0,
        bpm=96.0,
    )
    scheduler = NoteScheduler(chart)

    window = scheduler.visible_notes(song_time_seconds=2.0, lookback_seconds=0.75, lookahead_seconds=0.0)
    assert [(item.time_seconds, item.note_event.lane) for item in window] == [(1.25, 1), (2.0, 1), (2.0, 3)]

    # Equidistant notes in one lane: the earlier one is chosen.
    tie = scheduler.find_nearest_unjudged_note(lane=1, target_time_seconds=1.625, max_window_seconds=0.5)
    assert tie is not None and tie.index == 0
    assert scheduler.find_nearest_unjudged_note(lane=2, target_time_seconds=2.0, max_window_seconds=0.5) is None

    expired = scheduler.unjudged_notes_past_miss_window(song_time_seconds=1.75, miss_window_seconds=0.3)
    assert [item.index for item in expired] == [0]
    scheduler.mark_judged(expired[0], judgement=gameplay_models.JudgementKind.MISS, delta_seconds=0.5)
    scheduler.advance_lane_index(1)
    assert scheduler.cursor() == 1
    assert scheduler.remaining_notes() == (NoteEvent(time_seconds=2.0, lane=1), NoteEvent(time_seconds=2.0, lane=3))

    scheduler.reset()
    assert len(scheduler.remaining_notes()) == len(chart) == 3


if __name__ == "__main__":
    _run_unit_tests()
    print("note_scheduler.py: ok")
