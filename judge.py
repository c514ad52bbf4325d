# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Hit judgement and scoring engine.
# - Matches a lane press to the nearest unjudged note within the miss window and classifies it.
#
# Design notes:
# - Pure gameplay logic. No timers: reacts to press events and to explicit clock updates only.
# - judge_press is the state transition: (JudgmentState, InputEvent) -> (JudgmentState, HitResult).
#   Its single side effect is consuming the matched note through NoteScheduler.mark_judged.
# - Classification by |note_time - press_time|, inclusive edges:
#   - <= perfect: PERFECT, note consumed
#   - <= good: GOOD, note consumed
#   - otherwise, with a candidate inside the miss window: MISS, note stays playable
#   - no candidate: MISS with note=None
# - Every MISS resets combo to 0. Misses are outcomes, never exceptions.
#
########################
# Interfaces:
# Public dataclasses:
# - JudgementWindows(perfect_seconds: float, good_seconds: float, miss_seconds: float)
#   - classify_delta(delta_seconds: float) -> Optional[JudgementKind]
#   - from_config(config: JudgementConfig) -> JudgementWindows
# - ScoringRules(perfect_score: int = 1000, good_score: int = 500)
# - JudgmentState(score, combo, max_combo, cursor, perfect_count, good_count, miss_count)
#   - after(judgement: JudgementKind, *, cursor: int, scoring: ScoringRules) -> JudgmentState
#
# Public functions:
# - judge_press(state, input_event, note_scheduler, windows, scoring) -> tuple[JudgmentState, HitResult]
#
# Public classes:
# - class JudgeEngine
#   - __init__(note_scheduler: NoteScheduler, judgement_windows: JudgementWindows,
#              scoring: Optional[ScoringRules] = None, auto_miss_expired: bool = True)
#   - state() -> JudgmentState
#   - recent_judgements() -> list[HitResult]
#   - reset() -> None
#   - on_input_event(input_event: InputEvent) -> HitResult
#   - update_for_time(song_time_seconds: float) -> list[HitResult]
#
# Inputs:
# - InputEvent(time_seconds: float, lane: int)
# - song_time_seconds: float (from TimingModel)
#
# Outputs:
# - HitResult objects for UI and stats.
#
########################

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import gameplay_models
import note_scheduler
from config import JudgementConfig
from gameplay_models import JudgementKind


@dataclass(frozen=True)
class JudgementWindows:
    perfect_seconds: float = 0.08
    good_seconds: float = 0.18
    miss_seconds: float = 0.30

    @classmethod
    def from_config(cls, config: JudgementConfig) -> "JudgementWindows":
        return cls(
            perfect_seconds=float(config.perfect_seconds),
            good_seconds=float(config.good_seconds),
            miss_seconds=float(config.miss_seconds),
        )

    def classify_delta(self, delta_seconds: float) -> Optional[JudgementKind]:
        abs_delta = abs(float(delta_seconds))
        tolerance = note_scheduler.TIME_EPSILON_SECONDS
        if abs_delta <= float(self.perfect_seconds) + tolerance:
            return JudgementKind.PERFECT
        if abs_delta <= float(self.good_seconds) + tolerance:
            return JudgementKind.GOOD
        if abs_delta <= float(self.miss_seconds) + tolerance:
            return JudgementKind.MISS
        return None


@dataclass(frozen=True)
class ScoringRules:
    perfect_score: int = 1000
    good_score: int = 500

    @classmethod
    def from_config(cls, config: JudgementConfig) -> "ScoringRules":
        return cls(perfect_score=int(config.perfect_score), good_score=int(config.good_score))


@dataclass(frozen=True)
class JudgmentState:
    score: int = 0
    combo: int = 0
    max_combo: int = 0
    cursor: int = 0
    perfect_count: int = 0
    good_count: int = 0
    miss_count: int = 0

    def after(self, judgement: JudgementKind, *, cursor: int, scoring: ScoringRules) -> "JudgmentState":
        next_cursor = max(int(self.cursor), int(cursor))
        if judgement is JudgementKind.PERFECT:
            combo = self.combo + 1
            return replace(
                self,
                score=self.score + int(scoring.perfect_score),
                combo=combo,
                max_combo=max(self.max_combo, combo),
                cursor=next_cursor,
                perfect_count=self.perfect_count + 1,
            )
        if judgement is JudgementKind.GOOD:
            combo = self.combo + 1
            return replace(
                self,
                score=self.score + int(scoring.good_score),
                combo=combo,
                max_combo=max(self.max_combo, combo),
                cursor=next_cursor,
                good_count=self.good_count + 1,
            )
        return replace(self, combo=0, cursor=next_cursor, miss_count=self.miss_count + 1)


def judge_press(
    state: JudgmentState,
    input_event: gameplay_models.InputEvent,
    note_scheduler_obj: note_scheduler.NoteScheduler,
    windows: JudgementWindows,
    scoring: ScoringRules,
) -> Tuple[JudgmentState, gameplay_models.HitResult]:
    lane = int(input_event.lane)
    press_time = float(input_event.time_seconds)

    scheduled_note = note_scheduler_obj.find_nearest_unjudged_note(
        lane=lane,
        target_time_seconds=press_time,
        max_window_seconds=float(windows.miss_seconds),
    )
    if scheduled_note is None:
        result = gameplay_models.HitResult(kind=JudgementKind.MISS, lane=lane, time_seconds=press_time)
        return state.after(JudgementKind.MISS, cursor=note_scheduler_obj.cursor(), scoring=scoring), result

    note_time = float(scheduled_note.note_event.time_seconds)
    delta = press_time - note_time
    judgement = windows.classify_delta(delta)
    if judgement is None:
        # The scheduler only returns notes inside the miss window.
        judgement = JudgementKind.MISS

    if judgement is not JudgementKind.MISS:
        note_scheduler_obj.mark_judged(scheduled_note, judgement=judgement, delta_seconds=delta)
        note_scheduler_obj.advance_lane_index(lane)

    result = gameplay_models.HitResult(
        kind=judgement,
        lane=lane,
        time_seconds=press_time,
        note=scheduled_note.note_event,
        delta_seconds=delta,
    )
    return state.after(judgement, cursor=note_scheduler_obj.cursor(), scoring=scoring), result


class JudgeEngine:
    def __init__(
        self,
        note_scheduler_obj: note_scheduler.NoteScheduler,
        judgement_windows: JudgementWindows,
        scoring: Optional[ScoringRules] = None,
        auto_miss_expired: bool = True,
    ) -> None:
        self._note_scheduler = note_scheduler_obj
        self._judgement_windows = judgement_windows
        self._scoring = scoring if scoring is not None else ScoringRules()
        self._auto_miss_expired = bool(auto_miss_expired)
        self._state = JudgmentState()
        self._recent_judgements: List[gameplay_models.HitResult] = []

    def state(self) -> JudgmentState:
        return self._state

    def recent_judgements(self) -> List[gameplay_models.HitResult]:
        return list(self._recent_judgements)

    def reset(self) -> None:
        self._note_scheduler.reset()
        self._state = JudgmentState()
        self._recent_judgements.clear()

    def on_input_event(self, input_event: gameplay_models.InputEvent) -> gameplay_models.HitResult:
        self._state, result = judge_press(
            self._state,
            input_event,
            self._note_scheduler,
            self._judgement_windows,
            self._scoring,
        )
        self._recent_judgements.append(result)
        return result

    def update_for_time(self, song_time_seconds: float) -> List[gameplay_models.HitResult]:
        if not self._auto_miss_expired:
            return []

        misses: List[gameplay_models.HitResult] = []
        candidates = self._note_scheduler.unjudged_notes_past_miss_window(
            song_time_seconds=float(song_time_seconds),
            miss_window_seconds=float(self._judgement_windows.miss_seconds),
        )
        for scheduled_note in candidates:
            note_time = float(scheduled_note.note_event.time_seconds)
            lane = int(scheduled_note.note_event.lane)
            delta = float(song_time_seconds) - note_time
            self._note_scheduler.mark_judged(scheduled_note, judgement=JudgementKind.MISS, delta_seconds=delta)
            self._note_scheduler.advance_lane_index(lane)
            self._state = self._state.after(
                JudgementKind.MISS, cursor=self._note_scheduler.cursor(), scoring=self._scoring
            )

            event = gameplay_models.HitResult(
                kind=JudgementKind.MISS,
                lane=lane,
                time_seconds=float(song_time_seconds),
                note=scheduled_note.note_event,
                delta_seconds=delta,
            )
            self._recent_judgements.append(event)
            misses.append(event)
        return misses


def _run_unit_tests() -> None:
    chart = gameplay_models.Chart(
        notes=(gameplay_models.NoteEvent(time_seconds=1.0, lane=0),),
        duration_seconds=3.0,
        bpm=120.0,
    )
    scheduler = note_scheduler.NoteScheduler(chart)
    engine = JudgeEngine(scheduler, JudgementWindows())

    hit = engine.on_input_event(gameplay_models.InputEvent(time_seconds=1.0, lane=0))
    assert hit.kind is JudgementKind.PERFECT
    assert engine.state().score == 1000
    assert engine.state().combo == 1

    stray = engine.on_input_event(gameplay_models.InputEvent(time_seconds=1.0, lane=0))
    assert stray.kind is JudgementKind.MISS
    assert stray.note is None
    assert engine.state().combo == 0

    engine.reset()
    misses = engine.update_for_time(song_time_seconds=2.0)
    assert len(misses) == 1
    assert engine.state().miss_count == 1


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
