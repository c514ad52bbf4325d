# -*- coding: utf-8 -*-
########################
# playback_session.py
########################
# Purpose:
# - One playback attempt: integrates PlaybackClock + LanePressFilter + NoteScheduler + JudgeEngine.
# - Owns the JudgmentState for exactly as long as the attempt runs.
#
# Design notes:
# - Built from a finished Chart. The chart itself is never mutated; the scheduler holds the tombstones,
#   so stop() followed by a new session replays from a fresh copy.
# - All mutation goes through one lock, one event at a time, in arrival order.
# - After each mutation a frozen SessionSnapshot is published by replacing a single reference.
#   Renderers read snapshot() and never touch the scheduler.
# - No timers. The host drives tick() from its frame loop and on_lane_event() from its input source.
#
########################
# Interfaces:
# Public dataclasses:
# - SessionSnapshot(state: JudgmentState, remaining_notes: tuple[NoteEvent, ...],
#                   last_result: Optional[HitResult], song_time_seconds: float, is_active: bool)
#
# Public classes:
# - class PlaybackSession
#   - __init__(chart: Chart, clock: PlaybackClock, *, judgement_config: Optional[JudgementConfig] = None)
#   - is_active() -> bool
#   - snapshot() -> SessionSnapshot
#   - on_lane_event(lane: int, pressed: bool, time_seconds: Optional[float] = None) -> Optional[HitResult]
#   - press(lane: int, time_seconds: Optional[float] = None) -> HitResult
#   - tick(time_seconds: Optional[float] = None) -> list[HitResult]
#   - stop() -> SessionSnapshot
#
# Inputs:
# - Chart from chart_pipeline, clock from timing_model, lane events from the host.
#
# Outputs:
# - HitResult stream and SessionSnapshot views.
#
########################

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

import gameplay_models
import judge
import note_scheduler
from config import JudgementConfig
from lane_input import LanePressFilter
from timing_model import PlaybackClock


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    state: judge.JudgmentState
    remaining_notes: Tuple[gameplay_models.NoteEvent, ...]
    last_result: Optional[gameplay_models.HitResult]
    song_time_seconds: float
    is_active: bool


class PlaybackSession:
    def __init__(
        self,
        chart: gameplay_models.Chart,
        clock: PlaybackClock,
        *,
        judgement_config: Optional[JudgementConfig] = None,
    ) -> None:
        config = judgement_config if judgement_config is not None else JudgementConfig()
        self._chart = chart
        self._clock = clock
        self._lock = threading.Lock()
        self._press_filter = LanePressFilter(int(chart.lane_count))
        self._scheduler = note_scheduler.NoteScheduler(chart)
        self._judge_engine = judge.JudgeEngine(
            self._scheduler,
            judge.JudgementWindows.from_config(config),
            scoring=judge.ScoringRules.from_config(config),
            auto_miss_expired=config.auto_miss_expired,
        )
        self._active = True
        self._snapshot = SessionSnapshot(
            state=self._judge_engine.state(),
            remaining_notes=self._scheduler.remaining_notes(),
            last_result=None,
            song_time_seconds=0.0,
            is_active=True,
        )
        logger.debug("Playback session started with %d notes", len(chart.notes))

    def is_active(self) -> bool:
        return self._active

    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    def _require_active(self) -> None:
        if not self._active:
            raise RuntimeError("Playback session has been stopped; start a new session to replay")

    def _time_for(self, time_seconds: Optional[float]) -> float:
        if time_seconds is not None:
            return float(time_seconds)
        return float(self._clock.now())

    def _publish(self, song_time_seconds: float, last_result: Optional[gameplay_models.HitResult]) -> None:
        self._snapshot = SessionSnapshot(
            state=self._judge_engine.state(),
            remaining_notes=self._scheduler.remaining_notes(),
            last_result=last_result if last_result is not None else self._snapshot.last_result,
            song_time_seconds=float(song_time_seconds),
            is_active=self._active,
        )

    def on_lane_event(
        self,
        lane: int,
        pressed: bool,
        time_seconds: Optional[float] = None,
    ) -> Optional[gameplay_models.HitResult]:
        """Feed a raw press or release. Returns a HitResult for leading-edge presses, else None."""
        with self._lock:
            self._require_active()
            if not self._press_filter.accept(lane, pressed):
                return None
            return self._judge_locked(int(lane), time_seconds)

    def press(self, lane: int, time_seconds: Optional[float] = None) -> gameplay_models.HitResult:
        """Judge a press that is already known to be a leading edge."""
        with self._lock:
            self._require_active()
            return self._judge_locked(int(lane), time_seconds)

    def _judge_locked(self, lane: int, time_seconds: Optional[float]) -> gameplay_models.HitResult:
        song_time = self._time_for(time_seconds)
        result = self._judge_engine.on_input_event(gameplay_models.InputEvent(time_seconds=song_time, lane=lane))
        self._publish(song_time, result)
        return result

    def tick(self, time_seconds: Optional[float] = None) -> List[gameplay_models.HitResult]:
        """Age out notes that fell behind the miss window."""
        with self._lock:
            self._require_active()
            song_time = self._time_for(time_seconds)
            misses = self._judge_engine.update_for_time(song_time)
            self._publish(song_time, misses[-1] if misses else None)
            return misses

    def stop(self) -> SessionSnapshot:
        """End the attempt. Returns the final snapshot; judgement state is dropped."""
        with self._lock:
            if not self._active:
                return self._snapshot
            self._active = False
            self._press_filter.clear_pressed_lanes()
            final_state = self._judge_engine.state()
            self._snapshot = SessionSnapshot(
                state=final_state,
                remaining_notes=self._scheduler.remaining_notes(),
                last_result=self._snapshot.last_result,
                song_time_seconds=self._snapshot.song_time_seconds,
                is_active=False,
            )
            self._judge_engine.reset()
            logger.info(
                "Playback stopped: score=%d max_combo=%d perfect=%d good=%d miss=%d",
                final_state.score,
                final_state.max_combo,
                final_state.perfect_count,
                final_state.good_count,
                final_state.miss_count,
            )
            return self._snapshot


def _run_unit_tests() -> None:
    from timing_model import TimingModel

    chart = gameplay_models.Chart(
        notes=(gameplay_models.NoteEvent(time_seconds=1.0, lane=0), gameplay_models.NoteEvent(time_seconds=2.0, lane=1)),
        duration_seconds=3.0,
        bpm=120.0,
    )
    clock = TimingModel()
    session = PlaybackSession(chart, clock)

    clock.update_player_time_seconds(1.0)
    result = session.on_lane_event(0, True)
    assert result is not None and result.kind is gameplay_models.JudgementKind.PERFECT
    assert session.on_lane_event(0, True) is None
    assert session.on_lane_event(0, False) is None
    assert len(session.snapshot().remaining_notes) == 1

    misses = session.tick(3.0)
    assert len(misses) == 1
    assert session.snapshot().state.combo == 0

    session.stop()
    assert len(chart.notes) == 2
    assert PlaybackSession(chart, clock).snapshot().remaining_notes == chart.notes


if __name__ == "__main__":
    _run_unit_tests()
    print("playback_session.py: ok")
