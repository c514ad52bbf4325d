# -*- coding: utf-8 -*-
########################
# timing_model.py
########################
# Purpose:
# - Playback clocks for the judgement path.
# - TimingModel converts host-reported player time into song time by applying a configurable AV offset.
# - MonotonicPlaybackClock measures elapsed time itself, with a short scheduling lead-in.
#
# Design notes:
# - Judgement code reads time through PlaybackClock.now() only.
# - Player time is clamped to non-negative.
# - AV offset may be negative, so TimingModel song time may be negative near start.
#
########################
# Interfaces:
# Public protocols:
# - class PlaybackClock(Protocol): now() -> float
#
# Public classes:
# - class TimingModel(av_offset_seconds: float = 0.0)
#   - player_time_seconds() -> float
#   - av_offset_seconds() -> float
#   - song_time_seconds() -> float
#   - now() -> float
#   - set_av_offset_seconds(av_offset_seconds: float) -> None
#   - update_player_time_seconds(player_time_seconds: float) -> None
# - class MonotonicPlaybackClock(lead_in_seconds: float = 0.15, time_source=time.monotonic)
#   - start() -> None
#   - now() -> float
#
# Inputs:
# - player_time_seconds from the host audio runtime (seconds).
# - av_offset_seconds from configuration or UI adjustment (seconds).
#
# Outputs:
# - Song time used by PlaybackSession, NoteScheduler and JudgeEngine.
#
########################

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class PlaybackClock(Protocol):
    def now(self) -> float:
        ...


class TimingModel:
    """Host-driven clock: the host reports player time, now() adds the AV offset."""

    def __init__(self, av_offset_seconds: float = 0.0) -> None:
        self._player_time_seconds = 0.0
        self._av_offset_seconds = float(av_offset_seconds)

    def player_time_seconds(self) -> float:
        return self._player_time_seconds

    def av_offset_seconds(self) -> float:
        return self._av_offset_seconds

    def song_time_seconds(self) -> float:
        return self._player_time_seconds + self._av_offset_seconds

    def now(self) -> float:
        return self.song_time_seconds()

    def set_av_offset_seconds(self, av_offset_seconds: float) -> None:
        self._av_offset_seconds = float(av_offset_seconds)

    def update_player_time_seconds(self, player_time_seconds: float) -> None:
        self._player_time_seconds = max(0.0, float(player_time_seconds))


class MonotonicPlaybackClock:
    """Elapsed seconds since start() plus lead-in, read from a monotonic source. 0.0 before start()."""

    def __init__(
        self,
        lead_in_seconds: float = 0.15,
        time_source: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lead_in_seconds = float(lead_in_seconds)
        self._time_source = time_source
        self._start_reference: Optional[float] = None

    def start(self) -> None:
        self._start_reference = float(self._time_source()) + self._lead_in_seconds

    def now(self) -> float:
        if self._start_reference is None:
            return 0.0
        return max(0.0, float(self._time_source()) - self._start_reference)


def _run_unit_tests() -> None:
    model = TimingModel()
    model.set_av_offset_seconds(-0.2)
    model.update_player_time_seconds(-5.0)
    assert model.player_time_seconds() == 0.0
    assert abs(model.song_time_seconds() - (-0.2)) < 1e-9

    model.update_player_time_seconds(1.5)
    assert abs(model.now() - 1.3) < 1e-9
    assert isinstance(model, PlaybackClock)

    ticks = iter([10.0, 10.1, 10.65])
    clock = MonotonicPlaybackClock(lead_in_seconds=0.15, time_source=lambda: next(ticks))
    assert clock.now() == 0.0
    clock.start()
    assert clock.now() == 0.0
    assert abs(clock.now() - 0.5) < 1e-9


if __name__ == "__main__":
    _run_unit_tests()
    print("timing_model.py: ok")
