# -*- coding: utf-8 -*-
########################
# lane_input.py
########################
# Purpose:
# - Reduce raw lane press and release events to leading-edge presses for the judge.
#
# Design notes:
# - Only the leading edge of a press matters. Releases never reach the judge.
# - A second press on a lane that is still held (auto repeat) is ignored.
# - Lanes outside [0, lane_count) are ignored and counted.
#
########################
# Interfaces:
# Public classes:
# - class LanePressFilter(lane_count: int)
#   - accept(lane: int, pressed: bool) -> bool
#   - clear_pressed_lanes() -> None
#   - pressed_lanes() -> frozenset[int]
#   - reset_stats() -> None
#   - total_presses -> int
#   - ignored_presses -> int
#
# Inputs:
# - Host lane events {lane, pressed}.
#
# Outputs:
# - True when the event is a fresh press that should be judged.
#
########################

from __future__ import annotations

from typing import FrozenSet, Set


class LanePressFilter:
    def __init__(self, lane_count: int) -> None:
        if int(lane_count) < 1:
            raise ValueError(f"lane_count must be >= 1, got {lane_count!r}")
        self._lane_count = int(lane_count)
        self._pressed_lanes: Set[int] = set()
        self._total_presses: int = 0
        self._ignored_presses: int = 0

    def accept(self, lane: int, pressed: bool) -> bool:
        lane_index = int(lane)
        if not 0 <= lane_index < self._lane_count:
            self._ignored_presses += 1
            return False

        if not pressed:
            self._pressed_lanes.discard(lane_index)
            return False

        if lane_index in self._pressed_lanes:
            self._ignored_presses += 1
            return False

        self._pressed_lanes.add(lane_index)
        self._total_presses += 1
        return True

    def clear_pressed_lanes(self) -> None:
        """Forget held lanes, e.g. after focus loss, so the next press counts."""
        self._pressed_lanes.clear()

    def pressed_lanes(self) -> FrozenSet[int]:
        return frozenset(self._pressed_lanes)

    def reset_stats(self) -> None:
        self._total_presses = 0
        self._ignored_presses = 0

    @property
    def total_presses(self) -> int:
        return self._total_presses

    @property
    def ignored_presses(self) -> int:
        return self._ignored_presses


def _run_unit_tests() -> None:
    press_filter = LanePressFilter(4)
    assert press_filter.accept(0, True)
    assert not press_filter.accept(0, True)
    assert not press_filter.accept(0, False)
    assert press_filter.accept(0, True)
    assert not press_filter.accept(7, True)
    assert press_filter.total_presses == 2
    assert press_filter.ignored_presses == 2


if __name__ == "__main__":
    _run_unit_tests()
    print("lane_input.py: ok")
