# -*- coding: utf-8 -*-
########################
# lane_mapper.py
########################
# Purpose:
# - Assign a lane index to an onset time from spectral content.
# - Pluggable strategies behind one protocol so the synthesizer never depends on a concrete mapping.
#
# Design notes:
# - Band layout: [min_hz, max_hz] split into lane_count equal, contiguous bands. Lowest band is lane 0.
#   No loudness normalization across bands.
# - Nearest frame: minimum |frame.time - t|, ties go to the earlier frame.
# - Never fails: no frames, a frame with no band range above min_hz, or a frame with no energy in range
#   maps to lane 0.
#
########################
# Interfaces:
# Public protocols:
# - class LaneMapper(Protocol)
#   - lane_count -> int
#   - lane_for_time(time_seconds: float) -> int
#
# Public functions:
# - band_edges_hz(lane_count: int, min_hz: float, max_hz: float) -> np.ndarray
# - nearest_frame_index(frame_times: np.ndarray, time_seconds: float) -> Optional[int]
#
# Public classes:
# - class BandEnergyLaneMapper(frames, *, lane_count=4, min_hz=20.0, max_hz=None)
#   - band_energies(frame: SpectralFrame) -> np.ndarray
#   - lane_for_time(time_seconds) -> int
# - class SpectralCentroidLaneMapper(frames, *, lane_count=4, min_hz=20.0, max_hz=None)
# - class ConstantLaneMapper(lane: int = 0, *, lane_count: int = 4)
# - build_lane_mapper(strategy: str, frames, *, lane_count, min_hz, max_hz) -> LaneMapper
#
# Inputs:
# - SpectralFrame sequence (host supplied or spectral_frames.compute_spectral_frames).
#
# Outputs:
# - Lane indexes in [0, lane_count).
#
########################

from __future__ import annotations

import abc
import bisect
from typing import Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from analysis_models import SpectralFrame


DEFAULT_LANE_COUNT = 4
DEFAULT_MIN_HZ = 20.0


@runtime_checkable
class LaneMapper(Protocol):
    """Capability used by note_synthesizer: one lane per timestamp, deterministic."""

    @property
    def lane_count(self) -> int:
        ...

    def lane_for_time(self, time_seconds: float) -> int:
        ...


def band_edges_hz(lane_count: int, min_hz: float, max_hz: float) -> np.ndarray:
    if int(lane_count) < 1:
        raise ValueError(f"lane_count must be >= 1, got {lane_count!r}")
    if not float(max_hz) > float(min_hz):
        raise ValueError(f"max_hz must exceed min_hz, got [{min_hz!r}, {max_hz!r}]")
    return np.linspace(float(min_hz), float(max_hz), int(lane_count) + 1)


def nearest_frame_index(frame_times: Sequence[float], time_seconds: float) -> Optional[int]:
    if len(frame_times) == 0:
        return None
    target = float(time_seconds)
    right = bisect.bisect_left(frame_times, target)
    if right == 0:
        return 0
    if right >= len(frame_times):
        return len(frame_times) - 1
    left = right - 1
    if target - float(frame_times[left]) <= float(frame_times[right]) - target:
        return left
    return right


class _SpectralLaneMapperBase(abc.ABC):
    def __init__(
        self,
        frames: Sequence[SpectralFrame],
        *,
        lane_count: int = DEFAULT_LANE_COUNT,
        min_hz: float = DEFAULT_MIN_HZ,
        max_hz: Optional[float] = None,
    ) -> None:
        self._frames = tuple(frames)
        self._frame_times = [frame.time_seconds for frame in self._frames]
        self._lane_count = int(lane_count)
        self._min_hz = float(min_hz)
        self._max_hz = None if max_hz is None else float(max_hz)
        if self._lane_count < 1:
            raise ValueError(f"lane_count must be >= 1, got {lane_count!r}")

    @property
    def lane_count(self) -> int:
        return self._lane_count

    def _edges_for(self, frame: SpectralFrame) -> Optional[np.ndarray]:
        """Band edges for this frame, or None when the frame has no usable band range."""
        bin_total = int(frame.magnitudes.shape[0])
        if bin_total < 2:
            return None
        # Default upper edge is Nyquist: the centre of the last rfft bin.
        nyquist = float(frame.bin_hz) * float(bin_total - 1)
        upper = self._max_hz if self._max_hz is not None else nyquist
        if not upper > self._min_hz:
            return None
        return band_edges_hz(self._lane_count, self._min_hz, upper)

    def nearest_frame(self, time_seconds: float) -> Optional[SpectralFrame]:
        index = nearest_frame_index(self._frame_times, time_seconds)
        if index is None:
            return None
        return self._frames[index]

    def lane_for_time(self, time_seconds: float) -> int:
        frame = self.nearest_frame(time_seconds)
        if frame is None:
            return 0
        return self._lane_for_frame(frame)

    @abc.abstractmethod
    def _lane_for_frame(self, frame: SpectralFrame) -> int:
        ...


class BandEnergyLaneMapper(_SpectralLaneMapperBase):
    """Loudest band wins. Band energy is the summed magnitude of bins centred inside the band."""

    def band_energies(self, frame: SpectralFrame) -> np.ndarray:
        edges = self._edges_for(frame)
        if edges is None:
            return np.zeros(self._lane_count, dtype=np.float64)
        bin_centres = np.arange(frame.magnitudes.shape[0], dtype=np.float64) * float(frame.bin_hz)
        # Bands are half-open [lo, hi) except the top band, which keeps its upper edge.
        band_index = np.searchsorted(edges, bin_centres, side="right") - 1
        band_index[bin_centres == edges[-1]] = self._lane_count - 1
        in_range = (band_index >= 0) & (band_index < self._lane_count)
        return np.bincount(
            band_index[in_range],
            weights=frame.magnitudes[in_range],
            minlength=self._lane_count,
        ).astype(np.float64)

    def _lane_for_frame(self, frame: SpectralFrame) -> int:
        energies = self.band_energies(frame)
        if not np.any(energies > 0.0):
            return 0
        return int(np.argmax(energies))


class SpectralCentroidLaneMapper(_SpectralLaneMapperBase):
    """Lane of the band containing the spectral centroid of the in-range bins."""

    def spectral_centroid_hz(self, frame: SpectralFrame) -> Optional[float]:
        edges = self._edges_for(frame)
        if edges is None:
            return None
        bin_centres = np.arange(frame.magnitudes.shape[0], dtype=np.float64) * float(frame.bin_hz)
        mask = (bin_centres >= edges[0]) & (bin_centres <= edges[-1])
        weights = frame.magnitudes[mask]
        total = float(weights.sum())
        if total <= 0.0:
            return None
        return float(np.dot(bin_centres[mask], weights) / total)

    def _lane_for_frame(self, frame: SpectralFrame) -> int:
        centroid = self.spectral_centroid_hz(frame)
        if centroid is None:
            return 0
        edges = self._edges_for(frame)
        lane = int(np.searchsorted(edges, centroid, side="right")) - 1
        return int(min(max(lane, 0), self._lane_count - 1))


class ConstantLaneMapper:
    def __init__(self, lane: int = 0, *, lane_count: int = DEFAULT_LANE_COUNT) -> None:
        if not 0 <= int(lane) < int(lane_count):
            raise ValueError(f"lane {lane!r} outside [0, {lane_count!r})")
        self._lane = int(lane)
        self._lane_count = int(lane_count)

    @property
    def lane_count(self) -> int:
        return self._lane_count

    def lane_for_time(self, time_seconds: float) -> int:
        return self._lane


_STRATEGIES = {
    "band_energy": BandEnergyLaneMapper,
    "spectral_centroid": SpectralCentroidLaneMapper,
}


def build_lane_mapper(
    strategy: str,
    frames: Sequence[SpectralFrame],
    *,
    lane_count: int = DEFAULT_LANE_COUNT,
    min_hz: float = DEFAULT_MIN_HZ,
    max_hz: Optional[float] = None,
) -> LaneMapper:
    key = (strategy or "").strip().lower()
    mapper_class = _STRATEGIES.get(key)
    if mapper_class is None:
        raise ValueError(f"Unknown lane mapping strategy {strategy!r}; expected one of {sorted(_STRATEGIES)}")
    return mapper_class(frames, lane_count=lane_count, min_hz=min_hz, max_hz=max_hz)


def _run_unit_tests() -> None:
    assert nearest_frame_index([], 1.0) is None
    assert nearest_frame_index([0.0, 1.0], 0.5) == 0
    assert nearest_frame_index([0.0, 1.0], 0.6) == 1
    assert nearest_frame_index([0.0, 1.0], 7.0) == 1

    magnitudes = np.zeros(9)
    magnitudes[7] = 1.0  # 700 Hz with 100 Hz bins, top band of [0, 800]
    frames = [
        SpectralFrame(time_seconds=0.0, magnitudes=np.eye(9)[1], bin_hz=100.0),
        SpectralFrame(time_seconds=1.0, magnitudes=magnitudes, bin_hz=100.0),
    ]
    mapper = BandEnergyLaneMapper(frames, lane_count=4, min_hz=0.0)
    assert isinstance(mapper, LaneMapper)
    assert mapper.lane_for_time(0.1) == 0
    assert mapper.lane_for_time(0.9) == 3

    assert BandEnergyLaneMapper([], lane_count=4).lane_for_time(3.0) == 0
    assert SpectralCentroidLaneMapper(frames, lane_count=4, min_hz=0.0).lane_for_time(1.0) == 3


if __name__ == "__main__":
    _run_unit_tests()
    print("lane_mapper.py: ok")
