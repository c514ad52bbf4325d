# -*- coding: utf-8 -*-
########################
# analysis_models.py
########################
# Purpose:
# - Data models for the offline analysis pipeline.
# - Wraps host-owned audio and spectra in read-only containers and carries derived artifacts.
#
# Design notes:
# - Arrays handed to the pipeline are copied once into float64 and flagged read-only.
# - Analysis artifacts are immutable; they are rebuilt when the track or tuning changes.
# - Do not mix with gameplay_models. Charts live there; this module stops at onsets and tempo.
#
########################
# Interfaces:
# Public dataclasses:
# - SampleBuffer(samples: np.ndarray, sample_rate: int)
#   - duration_seconds -> float
# - SpectralFrame(time_seconds: float, magnitudes: np.ndarray, bin_hz: float)
# - TempoEstimate(bpm: float, is_fallback: bool, lag_frames: Optional[int], correlation: Optional[float])
# - AnalysisResult(envelope, onsets, tempo, spectral_frames, hop_seconds, duration_seconds)
#
# Inputs/Outputs:
# - SampleBuffer comes from the host audio source.
# - AnalysisResult is produced by chart_pipeline.AnalysisContext.analyze().
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


def _frozen_array(values) -> np.ndarray:
    array = np.array(values, dtype=np.float64, copy=True).reshape(-1)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        if int(self.sample_rate) <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate!r}")
        object.__setattr__(self, "samples", _frozen_array(self.samples))
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return float(len(self)) / float(self.sample_rate)


@dataclass(frozen=True, eq=False)
class SpectralFrame:
    time_seconds: float
    magnitudes: np.ndarray
    bin_hz: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "time_seconds", float(self.time_seconds))
        object.__setattr__(self, "magnitudes", _frozen_array(self.magnitudes))
        object.__setattr__(self, "bin_hz", float(self.bin_hz))


@dataclass(frozen=True)
class TempoEstimate:
    bpm: float
    is_fallback: bool = False
    lag_frames: Optional[int] = None
    correlation: Optional[float] = None


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    envelope: np.ndarray
    onsets: Tuple[float, ...]
    tempo: TempoEstimate
    spectral_frames: Tuple[SpectralFrame, ...]
    hop_seconds: float
    duration_seconds: float


def _run_unit_tests() -> None:
    source = [0.0, 0.5, -0.5, 0.25]
    buffer = SampleBuffer(samples=source, sample_rate=4)
    assert len(buffer) == 4
    assert abs(buffer.duration_seconds - 1.0) < 1e-12
    assert not buffer.samples.flags.writeable

    try:
        SampleBuffer(samples=source, sample_rate=0)
    except ValueError:
        pass
    else:
        raise AssertionError("Expected ValueError for zero sample_rate")

    frame = SpectralFrame(time_seconds=1, magnitudes=[1, 2, 3], bin_hz=10)
    assert frame.magnitudes.dtype == np.float64
    assert frame.time_seconds == 1.0


if __name__ == "__main__":
    _run_unit_tests()
    print("analysis_models.py: ok")
