# -*- coding: utf-8 -*-
########################
# tempo_estimator.py
########################
# Purpose:
# - Single-tempo estimate from the autocorrelation of the energy envelope.
#
# Design notes:
# - Autocorrelation is taken on the mean-removed envelope and divided by the lag-zero energy.
# - Candidate lags are the whole frame counts whose tempo lies inside [min_bpm, max_bpm].
# - The envelope must hold at least two periods of a candidate lag; longer lags are dropped.
# - The strongest lag wins; equal correlations keep the shorter lag.
# - Deterministic for a given envelope and hop.
#
########################
# Interfaces:
# Public exceptions:
# - class InsufficientDataError(Exception)
#
# Public constants:
# - DEFAULT_MIN_BPM = 40.0
# - DEFAULT_MAX_BPM = 220.0
# - DEFAULT_FALLBACK_BPM = 120.0
#
# Public functions:
# - candidate_lag_range(hop_seconds: float, frame_total: int, *, min_bpm: float, max_bpm: float) -> tuple[int, int]
# - autocorrelation(envelope, lags) -> np.ndarray
# - estimate_tempo(envelope, hop_seconds: float, *, min_bpm: float, max_bpm: float) -> TempoEstimate
#   - Raises InsufficientDataError when the envelope cannot support an estimate.
# - estimate_tempo_or_default(envelope, hop_seconds: float, *, min_bpm, max_bpm, fallback_bpm) -> TempoEstimate
#   - Never raises for short or flat envelopes; returns TempoEstimate(is_fallback=True).
#
# Inputs:
# - Envelope from envelope.compute_energy_envelope and hop_seconds = hop_size / sample_rate.
#
# Outputs:
# - TempoEstimate (analysis_models).
#
########################

from __future__ import annotations

import logging
import math
from typing import Sequence, Tuple

import numpy as np

from analysis_models import TempoEstimate


logger = logging.getLogger(__name__)

DEFAULT_MIN_BPM = 40.0
DEFAULT_MAX_BPM = 220.0
DEFAULT_FALLBACK_BPM = 120.0


class InsufficientDataError(Exception):
    """Raised when the envelope is too short or too flat to estimate a tempo."""


def candidate_lag_range(
    hop_seconds: float,
    frame_total: int,
    *,
    min_bpm: float = DEFAULT_MIN_BPM,
    max_bpm: float = DEFAULT_MAX_BPM,
) -> Tuple[int, int]:
    """Inclusive (shortest, longest) lag in frames, limited to half the envelope length."""
    hop = float(hop_seconds)
    if not hop > 0.0:
        raise ValueError(f"hop_seconds must be positive, got {hop_seconds!r}")
    if not 0.0 < float(min_bpm) < float(max_bpm):
        raise ValueError(f"Invalid tempo range: [{min_bpm!r}, {max_bpm!r}]")

    shortest = max(1, int(math.ceil(60.0 / float(max_bpm) / hop - 1e-9)))
    longest = int(math.floor(60.0 / float(min_bpm) / hop + 1e-9))
    longest = min(longest, int(frame_total) // 2)
    return shortest, longest


def autocorrelation(envelope, lags: Sequence[int]) -> np.ndarray:
    values = np.asarray(envelope, dtype=np.float64).reshape(-1)
    centered = values - values.mean()
    energy = float(np.dot(centered, centered))
    if energy <= 0.0:
        return np.zeros(len(lags), dtype=np.float64)
    return np.array(
        [float(np.dot(centered[:-lag], centered[lag:])) / energy for lag in lags],
        dtype=np.float64,
    )


def estimate_tempo(
    envelope,
    hop_seconds: float,
    *,
    min_bpm: float = DEFAULT_MIN_BPM,
    max_bpm: float = DEFAULT_MAX_BPM,
) -> TempoEstimate:
    values = np.asarray(envelope, dtype=np.float64).reshape(-1)
    shortest, longest = candidate_lag_range(hop_seconds, values.shape[0], min_bpm=min_bpm, max_bpm=max_bpm)
    if longest < shortest:
        raise InsufficientDataError(
            f"Envelope of {values.shape[0]} frames does not span two periods of any tempo in [{min_bpm}, {max_bpm}] BPM"
        )

    lags = list(range(shortest, longest + 1))
    correlations = autocorrelation(values, lags)
    best_index = int(np.argmax(correlations))
    best_correlation = float(correlations[best_index])
    if best_correlation <= 0.0:
        raise InsufficientDataError("Envelope autocorrelation has no positive peak in the tempo range")

    best_lag = lags[best_index]
    bpm = 60.0 / (float(best_lag) * float(hop_seconds))
    bpm = float(min(max(bpm, float(min_bpm)), float(max_bpm)))
    return TempoEstimate(bpm=bpm, is_fallback=False, lag_frames=best_lag, correlation=best_correlation)


def estimate_tempo_or_default(
    envelope,
    hop_seconds: float,
    *,
    min_bpm: float = DEFAULT_MIN_BPM,
    max_bpm: float = DEFAULT_MAX_BPM,
    fallback_bpm: float = DEFAULT_FALLBACK_BPM,
) -> TempoEstimate:
    try:
        estimate = estimate_tempo(envelope, hop_seconds, min_bpm=min_bpm, max_bpm=max_bpm)
    except InsufficientDataError as exc:
        logger.warning("Tempo estimation failed, using default %.1f BPM: %s", float(fallback_bpm), exc)
        return TempoEstimate(bpm=float(fallback_bpm), is_fallback=True)

    logger.info("Estimated tempo %.2f BPM (lag %d frames, r=%.3f)", estimate.bpm, estimate.lag_frames, estimate.correlation)
    return estimate


def _run_unit_tests() -> None:
    hop_seconds = 0.01
    # One pulse every 50 frames -> 0.5 s period -> 120 BPM.
    envelope = np.zeros(1000)
    envelope[::50] = 1.0
    estimate = estimate_tempo(envelope, hop_seconds)
    assert estimate.lag_frames == 50
    assert abs(estimate.bpm - 120.0) < 1e-9

    fallback = estimate_tempo_or_default(np.zeros(1000), hop_seconds)
    assert fallback.is_fallback
    assert fallback.bpm == DEFAULT_FALLBACK_BPM

    try:
        estimate_tempo(np.ones(10), hop_seconds)
    except InsufficientDataError:
        pass
    else:
        raise AssertionError("Expected InsufficientDataError for a ten frame envelope")


if __name__ == "__main__":
    _run_unit_tests()
    print("tempo_estimator.py: ok")
