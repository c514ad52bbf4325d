# -*- coding: utf-8 -*-
########################
# onset_detector.py
########################
# Purpose:
# - Turn an energy envelope into discrete onset timestamps.
#
# Design notes:
# - Flux is the positive frame-to-frame envelope increase, normalized by its maximum.
# - A frame is a candidate when normalized flux > threshold_base / sensitivity.
# - Spacing rule: first candidate wins. A candidate must be more than min_gap_seconds after the last accepted onset.
# - Flux index j belongs to envelope frame j + 1; its timestamp is (j + 1) * hop / sample_rate.
#
########################
# Interfaces:
# Public constants:
# - DEFAULT_SENSITIVITY = 1.5
# - DEFAULT_THRESHOLD_BASE = 0.18
# - DEFAULT_MIN_GAP_SECONDS = 0.12
#
# Public functions:
# - positive_flux(envelope) -> np.ndarray
# - onset_threshold(sensitivity: float, threshold_base: float = 0.18) -> float
# - onset_candidate_frames(envelope, *, sensitivity: float, threshold_base: float) -> list[int]
# - detect_onsets(envelope, *, hop_size: int, sample_rate: int, sensitivity: float = 1.5,
#                 threshold_base: float = 0.18, min_gap_seconds: float = 0.12) -> list[float]
#
# Inputs:
# - Envelope from envelope.compute_energy_envelope.
#
# Outputs:
# - Strictly increasing onset times in seconds.
#
########################

from __future__ import annotations

import logging
from typing import List

import numpy as np


logger = logging.getLogger(__name__)

DEFAULT_SENSITIVITY = 1.5
DEFAULT_THRESHOLD_BASE = 0.18
DEFAULT_MIN_GAP_SECONDS = 0.12


def positive_flux(envelope) -> np.ndarray:
    values = np.asarray(envelope, dtype=np.float64).reshape(-1)
    if values.shape[0] < 2:
        return np.zeros(0, dtype=np.float64)
    return np.maximum(np.diff(values), 0.0)


def onset_threshold(sensitivity: float, threshold_base: float = DEFAULT_THRESHOLD_BASE) -> float:
    value = float(sensitivity)
    if not value > 0.0:
        raise ValueError(f"sensitivity must be > 0, got {sensitivity!r}")
    return float(threshold_base) / value


def onset_candidate_frames(
    envelope,
    *,
    sensitivity: float = DEFAULT_SENSITIVITY,
    threshold_base: float = DEFAULT_THRESHOLD_BASE,
) -> List[int]:
    """Envelope frame indexes whose normalized flux clears the threshold, before spacing."""
    threshold = onset_threshold(sensitivity, threshold_base)
    flux = positive_flux(envelope)
    if flux.shape[0] == 0:
        return []

    max_flux = float(flux.max())
    if max_flux <= 0.0:
        max_flux = 1.0
    normalized = flux / max_flux

    return [int(index) + 1 for index in np.flatnonzero(normalized > threshold)]


def detect_onsets(
    envelope,
    *,
    hop_size: int,
    sample_rate: int,
    sensitivity: float = DEFAULT_SENSITIVITY,
    threshold_base: float = DEFAULT_THRESHOLD_BASE,
    min_gap_seconds: float = DEFAULT_MIN_GAP_SECONDS,
) -> List[float]:
    if int(sample_rate) <= 0 or int(hop_size) <= 0:
        raise ValueError("hop_size and sample_rate must be positive")

    frame_seconds = float(hop_size) / float(sample_rate)
    gap = float(min_gap_seconds)

    onsets: List[float] = []
    candidates = onset_candidate_frames(envelope, sensitivity=sensitivity, threshold_base=threshold_base)
    for frame_index in candidates:
        time_seconds = float(frame_index) * frame_seconds
        if not onsets or time_seconds - onsets[-1] > gap:
            onsets.append(time_seconds)

    logger.debug(
        "Onsets: %d accepted from %d candidates (sensitivity=%.3f)",
        len(onsets),
        len(candidates),
        float(sensitivity),
    )
    return onsets


def _run_unit_tests() -> None:
    envelope = [0, 0, 1, 0, 0, 1, 0, 0, 1]
    assert onset_candidate_frames(envelope) == [2, 5, 8]

    # At 512 / 44100 the three candidates sit 35 ms apart, so only the first survives spacing.
    onsets = detect_onsets(envelope, hop_size=512, sample_rate=44100)
    assert onsets == [2 * 512 / 44100]

    # A slower frame rate spaces them far enough apart to keep all three.
    spaced = detect_onsets(envelope, hop_size=512, sample_rate=4410)
    assert len(spaced) == 3
    assert all(b - a > 0.12 for a, b in zip(spaced, spaced[1:]))

    assert detect_onsets([0.0], hop_size=512, sample_rate=44100) == []
    assert detect_onsets([0.5, 0.5, 0.5], hop_size=512, sample_rate=44100) == []


if __name__ == "__main__":
    _run_unit_tests()
    print("onset_detector.py: ok")
