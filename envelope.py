# -*- coding: utf-8 -*-
########################
# envelope.py
########################
# Purpose:
# - Short-time RMS energy envelope of a mono sample buffer.
#
# Design notes:
# - Frame i covers samples [i * hop, i * hop + window).
# - Frame count is floor((len(samples) - window) / hop); buffers no longer than one window give an empty envelope.
# - Windowed sums come from a running sum of squares so memory stays O(len(samples)).
#
########################
# Interfaces:
# Public constants:
# - DEFAULT_WINDOW_SIZE = 1024
# - DEFAULT_HOP_SIZE = 512
#
# Public functions:
# - frame_count(sample_count: int, window_size: int, hop_size: int) -> int
# - compute_energy_envelope(samples, *, window_size: int = 1024, hop_size: int = 512) -> np.ndarray
# - envelope_from_buffer(buffer: SampleBuffer, *, window_size: int, hop_size: int) -> np.ndarray
#
# Inputs:
# - Mono samples (any array-like of floats).
#
# Outputs:
# - Read-only float64 array, one non-negative value per analysis frame.
#
########################

from __future__ import annotations

import logging

import numpy as np

from analysis_models import SampleBuffer


logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 1024
DEFAULT_HOP_SIZE = 512


def frame_count(sample_count: int, window_size: int, hop_size: int) -> int:
    if int(window_size) <= 0 or int(hop_size) <= 0:
        raise ValueError("window_size and hop_size must be positive")
    remaining = int(sample_count) - int(window_size)
    if remaining <= 0:
        return 0
    return remaining // int(hop_size)


def compute_energy_envelope(
    samples,
    *,
    window_size: int = DEFAULT_WINDOW_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
) -> np.ndarray:
    signal = np.asarray(samples, dtype=np.float64).reshape(-1)
    count = frame_count(signal.shape[0], window_size, hop_size)
    if count == 0:
        logger.debug("Buffer of %d samples is shorter than one analysis window", signal.shape[0])
        envelope = np.zeros(0, dtype=np.float64)
        envelope.setflags(write=False)
        return envelope

    running = np.concatenate(([0.0], np.cumsum(signal * signal)))
    starts = np.arange(count, dtype=np.int64) * int(hop_size)
    window_energy = running[starts + int(window_size)] - running[starts]
    # Rounding in the running sum can dip a hair below zero on silent frames.
    envelope = np.sqrt(np.maximum(window_energy, 0.0) / float(window_size))
    envelope.setflags(write=False)
    return envelope


def envelope_from_buffer(
    buffer: SampleBuffer,
    *,
    window_size: int = DEFAULT_WINDOW_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
) -> np.ndarray:
    return compute_energy_envelope(buffer.samples, window_size=window_size, hop_size=hop_size)


def _run_unit_tests() -> None:
    assert frame_count(1024, 1024, 512) == 0
    assert frame_count(2048, 1024, 512) == 2
    assert compute_energy_envelope(np.ones(100)).shape == (0,)

    constant = np.full(4096, 0.5)
    envelope = compute_energy_envelope(constant)
    assert envelope.shape == (6,)
    assert np.allclose(envelope, 0.5)

    alternating = np.tile([1.0, -1.0], 8)
    small = compute_energy_envelope(alternating, window_size=4, hop_size=2)
    assert small.shape == (6,)
    assert np.allclose(small, 1.0)


if __name__ == "__main__":
    _run_unit_tests()
    print("envelope.py: ok")
