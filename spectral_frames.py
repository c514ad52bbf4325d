# -*- coding: utf-8 -*-
########################
# spectral_frames.py
########################
# Purpose:
# - Fixed-size magnitude spectra over a sample buffer, for hosts that do not supply their own.
#
# Design notes:
# - One transform size (FFT_SIZE = 2048). Hann window, real FFT, magnitudes only.
# - Frame i starts at sample i * hop and is stamped i * hop / sample_rate, matching the envelope frame clock.
# - The tail that does not fill a whole transform is zero padded so short tracks still get one frame.
#
########################
# Interfaces:
# Public constants:
# - FFT_SIZE = 2048
#
# Public functions:
# - compute_spectral_frames(buffer: SampleBuffer, *, hop_size: int = 512) -> tuple[SpectralFrame, ...]
#
# Inputs:
# - SampleBuffer from the host audio source.
#
# Outputs:
# - Time-ordered SpectralFrame tuple consumed read-only by lane_mapper.
#
########################

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from analysis_models import SampleBuffer, SpectralFrame


logger = logging.getLogger(__name__)

FFT_SIZE = 2048


def compute_spectral_frames(buffer: SampleBuffer, *, hop_size: int = 512) -> Tuple[SpectralFrame, ...]:
    if int(hop_size) <= 0:
        raise ValueError("hop_size must be positive")

    samples = buffer.samples
    if samples.shape[0] == 0:
        return tuple()

    hop = int(hop_size)
    frame_total = 1 + max(0, samples.shape[0] - FFT_SIZE + hop - 1) // hop
    padded_length = (frame_total - 1) * hop + FFT_SIZE
    padded = np.zeros(padded_length, dtype=np.float64)
    padded[: samples.shape[0]] = samples

    window = np.hanning(FFT_SIZE)
    bin_hz = float(buffer.sample_rate) / float(FFT_SIZE)
    frames = []
    for frame_index in range(frame_total):
        start = frame_index * hop
        spectrum = np.abs(np.fft.rfft(padded[start : start + FFT_SIZE] * window))
        frames.append(
            SpectralFrame(
                time_seconds=float(start) / float(buffer.sample_rate),
                magnitudes=spectrum,
                bin_hz=bin_hz,
            )
        )

    logger.debug("Computed %d spectral frames (fft=%d, hop=%d)", len(frames), FFT_SIZE, hop)
    return tuple(frames)


def _run_unit_tests() -> None:
    sample_rate = 8000
    t = np.arange(sample_rate) / sample_rate
    tone = np.sin(2.0 * np.pi * 1000.0 * t)
    frames = compute_spectral_frames(SampleBuffer(samples=tone, sample_rate=sample_rate), hop_size=512)
    assert frames
    assert frames[0].magnitudes.shape == (FFT_SIZE // 2 + 1,)
    peak_hz = int(np.argmax(frames[0].magnitudes)) * frames[0].bin_hz
    assert abs(peak_hz - 1000.0) <= frames[0].bin_hz

    assert all(later.time_seconds > earlier.time_seconds for earlier, later in zip(frames, frames[1:]))

    assert compute_spectral_frames(SampleBuffer(samples=[], sample_rate=8000)) == tuple()


if __name__ == "__main__":
    _run_unit_tests()
    print("spectral_frames.py: ok")
