"""Onset detection: flux thresholding, spacing, sensitivity."""

import numpy as np
import pytest

from onset_detector import detect_onsets, onset_candidate_frames, positive_flux


SCENARIO_ENVELOPE = [0, 0, 1, 0, 0, 1, 0, 0, 1]


def test_flux_clips_decreases():
    assert positive_flux(SCENARIO_ENVELOPE).tolist() == [0, 1, 0, 0, 1, 0, 0, 1]


def test_scenario_candidates_at_frames_2_5_8():
    assert onset_candidate_frames(SCENARIO_ENVELOPE, sensitivity=1.5) == [2, 5, 8]


def test_scenario_times_use_frame_clock():
    onsets = detect_onsets(SCENARIO_ENVELOPE, hop_size=512, sample_rate=44100, min_gap_seconds=0.0)
    assert onsets == pytest.approx([(i * 512) / 44100 for i in (2, 5, 8)])


def test_spacing_keeps_first_candidate():
    # The three candidates are about 35 ms apart at 512 / 44100, so the gap rule keeps only the first.
    onsets = detect_onsets(SCENARIO_ENVELOPE, hop_size=512, sample_rate=44100)
    assert onsets == [2 * 512 / 44100]


def test_onsets_are_strictly_increasing_and_spaced():
    rng = np.random.default_rng(3)
    envelope = rng.uniform(0.0, 1.0, 2000)
    onsets = detect_onsets(envelope, hop_size=512, sample_rate=44100, sensitivity=4.0)
    assert onsets
    gaps = np.diff(onsets)
    assert np.all(gaps > 0.12)


def test_higher_sensitivity_finds_at_least_as_many_onsets():
    rng = np.random.default_rng(11)
    envelope = np.abs(rng.normal(0.0, 1.0, 3000))
    low = detect_onsets(envelope, hop_size=512, sample_rate=4410, sensitivity=0.5, min_gap_seconds=0.0)
    high = detect_onsets(envelope, hop_size=512, sample_rate=4410, sensitivity=3.0, min_gap_seconds=0.0)
    assert len(high) >= len(low)
    assert set(low) <= set(high)


def test_flat_envelope_has_no_onsets():
    assert detect_onsets(np.full(100, 0.3), hop_size=512, sample_rate=44100) == []


def test_empty_envelope_has_no_onsets():
    assert detect_onsets([], hop_size=512, sample_rate=44100) == []


@pytest.mark.parametrize("sensitivity", [0.0, -1.0])
def test_non_positive_sensitivity_is_rejected(sensitivity):
    with pytest.raises(ValueError):
        detect_onsets(SCENARIO_ENVELOPE, hop_size=512, sample_rate=44100, sensitivity=sensitivity)
