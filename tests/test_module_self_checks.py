"""Each module carries a quick self check runnable as `python <module>.py`; keep them green."""

import importlib

import pytest


@pytest.mark.parametrize(
    "module_name",
    [
        "analysis_models",
        "beat_grid",
        "chart_export",
        "chart_pipeline",
        "config",
        "envelope",
        "gameplay_models",
        "judge",
        "lane_input",
        "lane_mapper",
        "note_scheduler",
        "note_synthesizer",
        "onset_detector",
        "playback_session",
        "spectral_frames",
        "tempo_estimator",
        "timing_model",
    ],
)
def test_module_self_check(module_name):
    importlib.import_module(module_name)._run_unit_tests()
