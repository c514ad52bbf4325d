import numpy as np
import pytest

from analysis_models import SampleBuffer
from beatlane import render_click_track
from gameplay_models import Chart, NoteEvent


TEST_SR = 22050
TEST_HOP = 512
# A tempo whose beat period is exactly 22 envelope frames at TEST_SR / TEST_HOP.
CLICK_BPM = 60.0 * TEST_SR / (TEST_HOP * 22)


@pytest.fixture
def click_buffer():
    """Eight seconds of tone clicks on every beat at CLICK_BPM."""
    samples = render_click_track(bpm=CLICK_BPM, seconds=8.0, sample_rate=TEST_SR)
    return SampleBuffer(samples=samples, sample_rate=TEST_SR)


@pytest.fixture
def silent_buffer():
    return SampleBuffer(samples=np.zeros(TEST_SR * 2), sample_rate=TEST_SR)


@pytest.fixture
def simple_chart():
    notes = (
        NoteEvent(time_seconds=1.0, lane=0),
        NoteEvent(time_seconds=1.5, lane=1),
        NoteEvent(time_seconds=2.0, lane=0),
        NoteEvent(time_seconds=2.0, lane=2),
    )
    return Chart(notes=notes, duration_seconds=3.0, bpm=120.0)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep BEATLANE_* variables and real config files out of every test."""
    import config

    for name in (
        "BEATLANE_CONFIG_PATH",
        "BEATLANE_SENSITIVITY",
        "BEATLANE_SUBDIVISION",
        "BEATLANE_LANE_COUNT",
        "BEATLANE_FALLBACK_BPM",
        "BEATLANE_FILL_SPARSE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "user_config_dir", lambda *args, **kwargs: str(tmp_path / "user_config"))
    config.get_config.cache_clear()
    yield
    config.get_config.cache_clear()
