"""Config file resolution, validation and environment overrides."""

import json

import pytest
from pydantic import ValidationError

import config as config_module
from config import AnalysisConfig, AppConfig, JudgementConfig


def test_defaults_without_any_file():
    app_config, resolved_path = config_module.load_config()
    assert resolved_path is None
    assert app_config == AppConfig()
    assert app_config.analysis.window_size == 1024
    assert app_config.analysis.hop_size == 512
    assert app_config.analysis.min_onset_gap_seconds == 0.12
    assert app_config.judgement.perfect_seconds == 0.08


def test_file_in_working_directory_is_found(tmp_path):
    config_path = tmp_path / "beatlane_config.json"
    config_path.write_text(json.dumps({"analysis": {"lane_count": 6}}), encoding="utf-8")
    app_config, resolved_path = config_module.load_config()
    assert resolved_path.resolve() == config_path.resolve()
    assert app_config.analysis.lane_count == 6


def test_user_config_directory_is_searched(tmp_path):
    user_dir = tmp_path / "user_config"
    user_dir.mkdir()
    (user_dir / "beatlane_config.json").write_text(
        json.dumps({"judgement": {"miss_seconds": 0.25}}), encoding="utf-8"
    )
    app_config, resolved_path = config_module.load_config()
    assert resolved_path == user_dir / "beatlane_config.json"
    assert app_config.judgement.miss_seconds == 0.25


def test_explicit_path_from_environment(tmp_path, monkeypatch):
    config_path = tmp_path / "custom.json"
    config_path.write_text(json.dumps({"analysis": {"subdivision": 16}}), encoding="utf-8")
    monkeypatch.setenv("BEATLANE_CONFIG_PATH", str(config_path))
    app_config, resolved_path = config_module.load_config()
    assert resolved_path == config_path
    assert app_config.analysis.subdivision == 16


def test_missing_explicit_path_raises(tmp_path, monkeypatch):
    monkeypatch.setenv("BEATLANE_CONFIG_PATH", str(tmp_path / "nope.json"))
    with pytest.raises(FileNotFoundError):
        config_module.load_config()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BEATLANE_SENSITIVITY", "2.5")
    monkeypatch.setenv("BEATLANE_SUBDIVISION", "8")
    monkeypatch.setenv("BEATLANE_LANE_COUNT", "5")
    monkeypatch.setenv("BEATLANE_FALLBACK_BPM", "90")
    monkeypatch.setenv("BEATLANE_FILL_SPARSE", "yes")
    analysis = config_module.load_config()[0].analysis
    assert analysis.sensitivity == 2.5
    assert analysis.subdivision == 8
    assert analysis.lane_count == 5
    assert analysis.fallback_bpm == 90.0
    assert analysis.fill_sparse_sections is True


def test_unparseable_override_is_ignored(monkeypatch):
    monkeypatch.setenv("BEATLANE_LANE_COUNT", "many")
    assert config_module.load_config()[0].analysis.lane_count == 4


def test_invalid_override_fails_validation(monkeypatch):
    monkeypatch.setenv("BEATLANE_SUBDIVISION", "6")
    with pytest.raises(ValueError, match="Config validation failed"):
        config_module.load_config()


def test_invalid_json_file(tmp_path):
    config_path = tmp_path / "broken.json"
    config_path.write_text("{", encoding="utf-8")
    with pytest.raises(ValueError, match="not valid JSON"):
        config_module.load_config(config_path)


@pytest.mark.parametrize(
    "fields",
    [
        {"subdivision": 12},
        {"sensitivity": 0.0},
        {"lane_count": 1},
        {"min_bpm": 200.0, "max_bpm": 100.0},
        {"hop_size": 2048, "window_size": 1024},
        {"lane_strategy": "random"},
        {"min_band_hz": 500.0, "max_band_hz": 400.0},
    ],
)
def test_analysis_validation(fields):
    with pytest.raises(ValidationError):
        AnalysisConfig(**fields)


def test_lane_strategy_is_normalized():
    assert AnalysisConfig(lane_strategy=" Spectral_Centroid ").lane_strategy == "spectral_centroid"


def test_judgement_windows_must_nest():
    with pytest.raises(ValidationError):
        JudgementConfig(good_seconds=0.5, miss_seconds=0.3)


def test_to_json_round_trips():
    text = config_module.to_json(AppConfig())
    assert AppConfig.model_validate(json.loads(text)) == AppConfig()
