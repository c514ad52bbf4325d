"""Command line entrypoint."""

import json

import numpy as np
import pytest

import beatlane
from chart_export import chart_from_json


def test_demo_prints_chart_listing(capsys):
    assert beatlane.main(["demo", "--seconds", "4", "--sample-rate", "22050"]) == 0
    output = capsys.readouterr().out
    assert output.startswith("bpm=")
    assert "notes=" in output


def test_demo_json_output_and_file(tmp_path, capsys):
    json_path = tmp_path / "chart.json"
    exit_code = beatlane.main(
        [
            "demo",
            "--seconds",
            "4",
            "--sample-rate",
            "22050",
            "--subdivision",
            "8",
            "--format",
            "json",
            "--json-out",
            str(json_path),
        ]
    )
    assert exit_code == 0
    chart = chart_from_json(capsys.readouterr().out)
    assert chart.subdivision == 8
    assert chart_from_json(json_path.read_text(encoding="utf-8")) == chart


def test_chart_from_saved_samples(tmp_path, capsys):
    samples = beatlane.render_click_track(bpm=100.0, seconds=4.0, sample_rate=22050)
    samples_path = tmp_path / "track.npy"
    np.save(samples_path, samples)
    assert beatlane.main(["chart", "--samples", str(samples_path), "--sample-rate", "22050", "--format", "json"]) == 0
    chart = chart_from_json(capsys.readouterr().out)
    assert chart.duration_seconds == pytest.approx(4.0)


def test_chart_rejects_multichannel_samples(tmp_path, capsys):
    samples_path = tmp_path / "stereo.npy"
    np.save(samples_path, np.zeros((2, 1000)))
    assert beatlane.main(["chart", "--samples", str(samples_path)]) == 2
    error = json.loads(capsys.readouterr().err)
    assert error["ok"] is False
    assert "mono" in error["error"]


def test_missing_samples_file(tmp_path, capsys):
    assert beatlane.main(["chart", "--samples", str(tmp_path / "missing.npy")]) == 2
    assert json.loads(capsys.readouterr().err)["ok"] is False


def test_config_command(tmp_path, capsys):
    config_path = tmp_path / "custom.json"
    config_path.write_text(json.dumps({"analysis": {"sensitivity": 3.0}}), encoding="utf-8")
    assert beatlane.main(["--config", str(config_path), "config"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is True
    assert payload["config_path"] == str(config_path)
    assert payload["config"]["analysis"]["sensitivity"] == 3.0


def test_invalid_tuning_exits_with_error(capsys):
    assert beatlane.main(["demo", "--seconds", "2", "--subdivision", "6"]) == 2
    assert "subdivision" in json.loads(capsys.readouterr().err)["error"]
