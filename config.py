"""
config.py

Typed configuration loading and validation for beatlane.

Design goals
- Every tunable constant of the analysis and judgement pipeline lives here, not in scattered literals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If BEATLANE_CONFIG_PATH is set, that file is used and must exist.
- Otherwise beatlane searches these paths in order and uses the first one that exists:
  1) ./beatlane_config.json (current working directory)
  2) <user config dir>/beatlane/beatlane_config.json
- If none exists, built-in defaults are used.

Example config file (beatlane_config.json)
{
  "analysis": {
    "sensitivity": 1.5,
    "subdivision": 8,
    "lane_count": 4,
    "fill_sparse_sections": false
  },
  "judgement": {
    "perfect_seconds": 0.08,
    "good_seconds": 0.18,
    "miss_seconds": 0.30
  }
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


CONFIG_FILE_NAME = "beatlane_config.json"
ALLOWED_SUBDIVISIONS = (4, 8, 16, 32)


class AnalysisConfig(BaseModel):
    window_size: int = Field(default=1024, ge=16, description="Envelope window in samples.")
    hop_size: int = Field(default=512, ge=1, description="Envelope and spectrum hop in samples.")
    sensitivity: float = Field(default=1.5, gt=0.0, description="Onset threshold divisor. Higher finds more onsets.")
    threshold_base: float = Field(default=0.18, gt=0.0, le=1.0, description="Normalized flux threshold at sensitivity 1.")
    min_onset_gap_seconds: float = Field(default=0.12, ge=0.0, description="Minimum spacing between accepted onsets.")
    min_bpm: float = Field(default=40.0, gt=0.0, description="Slowest tempo considered by the estimator.")
    max_bpm: float = Field(default=220.0, gt=0.0, description="Fastest tempo considered by the estimator.")
    fallback_bpm: float = Field(default=120.0, gt=0.0, description="Tempo used when estimation fails.")
    subdivision: int = Field(default=4, description="Grid density: 4 quarter, 8 eighth, 16 sixteenth, 32 thirty-second.")
    lane_count: int = Field(default=4, ge=2, description="Number of playable lanes.")
    lane_strategy: str = Field(default="band_energy", description="band_energy or spectral_centroid")
    min_band_hz: float = Field(default=20.0, ge=0.0, description="Lowest frequency used for lane bands.")
    max_band_hz: Optional[float] = Field(default=None, gt=0.0, description="Highest frequency for lane bands. Nyquist if unset.")
    fill_sparse_sections: bool = Field(default=False, description="Add beat notes to long silent runs.")
    filler_gap_seconds: float = Field(default=2.0, gt=0.0, description="Empty run length that triggers filler notes.")

    @field_validator("subdivision")
    @classmethod
    def validate_subdivision(cls, value: int) -> int:
        if int(value) not in ALLOWED_SUBDIVISIONS:
            raise ValueError("subdivision must be one of: " + ", ".join(str(item) for item in ALLOWED_SUBDIVISIONS))
        return int(value)

    @field_validator("lane_strategy")
    @classmethod
    def validate_lane_strategy(cls, value: str) -> str:
        normalized = (value or "").strip().lower()
        allowed = {"band_energy", "spectral_centroid"}
        if normalized not in allowed:
            raise ValueError("lane_strategy must be one of: band_energy, spectral_centroid")
        return normalized

    @model_validator(mode="after")
    def validate_ranges(self) -> "AnalysisConfig":
        if self.min_bpm >= self.max_bpm:
            raise ValueError("min_bpm must be lower than max_bpm")
        if self.hop_size > self.window_size:
            raise ValueError("hop_size must not exceed window_size")
        if self.max_band_hz is not None and self.max_band_hz <= self.min_band_hz:
            raise ValueError("max_band_hz must exceed min_band_hz")
        return self


class JudgementConfig(BaseModel):
    perfect_seconds: float = Field(default=0.08, gt=0.0, description="Perfect window half-width.")
    good_seconds: float = Field(default=0.18, gt=0.0, description="Good window half-width.")
    miss_seconds: float = Field(default=0.30, gt=0.0, description="Candidate search half-width.")
    perfect_score: int = Field(default=1000, ge=0)
    good_score: int = Field(default=500, ge=0)
    auto_miss_expired: bool = Field(default=True, description="Count notes that scroll past the miss window as misses.")

    @model_validator(mode="after")
    def validate_window_order(self) -> "JudgementConfig":
        if not self.perfect_seconds <= self.good_seconds <= self.miss_seconds:
            raise ValueError("windows must satisfy perfect_seconds <= good_seconds <= miss_seconds")
        return self


class AppConfig(BaseModel):
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    judgement: JudgementConfig = Field(default_factory=JudgementConfig)


def _default_config_candidates() -> List[Path]:
    return [
        Path.cwd() / CONFIG_FILE_NAME,
        Path(user_config_dir("beatlane", appauthor=False)) / CONFIG_FILE_NAME,
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("BEATLANE_CONFIG_PATH", "").strip()
    if explicit_path_text:
        explicit_path = Path(explicit_path_text)
        if not explicit_path.is_file():
            raise FileNotFoundError(f"BEATLANE_CONFIG_PATH points at a missing file: {explicit_path}")
        return explicit_path

    return next((path for path in _default_config_candidates() if path.is_file()), None)


def _load_json_object(config_path: Path) -> Dict[str, Any]:
    try:
        parsed = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")
    return parsed


def _parse_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {text!r}")


# (environment variable, field in the "analysis" section, parser)
_ANALYSIS_OVERRIDES: Tuple[Tuple[str, str, Callable[[str], Any]], ...] = (
    ("BEATLANE_SENSITIVITY", "sensitivity", float),
    ("BEATLANE_SUBDIVISION", "subdivision", int),
    ("BEATLANE_LANE_COUNT", "lane_count", int),
    ("BEATLANE_FALLBACK_BPM", "fallback_bpm", float),
    ("BEATLANE_FILL_SPARSE", "fill_sparse_sections", _parse_bool),
)


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay BEATLANE_* variables on the "analysis" section. The config file stays the primary source.

    Empty or unparseable values are ignored. Parsed values still go through model validation,
    so BEATLANE_SUBDIVISION=6 fails loading instead of being dropped.
    """
    updated_config = dict(config_dict)
    section = updated_config.get("analysis")
    analysis_section = dict(section) if isinstance(section, dict) else {}

    for env_name, key_name, parse in _ANALYSIS_OVERRIDES:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            continue
        try:
            analysis_section[key_name] = parse(value_text)
        except ValueError:
            continue

    updated_config["analysis"] = analysis_section
    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict: Dict[str, Any] = {}
    if resolved_path is not None:
        json_dict = _load_json_object(Path(resolved_path))
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source_text = str(resolved_path) if resolved_path is not None else "defaults"
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def _run_unit_tests() -> None:
    defaults = AppConfig()
    assert defaults.analysis.sensitivity == 1.5
    assert defaults.analysis.lane_count == 4
    assert defaults.judgement.miss_seconds == 0.30

    try:
        AnalysisConfig(subdivision=6)
    except ValidationError:
        pass
    else:
        raise AssertionError("Expected ValidationError for subdivision=6")

    try:
        JudgementConfig(perfect_seconds=0.2, good_seconds=0.1)
    except ValidationError:
        pass
    else:
        raise AssertionError("Expected ValidationError for inverted windows")


if __name__ == "__main__":
    _run_unit_tests()
    print("config.py: ok")
