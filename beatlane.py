"""
beatlane.py

Command line entrypoint for chart generation.

Commands
- demo: render a synthetic click track, analyze it and print the chart
- chart: analyze a mono sample dump (.npy) and print or save the chart
- config: print the effective configuration

Decoding audio files is left to the host. Dump decoded mono samples with numpy.save and pass them to
`chart --samples track.npy --sample-rate 44100`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

import chart_export
import config as config_module
from analysis_models import SampleBuffer
from chart_pipeline import AnalysisContext, BufferAudioSource, NotLoadedError
from config import AppConfig


logger = logging.getLogger("beatlane")

_CLICK_TONES_HZ = (110.0, 440.0, 1760.0, 7040.0)


def render_click_track(*, bpm: float, seconds: float, sample_rate: int) -> np.ndarray:
    """Decaying sine clicks on every beat, cycling through one low-to-high tone per lane."""
    total = int(round(float(seconds) * int(sample_rate)))
    samples = np.zeros(total, dtype=np.float64)
    click_length = int(0.05 * int(sample_rate))
    t = np.arange(click_length) / float(sample_rate)
    decay = np.exp(-t * 60.0)

    beat_seconds = 60.0 / float(bpm)
    beat_index = 0
    while True:
        start = int(round(beat_index * beat_seconds * int(sample_rate)))
        if start >= total:
            break
        tone_hz = _CLICK_TONES_HZ[beat_index % len(_CLICK_TONES_HZ)]
        click = 0.8 * np.sin(2.0 * np.pi * tone_hz * t) * decay
        end = min(total, start + click_length)
        samples[start:end] += click[: end - start]
        beat_index += 1
    return samples


def _apply_overrides(app_config: AppConfig, args: argparse.Namespace) -> AppConfig:
    changes = {}
    for key in ("sensitivity", "subdivision", "lane_count"):
        value = getattr(args, key, None)
        if value is not None:
            changes[key] = value
    if getattr(args, "fill_sparse", False):
        changes["fill_sparse_sections"] = True
    if not changes:
        return app_config
    analysis = app_config.analysis.model_validate({**app_config.analysis.model_dump(), **changes})
    return app_config.model_copy(update={"analysis": analysis})


def _emit_chart(context: AnalysisContext, args: argparse.Namespace) -> int:
    chart = context.generate_chart()

    if args.json_out:
        Path(args.json_out).write_text(chart_export.chart_to_json(chart), encoding="utf-8")
        logger.info("Wrote %s", args.json_out)

    if args.format == "json":
        print(chart_export.chart_to_json(chart))
    else:
        print(chart_export.format_chart_debug(chart, limit=args.limit))
    return 0


def _run_demo(app_config: AppConfig, args: argparse.Namespace) -> int:
    samples = render_click_track(bpm=args.bpm, seconds=args.seconds, sample_rate=args.sample_rate)
    context = AnalysisContext(app_config.analysis)
    context.load_track(BufferAudioSource(SampleBuffer(samples=samples, sample_rate=args.sample_rate)))
    return _emit_chart(context, args)


def _run_chart(app_config: AppConfig, args: argparse.Namespace) -> int:
    samples = np.load(args.samples, allow_pickle=False)
    if samples.ndim != 1:
        raise ValueError(f"Expected mono samples, got array of shape {samples.shape}")
    context = AnalysisContext(app_config.analysis)
    context.load_track(BufferAudioSource(SampleBuffer(samples=samples, sample_rate=args.sample_rate)))
    return _emit_chart(context, args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="beatlane", description="Rhythm chart generation from audio.")
    parser.add_argument("--config", type=Path, default=None, help="Path to beatlane_config.json")
    parser.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING or ERROR")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_chart_options(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument("--sample-rate", type=int, default=44100)
        subparser.add_argument("--sensitivity", type=float, default=None)
        subparser.add_argument("--subdivision", type=int, default=None)
        subparser.add_argument("--lane-count", dest="lane_count", type=int, default=None)
        subparser.add_argument("--fill-sparse", action="store_true")
        subparser.add_argument("--format", choices=("text", "json"), default="text")
        subparser.add_argument("--limit", type=int, default=200, help="Notes shown in text format")
        subparser.add_argument("--json-out", default=None)

    demo_parser = subparsers.add_parser("demo", help="Chart a synthetic click track")
    demo_parser.add_argument("--bpm", type=float, default=120.0)
    demo_parser.add_argument("--seconds", type=float, default=8.0)
    add_chart_options(demo_parser)

    chart_parser = subparsers.add_parser("chart", help="Chart mono samples saved with numpy.save")
    chart_parser.add_argument("--samples", type=Path, required=True)
    add_chart_options(chart_parser)

    subparsers.add_parser("config", help="Print the effective configuration")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        app_config, resolved_path = config_module.load_config(args.config)
        if args.command == "config":
            payload = {
                "ok": True,
                "config_path": str(resolved_path) if resolved_path is not None else None,
                "config": json.loads(config_module.to_json(app_config)),
            }
            print(json.dumps(payload, ensure_ascii=False, indent=2))
            return 0

        app_config = _apply_overrides(app_config, args)
        if args.command == "demo":
            return _run_demo(app_config, args)
        return _run_chart(app_config, args)
    except (OSError, ValueError, NotLoadedError) as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
