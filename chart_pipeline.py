# -*- coding: utf-8 -*-
########################
# chart_pipeline.py
########################
# Purpose:
# - One-shot offline analysis of a loaded track and chart generation from the result.
# - Owns the derived artifacts for one track and one tuning; nothing survives across contexts.
#
########################
# Key Logic:
# - analyze():
#   - envelope -> onsets and tempo (fallback tempo on InsufficientDataError)
#   - spectral frames: host supplied frames if given, otherwise spectral_frames.compute_spectral_frames
# - generate_chart():
#   - reuses the cached AnalysisResult, running analyze() first when needed
#   - beat grid from the estimated (or fallback) tempo, then note_synthesizer
# - Strict contract:
#   - No track loaded is a NotLoadedError, raised before any state is produced.
#   - Analysis degrades gracefully; an imperfect chart beats no chart.
#   - Loading a track drops cached artifacts. Tuning changes drop the chart, and the analysis too
#     unless only grid, lane or filler fields changed.
#
########################
# Interfaces:
# Public exceptions:
# - class NotLoadedError(Exception)
#
# Public protocols:
# - class AudioSource(Protocol): sample_buffer() -> SampleBuffer, sample_rate() -> int, duration() -> float
# - class SpectralFrameProvider(Protocol): frames() -> Sequence[SpectralFrame]
#
# Public classes:
# - class BufferAudioSource(buffer: SampleBuffer)
# - class AnalysisContext(config: Optional[AnalysisConfig] = None)
#   - load_track(audio_source: AudioSource, *, spectral_frames: Optional[SpectralFrameProvider | Sequence[SpectralFrame]] = None)
#   - unload() -> None
#   - set_tuning(**changes) -> AnalysisConfig
#   - is_loaded() -> bool
#   - config() -> AnalysisConfig
#   - analyze() -> AnalysisResult
#   - lane_mapper() -> LaneMapper
#   - generate_chart(*, subdivision: Optional[int] = None) -> Chart
#   - run_in_background(callback: Callable[[Optional[Chart], Optional[BaseException]], None]) -> threading.Thread
#
# Inputs:
# - Host audio source and optional host spectral frames.
#
# Outputs:
# - AnalysisResult and Chart.
#
########################

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from analysis_models import AnalysisResult, SampleBuffer, SpectralFrame
from beat_grid import build_beat_grid
from config import AnalysisConfig
from envelope import compute_energy_envelope
from gameplay_models import Chart
from lane_mapper import LaneMapper, build_lane_mapper
from note_synthesizer import FillerOptions, synthesize_chart
from onset_detector import detect_onsets
from spectral_frames import compute_spectral_frames
from tempo_estimator import estimate_tempo_or_default


logger = logging.getLogger(__name__)

# Fields that only shape grid, lanes and notes. Changing them keeps the cached AnalysisResult.
_CHART_ONLY_FIELDS = frozenset(
    {
        "subdivision",
        "lane_count",
        "lane_strategy",
        "min_band_hz",
        "max_band_hz",
        "fill_sparse_sections",
        "filler_gap_seconds",
    }
)


class NotLoadedError(Exception):
    """Raised when analysis or chart generation is requested before a track is loaded."""


@runtime_checkable
class AudioSource(Protocol):
    def sample_buffer(self) -> SampleBuffer:
        ...

    def sample_rate(self) -> int:
        ...

    def duration(self) -> float:
        ...


@runtime_checkable
class SpectralFrameProvider(Protocol):
    def frames(self) -> Sequence[SpectralFrame]:
        ...


class BufferAudioSource:
    """AudioSource over an already decoded SampleBuffer."""

    def __init__(self, buffer: SampleBuffer) -> None:
        self._buffer = buffer

    def sample_buffer(self) -> SampleBuffer:
        return self._buffer

    def sample_rate(self) -> int:
        return int(self._buffer.sample_rate)

    def duration(self) -> float:
        return float(self._buffer.duration_seconds)


class AnalysisContext:
    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self._config = config if config is not None else AnalysisConfig()
        self._lock = threading.Lock()
        self._audio_source: Optional[AudioSource] = None
        self._host_frames: Optional[Tuple[SpectralFrame, ...]] = None
        self._analysis: Optional[AnalysisResult] = None
        self._chart: Optional[Chart] = None

    def config(self) -> AnalysisConfig:
        return self._config

    def is_loaded(self) -> bool:
        return self._audio_source is not None

    def load_track(
        self,
        audio_source: AudioSource,
        *,
        spectral_frames: Optional[Union[SpectralFrameProvider, Sequence[SpectralFrame]]] = None,
    ) -> None:
        """spectral_frames may be a provider or a ready sequence; None computes frames from the samples."""
        if isinstance(spectral_frames, SpectralFrameProvider):
            spectral_frames = spectral_frames.frames()
        with self._lock:
            self._audio_source = audio_source
            if spectral_frames is None:
                self._host_frames = None
            else:
                self._host_frames = tuple(sorted(spectral_frames, key=lambda frame: frame.time_seconds))
            self._analysis = None
            self._chart = None
        logger.info(
            "Loaded track: %.2f s at %d Hz", float(audio_source.duration()), int(audio_source.sample_rate())
        )

    def unload(self) -> None:
        with self._lock:
            self._audio_source = None
            self._host_frames = None
            self._analysis = None
            self._chart = None

    def set_tuning(self, **changes) -> AnalysisConfig:
        """Validate and apply tuning changes. The cached chart is always dropped, the analysis only when needed."""
        current = self._config.model_dump()
        new_config = AnalysisConfig.model_validate({**current, **changes})
        changed = {key for key, value in new_config.model_dump().items() if current[key] != value}
        with self._lock:
            self._config = new_config
            if not changed <= _CHART_ONLY_FIELDS:
                self._analysis = None
            self._chart = None
        if changed:
            logger.debug("Tuning changed: %s", ", ".join(sorted(changed)))
        return new_config

    def _require_source(self) -> AudioSource:
        if self._audio_source is None:
            raise NotLoadedError("No track loaded. Call load_track() before analysis or chart generation.")
        return self._audio_source

    def analyze(self) -> AnalysisResult:
        with self._lock:
            return self._analyze_locked()

    def _analyze_locked(self) -> AnalysisResult:
        if self._analysis is not None:
            return self._analysis

        audio_source = self._require_source()
        config = self._config
        buffer = audio_source.sample_buffer()
        sample_rate = int(audio_source.sample_rate())
        hop_seconds = float(config.hop_size) / float(sample_rate)

        envelope = compute_energy_envelope(buffer.samples, window_size=config.window_size, hop_size=config.hop_size)
        onsets = detect_onsets(
            envelope,
            hop_size=config.hop_size,
            sample_rate=sample_rate,
            sensitivity=config.sensitivity,
            threshold_base=config.threshold_base,
            min_gap_seconds=config.min_onset_gap_seconds,
        )
        tempo = estimate_tempo_or_default(
            envelope,
            hop_seconds,
            min_bpm=config.min_bpm,
            max_bpm=config.max_bpm,
            fallback_bpm=config.fallback_bpm,
        )
        if self._host_frames is not None:
            frames = self._host_frames
        else:
            frames = compute_spectral_frames(buffer, hop_size=config.hop_size)

        self._analysis = AnalysisResult(
            envelope=envelope,
            onsets=tuple(onsets),
            tempo=tempo,
            spectral_frames=frames,
            hop_seconds=hop_seconds,
            duration_seconds=float(audio_source.duration()),
        )
        logger.info(
            "Analysis complete: %d envelope frames, %d onsets, %.1f BPM%s",
            int(envelope.shape[0]),
            len(onsets),
            tempo.bpm,
            " (fallback)" if tempo.is_fallback else "",
        )
        return self._analysis

    def lane_mapper(self) -> LaneMapper:
        analysis = self.analyze()
        config = self._config
        return build_lane_mapper(
            config.lane_strategy,
            analysis.spectral_frames,
            lane_count=config.lane_count,
            min_hz=config.min_band_hz,
            max_hz=config.max_band_hz,
        )

    def generate_chart(self, *, subdivision: Optional[int] = None) -> Chart:
        if subdivision is not None and int(subdivision) != self._config.subdivision:
            self.set_tuning(subdivision=int(subdivision))

        with self._lock:
            if self._chart is not None:
                return self._chart
            analysis = self._analyze_locked()
            config = self._config

        mapper = build_lane_mapper(
            config.lane_strategy,
            analysis.spectral_frames,
            lane_count=config.lane_count,
            min_hz=config.min_band_hz,
            max_hz=config.max_band_hz,
        )
        grid = build_beat_grid(analysis.tempo.bpm, config.subdivision, analysis.duration_seconds)
        chart = synthesize_chart(
            analysis.onsets,
            grid,
            mapper,
            bpm=analysis.tempo.bpm,
            subdivision=config.subdivision,
            duration_seconds=analysis.duration_seconds,
            tempo_is_fallback=analysis.tempo.is_fallback,
            filler=FillerOptions(enabled=config.fill_sparse_sections, gap_seconds=config.filler_gap_seconds),
        )

        with self._lock:
            if self._analysis is analysis:
                self._chart = chart
        logger.info("Chart generated: %d notes at 1/%d grid", len(chart.notes), config.subdivision)
        return chart

    def run_in_background(
        self,
        callback: Callable[[Optional[Chart], Optional[BaseException]], None],
    ) -> threading.Thread:
        """Analyze and generate on a daemon worker. callback receives (chart, None) or (None, error)."""
        self._require_source()

        def run_analysis() -> None:
            try:
                chart = self.generate_chart()
            except Exception as exc:
                logger.exception("Background chart generation failed")
                callback(None, exc)
                return
            callback(chart, None)

        worker = threading.Thread(target=run_analysis, name="beatlane-analysis", daemon=True)
        worker.start()
        return worker


def _run_unit_tests() -> None:
    import numpy as np

    context = AnalysisContext()
    try:
        context.analyze()
    except NotLoadedError:
        pass
    else:
        raise AssertionError("Expected NotLoadedError before load_track")

    sample_rate = 8000
    samples = np.zeros(sample_rate * 4)
    samples[:: sample_rate // 2] = 1.0
    context.load_track(BufferAudioSource(SampleBuffer(samples=samples, sample_rate=sample_rate)))
    chart = context.generate_chart()
    assert chart.notes
    times = [note.time_seconds for note in chart.notes]
    assert times == sorted(times)


if __name__ == "__main__":
    _run_unit_tests()
    print("chart_pipeline.py: ok")
