"""Analysis pipeline orchestration.

One call validates the buffer, resolves a configuration snapshot, optionally
normalizes loudness with the device's calibration profile, runs the five
analyzers and aggregates their scores. The analyzers run sequentially; they
share no state, and recordings are short enough that parallelism buys nothing.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
from pydantic import ValidationError

from speech_energy.analysis.aggregator import feedback_bucket, overall_score
from speech_energy.analysis.dynamics import analyze_acceleration
from speech_energy.analysis.latency import analyze_response_time
from speech_energy.analysis.loudness import (
    CalibrationStore,
    JsonFileCalibrationStore,
    LoudnessNormalizer,
)
from speech_energy.analysis.metric_config import (
    MetricConfigResolver,
    MetricConfigSnapshot,
    MetricSettingsStore,
)
from speech_energy.analysis.payloads import VADMetrics
from speech_energy.analysis.pauses import analyze_pauses
from speech_energy.analysis.settings_store import JsonFileSettingsStore
from speech_energy.analysis.signal import as_samples
from speech_energy.analysis.speech_rate import analyze_speech_rate, select_strategy
from speech_energy.analysis.types import AnalysisResult, MetricId, NormalizationInfo
from speech_energy.analysis.volume import analyze_volume
from speech_energy.common.config import AnalysisConfig
from speech_energy.common.structured_logging import correlation_context, get_logger

logger = get_logger(__name__)


def coerce_vad_metrics(vad_metrics: VADMetrics | Mapping[str, Any] | None) -> VADMetrics | None:
    """Accept detector output as a model or as its raw JSON mapping."""
    if vad_metrics is None or isinstance(vad_metrics, VADMetrics):
        return vad_metrics
    return VADMetrics.model_validate(vad_metrics)


class SpeechEnergyAnalyzer:
    """Score a recorded speech sample."""

    def __init__(
        self,
        resolver: MetricConfigResolver | None = None,
        calibration_store: CalibrationStore | None = None,
        target_lufs: float = -23.0,
        max_normalization_gain: float = 10.0,
    ) -> None:
        self.resolver = resolver or MetricConfigResolver()
        self.calibration_store = calibration_store
        self.normalizer = LoudnessNormalizer(target_lufs, max_normalization_gain)
        self._logger = get_logger(__name__)

    def _normalize(
        self, samples: np.ndarray, sample_rate: int, device_id: str | None
    ) -> tuple[np.ndarray, NormalizationInfo | None]:
        if not device_id or self.calibration_store is None:
            return samples, None

        try:
            profile = self.calibration_store.get(device_id)
        except (OSError, ValueError, ValidationError) as exc:
            self._logger.warning(
                "analysis.calibration_lookup_failed",
                device_id=device_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return samples, None

        if profile is None:
            self._logger.debug("analysis.no_calibration_profile", device_id=device_id)
            return samples, None
        return self.normalizer.apply(samples, sample_rate, profile)

    def analyze(
        self,
        samples: np.ndarray | Sequence[float],
        sample_rate: int,
        device_id: str | None = None,
        vad_metrics: VADMetrics | Mapping[str, Any] | None = None,
        correlation_id: str | None = None,
        config: MetricConfigSnapshot | None = None,
    ) -> AnalysisResult:
        """Run the full pipeline.

        Args:
            samples: Mono PCM samples, normalized to roughly [-1, 1].
            sample_rate: Sample rate in Hz.
            device_id: Recording device; enables loudness normalization when a
                calibration profile exists for it.
            vad_metrics: Optional speech-activity segmentation.
            correlation_id: Optional id bound to every log event of this call.
            config: Pre-resolved configuration; resolved from the layers when
                omitted.

        Raises:
            InvalidAudioError: The buffer or sample rate cannot be analyzed.
            pydantic.ValidationError: ``vad_metrics`` is malformed.
        """
        with correlation_context(correlation_id):
            started = time.perf_counter()
            buffer = as_samples(samples, sample_rate)
            vad = coerce_vad_metrics(vad_metrics)
            snapshot = config or self.resolver.snapshot()

            buffer, normalization = self._normalize(buffer, sample_rate, device_id)
            strategy = select_strategy(vad)
            rate_entry = snapshot.get(MetricId.SPEECH_RATE)

            volume = analyze_volume(buffer, snapshot.thresholds(MetricId.VOLUME))
            speech_rate = analyze_speech_rate(
                buffer,
                sample_rate,
                rate_entry.thresholds,
                strategy,
                configured_method=rate_entry.method,
            )
            acceleration = analyze_acceleration(
                buffer,
                sample_rate,
                snapshot.thresholds(MetricId.VOLUME),
                rate_entry.thresholds,
                strategy,
            )
            response_time = analyze_response_time(
                buffer, sample_rate, snapshot.thresholds(MetricId.RESPONSE_TIME)
            )
            pauses = analyze_pauses(
                buffer, sample_rate, snapshot.thresholds(MetricId.PAUSE_MANAGEMENT), vad
            )

            scores = {
                MetricId.VOLUME: volume.score,
                MetricId.SPEECH_RATE: speech_rate.score,
                MetricId.ACCELERATION: acceleration.score,
                MetricId.RESPONSE_TIME: response_time.score,
                MetricId.PAUSE_MANAGEMENT: pauses.score,
            }
            overall = overall_score(scores, snapshot.normalized_weights())

            result = AnalysisResult(
                overall_score=overall,
                feedback_bucket=feedback_bucket(overall),
                volume=volume,
                speech_rate=speech_rate,
                acceleration=acceleration,
                response_time=response_time,
                pauses=pauses,
                normalization=normalization,
            )
            self._logger.info(
                "analysis.completed",
                overall_score=result.overall_score,
                feedback=result.feedback_bucket.value,
                scores={metric_id.value: score for metric_id, score in scores.items()},
                rate_mode=speech_rate.method.value,
                normalized=normalization is not None,
                duration_seconds=buffer.size / sample_rate,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return result

    async def analyze_async(
        self,
        samples: np.ndarray | Sequence[float],
        sample_rate: int,
        device_id: str | None = None,
        vad_metrics: VADMetrics | Mapping[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> AnalysisResult:
        """Run ``analyze`` in a worker thread so the event loop stays responsive."""
        return await asyncio.to_thread(
            self.analyze,
            samples,
            sample_rate,
            device_id,
            vad_metrics,
            correlation_id,
        )


def build_analyzer(
    config: AnalysisConfig | None = None,
    overrides: MetricSettingsStore | None = None,
) -> SpeechEnergyAnalyzer:
    """Wire an analyzer from environment configuration.

    Layer order is: ``overrides`` (session), per-user settings file,
    admin-default settings file, built-in defaults. Empty paths disable a layer.
    """
    config = config or AnalysisConfig()
    layers: list[MetricSettingsStore] = []
    if overrides is not None:
        layers.append(overrides)
    if config.user_settings_path:
        layers.append(JsonFileSettingsStore(config.user_settings_path))
    if config.default_settings_path:
        layers.append(JsonFileSettingsStore(config.default_settings_path))

    calibration_store = (
        JsonFileCalibrationStore(config.calibration_path) if config.calibration_path else None
    )
    logger.debug(
        "analysis.analyzer_built",
        settings_layers=len(layers),
        calibration=bool(config.calibration_path),
        target_lufs=config.target_lufs,
    )
    return SpeechEnergyAnalyzer(
        resolver=MetricConfigResolver(layers),
        calibration_store=calibration_store,
        target_lufs=config.target_lufs,
        max_normalization_gain=config.max_normalization_gain,
    )


_default_analyzer: SpeechEnergyAnalyzer | None = None


def _get_default_analyzer() -> SpeechEnergyAnalyzer:
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = SpeechEnergyAnalyzer()
    return _default_analyzer


def analyze(
    samples: np.ndarray | Sequence[float],
    sample_rate: int,
    device_id: str | None = None,
    vad_metrics: VADMetrics | Mapping[str, Any] | None = None,
    *,
    analyzer: SpeechEnergyAnalyzer | None = None,
    correlation_id: str | None = None,
) -> AnalysisResult:
    """Analyze with built-in defaults, or with ``analyzer`` when given."""
    analyzer = analyzer or _get_default_analyzer()
    return analyzer.analyze(
        samples,
        sample_rate,
        device_id=device_id,
        vad_metrics=vad_metrics,
        correlation_id=correlation_id,
    )


async def analyze_async(
    samples: np.ndarray | Sequence[float],
    sample_rate: int,
    device_id: str | None = None,
    vad_metrics: VADMetrics | Mapping[str, Any] | None = None,
    *,
    analyzer: SpeechEnergyAnalyzer | None = None,
    correlation_id: str | None = None,
) -> AnalysisResult:
    analyzer = analyzer or _get_default_analyzer()
    return await analyzer.analyze_async(
        samples,
        sample_rate,
        device_id=device_id,
        vad_metrics=vad_metrics,
        correlation_id=correlation_id,
    )
