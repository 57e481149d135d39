"""Core data types for the speaking-energy analysis pipeline.

Results are frozen dataclasses so that a finished analysis can be handed to
presentation and persistence collaborators without defensive copies. Every
result serializes to the camelCase shape those collaborators consume, and
each per-metric result keeps its string ``tag`` discriminant.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class MetricId(str, Enum):
    """The five scored metrics."""

    VOLUME = "volume"
    SPEECH_RATE = "speechRate"
    ACCELERATION = "acceleration"
    RESPONSE_TIME = "responseTime"
    PAUSE_MANAGEMENT = "pauseManagement"


class MetricTag(str, Enum):
    """Discriminant carried by every per-metric result."""

    ENERGY = "ENERGY"
    FLUENCY = "FLUENCY"
    DYNAMICS = "DYNAMICS"
    READINESS = "READINESS"
    FLUIDITY = "FLUIDITY"


class FeedbackBucket(str, Enum):
    """Coarse qualitative label derived from the overall score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"


class RateMode(str, Enum):
    """Pulse-detection mode actually used for the speech-rate estimate."""

    ENERGY_PEAKS = "energy-peaks"
    VAD_ENHANCED = "vad-enhanced"


class SpeechRateMethod(str, Enum):
    """Word-counting methods the settings screens can select.

    The engine only implements the energy-pulse heuristic; the other names
    describe upstream transcription pipelines and are accepted as-is.
    """

    ENERGY_PEAKS = "energy-peaks"
    DEEPGRAM_STT = "deepgram-stt"
    ZERO_CROSSING_RATE = "zero-crossing-rate"
    SPECTRAL_FLUX = "spectral-flux"


@dataclass(frozen=True, slots=True)
class Thresholds:
    """Metric-specific breakpoints.

    Units depend on the metric: dB for volume, WPM for speech rate, ms for
    response time, a ratio for pauses. For response time ``min`` holds the
    maximum acceptable latency.
    """

    min: float
    ideal: float
    max: float

    def to_dict(self) -> dict[str, float]:
        return {"min": self.min, "ideal": self.ideal, "max": self.max}


@dataclass(frozen=True, slots=True)
class MetricConfigEntry:
    """Resolved configuration for one metric."""

    metric_id: MetricId
    weight: float
    thresholds: Thresholds
    method: str | None = None
    enabled: bool = True

    @property
    def contributes(self) -> bool:
        """Whether this metric takes part in the weighted overall score."""
        return self.enabled and self.weight > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.metric_id.value,
            "weight": self.weight,
            "thresholds": self.thresholds.to_dict(),
            "method": self.method,
            "enabled": self.enabled,
        }


@dataclass(frozen=True, slots=True)
class VolumeResult:
    average_db: float
    score: int
    tag: MetricTag = MetricTag.ENERGY

    def to_dict(self) -> dict[str, Any]:
        return {"averageDb": self.average_db, "score": self.score, "tag": self.tag.value}


@dataclass(frozen=True, slots=True)
class SpeechRateResult:
    words_per_minute: int
    score: int
    method: RateMode
    pulse_count: int = 0
    configured_method: str | None = None
    tag: MetricTag = MetricTag.FLUENCY

    def to_dict(self) -> dict[str, Any]:
        return {
            "wordsPerMinute": self.words_per_minute,
            "score": self.score,
            "tag": self.tag.value,
            "method": self.method.value,
            "pulseCount": self.pulse_count,
            "configuredMethod": self.configured_method,
        }


@dataclass(frozen=True, slots=True)
class AccelerationResult:
    is_accelerating: bool
    segment1_volume: float
    segment2_volume: float
    segment1_rate: int
    segment2_rate: int
    score: int
    tag: MetricTag = MetricTag.DYNAMICS

    def to_dict(self) -> dict[str, Any]:
        return {
            "isAccelerating": self.is_accelerating,
            "segment1Volume": self.segment1_volume,
            "segment2Volume": self.segment2_volume,
            "segment1Rate": self.segment1_rate,
            "segment2Rate": self.segment2_rate,
            "score": self.score,
            "tag": self.tag.value,
        }


@dataclass(frozen=True, slots=True)
class ResponseTimeResult:
    response_time_ms: int
    score: int
    noise_floor: float = 0.0
    tag: MetricTag = MetricTag.READINESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "responseTimeMs": self.response_time_ms,
            "score": self.score,
            "tag": self.tag.value,
            "noiseFloor": self.noise_floor,
        }


@dataclass(frozen=True, slots=True)
class PauseResult:
    pause_ratio: float
    score: int
    source: str = "energy"
    tag: MetricTag = MetricTag.FLUIDITY

    def to_dict(self) -> dict[str, Any]:
        return {
            "pauseRatio": self.pause_ratio,
            "score": self.score,
            "tag": self.tag.value,
            "source": self.source,
        }


@dataclass(frozen=True, slots=True)
class NormalizationInfo:
    """Diagnostic side-record emitted by the loudness normalizer."""

    original_lufs: float
    calibrated_lufs: float
    final_lufs: float
    device_gain: float
    normalization_gain: float

    def to_dict(self) -> dict[str, float]:
        return {
            "originalLUFS": self.original_lufs,
            "calibratedLUFS": self.calibrated_lufs,
            "finalLUFS": self.final_lufs,
            "deviceGain": self.device_gain,
            "normalizationGain": self.normalization_gain,
        }


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Terminal record of one analysis call."""

    overall_score: int
    feedback_bucket: FeedbackBucket
    volume: VolumeResult
    speech_rate: SpeechRateResult
    acceleration: AccelerationResult
    response_time: ResponseTimeResult
    pauses: PauseResult
    normalization: NormalizationInfo | None = None

    def metric_scores(self) -> dict[MetricId, int]:
        """Per-metric scores keyed by metric id."""
        return {
            MetricId.VOLUME: self.volume.score,
            MetricId.SPEECH_RATE: self.speech_rate.score,
            MetricId.ACCELERATION: self.acceleration.score,
            MetricId.RESPONSE_TIME: self.response_time.score,
            MetricId.PAUSE_MANAGEMENT: self.pauses.score,
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "overallScore": self.overall_score,
            "emotionalFeedback": self.feedback_bucket.value,
            "volume": self.volume.to_dict(),
            "speechRate": self.speech_rate.to_dict(),
            "acceleration": self.acceleration.to_dict(),
            "responseTime": self.response_time.to_dict(),
            "pauses": self.pauses.to_dict(),
        }
        if self.normalization is not None:
            data["normalization"] = self.normalization.to_dict()
        return data
