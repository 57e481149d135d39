"""Pydantic models for data supplied by external collaborators.

Speech-activity metrics, device calibration profiles and persisted metric
settings all arrive as loosely shaped JSON. These models validate them at the
boundary and accept both the snake_case field names and the camelCase keys the
collaborators emit.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from speech_energy.analysis.types import MetricConfigEntry, MetricId, Thresholds


class SpeechSegment(BaseModel):
    """One speech-active interval, in milliseconds from the recording start."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start_ms: float = Field(..., ge=0, validation_alias=AliasChoices("start_ms", "start", "startMs"))
    end_ms: float = Field(..., ge=0, validation_alias=AliasChoices("end_ms", "end", "endMs"))
    duration_ms: float | None = Field(
        None, ge=0, validation_alias=AliasChoices("duration_ms", "duration", "durationMs")
    )

    @model_validator(mode="after")
    def _check_order(self) -> SpeechSegment:
        if self.end_ms < self.start_ms:
            raise ValueError(
                f"segment end ({self.end_ms}ms) precedes its start ({self.start_ms}ms)"
            )
        return self

    @property
    def length_ms(self) -> float:
        if self.duration_ms is not None:
            return self.duration_ms
        return self.end_ms - self.start_ms

    def contains(self, time_ms: float) -> bool:
        return self.start_ms <= time_ms <= self.end_ms


class VADMetrics(BaseModel):
    """Speech-activity segmentation produced by an external detector."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    speech_segments: tuple[SpeechSegment, ...] = Field(
        default=(), validation_alias=AliasChoices("speech_segments", "speechSegments")
    )
    total_speech_time_ms: float = Field(
        0.0,
        ge=0,
        validation_alias=AliasChoices(
            "total_speech_time_ms",
            "totalSpeechTime_ms",
            "totalSpeechTime",
            "totalSpeechTimeMs",
        ),
    )
    total_silence_time_ms: float = Field(
        0.0,
        ge=0,
        validation_alias=AliasChoices(
            "total_silence_time_ms",
            "totalSilenceTime_ms",
            "totalSilenceTime",
            "totalSilenceTimeMs",
        ),
    )
    speech_ratio: float | None = Field(
        None, ge=0, le=1, validation_alias=AliasChoices("speech_ratio", "speechRatio")
    )
    is_speaking: bool = Field(
        False, validation_alias=AliasChoices("is_speaking", "isSpeaking")
    )
    speech_probability: float = Field(
        0.0,
        ge=0,
        le=1,
        validation_alias=AliasChoices("speech_probability", "speechProbability"),
    )

    @field_validator("speech_segments")
    @classmethod
    def _sort_segments(cls, segments: tuple[SpeechSegment, ...]) -> tuple[SpeechSegment, ...]:
        return tuple(sorted(segments, key=lambda segment: segment.start_ms))

    @property
    def has_segments(self) -> bool:
        return len(self.speech_segments) > 0

    @property
    def effective_speech_ratio(self) -> float | None:
        """Reported speech ratio, else one derived from the talking/silence totals.

        ``None`` when the detector supplied neither.
        """
        if self.speech_ratio is not None:
            return self.speech_ratio
        total_ms = self.total_speech_time_ms + self.total_silence_time_ms
        if total_ms > 0:
            return self.total_speech_time_ms / total_ms
        return None

    def split_at(self, midpoint_ms: float, total_ms: float) -> tuple[VADMetrics, VADMetrics]:
        """Split into two halves at ``midpoint_ms``.

        Segments are clipped to each half and the second half's timestamps are
        shifted so that it starts at zero. Aggregates are recomputed from the
        clipped segments.
        """
        first: list[SpeechSegment] = []
        second: list[SpeechSegment] = []
        for segment in self.speech_segments:
            if segment.start_ms < midpoint_ms:
                end = min(segment.end_ms, midpoint_ms)
                first.append(
                    SpeechSegment(start_ms=segment.start_ms, end_ms=end, duration_ms=end - segment.start_ms)
                )
            if segment.end_ms > midpoint_ms:
                start = max(segment.start_ms, midpoint_ms) - midpoint_ms
                end = segment.end_ms - midpoint_ms
                second.append(SpeechSegment(start_ms=start, end_ms=end, duration_ms=end - start))

        return (
            _from_segments(first, midpoint_ms),
            _from_segments(second, max(0.0, total_ms - midpoint_ms)),
        )


def _from_segments(segments: list[SpeechSegment], span_ms: float) -> VADMetrics:
    speech_ms = sum(segment.length_ms for segment in segments)
    speech_ms = min(speech_ms, span_ms) if span_ms > 0 else speech_ms
    ratio = speech_ms / span_ms if span_ms > 0 else 0.0
    return VADMetrics(
        speech_segments=tuple(segments),
        total_speech_time_ms=speech_ms,
        total_silence_time_ms=max(0.0, span_ms - speech_ms),
        speech_ratio=min(1.0, max(0.0, ratio)),
    )


class CalibrationProfile(BaseModel):
    """Per-device loudness calibration captured by the calibration screen."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device_id: str = Field(..., min_length=1, validation_alias=AliasChoices("device_id", "deviceId"))
    device_label: str | None = Field(
        None, validation_alias=AliasChoices("device_label", "deviceLabel")
    )
    noise_floor: float = Field(
        -60.0, validation_alias=AliasChoices("noise_floor", "noiseFloor"), description="dB"
    )
    reference_level: float = Field(
        -23.0,
        validation_alias=AliasChoices("reference_level", "referenceLevel"),
        description="LUFS measured for the reference utterance",
    )
    gain_adjustment: float = Field(
        1.0,
        gt=0,
        validation_alias=AliasChoices("gain_adjustment", "gainAdjustment"),
        description="Linear gain applied to this device's samples",
    )
    calibrated_at: datetime | None = Field(
        None, validation_alias=AliasChoices("calibrated_at", "calibratedAt")
    )


class MetricSettingRow(BaseModel):
    """One persisted metric setting.

    Accepts the admin table row shape (``metric_id``, ``min_threshold``, ...)
    and the client blob shape (``id``, ``thresholds: {min, ideal, max}``).
    """

    model_config = ConfigDict(populate_by_name=True)

    metric_id: str = Field(..., validation_alias=AliasChoices("metric_id", "id", "metricId"))
    weight: float = Field(..., ge=0)
    min_threshold: float
    ideal_threshold: float
    max_threshold: float
    method: str | None = None
    enabled: bool | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_thresholds(cls, data: object) -> object:
        if isinstance(data, dict) and isinstance(data.get("thresholds"), dict):
            thresholds = data["thresholds"]
            data = {key: value for key, value in data.items() if key != "thresholds"}
            data.setdefault("min_threshold", thresholds.get("min"))
            data.setdefault("ideal_threshold", thresholds.get("ideal"))
            data.setdefault("max_threshold", thresholds.get("max"))
        return data

    def to_entry(self) -> MetricConfigEntry:
        """Convert to a resolved entry; raises ``ValueError`` for unknown metric ids."""
        return MetricConfigEntry(
            metric_id=MetricId(self.metric_id),
            weight=self.weight,
            thresholds=Thresholds(
                min=self.min_threshold, ideal=self.ideal_threshold, max=self.max_threshold
            ),
            method=self.method,
            enabled=self.enabled if self.enabled is not None else self.weight > 0,
        )
