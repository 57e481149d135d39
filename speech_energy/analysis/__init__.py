"""Speaking-energy analysis: five metrics, weighted scoring and calibration."""

from speech_energy.analysis.engine import (
    SpeechEnergyAnalyzer,
    analyze,
    analyze_async,
    build_analyzer,
)
from speech_energy.analysis.errors import InvalidAudioError
from speech_energy.analysis.loudness import (
    CalibrationStore,
    InMemoryCalibrationStore,
    JsonFileCalibrationStore,
    LoudnessNormalizer,
    integrated_loudness,
)
from speech_energy.analysis.metric_config import (
    DEFAULT_METRIC_CONFIG,
    MetricConfigResolver,
    MetricConfigSnapshot,
    MetricSettingsStore,
)
from speech_energy.analysis.payloads import (
    CalibrationProfile,
    MetricSettingRow,
    SpeechSegment,
    VADMetrics,
)
from speech_energy.analysis.settings_store import InMemorySettingsStore, JsonFileSettingsStore
from speech_energy.analysis.types import (
    AccelerationResult,
    AnalysisResult,
    FeedbackBucket,
    MetricConfigEntry,
    MetricId,
    MetricTag,
    NormalizationInfo,
    PauseResult,
    RateMode,
    ResponseTimeResult,
    SpeechRateMethod,
    SpeechRateResult,
    Thresholds,
    VolumeResult,
)

__all__ = [
    "AccelerationResult",
    "AnalysisResult",
    "CalibrationProfile",
    "CalibrationStore",
    "DEFAULT_METRIC_CONFIG",
    "FeedbackBucket",
    "InMemoryCalibrationStore",
    "InMemorySettingsStore",
    "InvalidAudioError",
    "JsonFileCalibrationStore",
    "JsonFileSettingsStore",
    "LoudnessNormalizer",
    "MetricConfigEntry",
    "MetricConfigResolver",
    "MetricConfigSnapshot",
    "MetricId",
    "MetricSettingRow",
    "MetricSettingsStore",
    "MetricTag",
    "NormalizationInfo",
    "PauseResult",
    "RateMode",
    "ResponseTimeResult",
    "SpeechEnergyAnalyzer",
    "SpeechRateMethod",
    "SpeechRateResult",
    "SpeechSegment",
    "Thresholds",
    "VADMetrics",
    "VolumeResult",
    "analyze",
    "analyze_async",
    "build_analyzer",
    "integrated_loudness",
]
