"""Speaking-energy scoring engine for recorded speech samples."""

from speech_energy.analysis import (
    AnalysisResult,
    FeedbackBucket,
    InvalidAudioError,
    MetricConfigResolver,
    MetricId,
    SpeechEnergyAnalyzer,
    Thresholds,
    VADMetrics,
    analyze,
    analyze_async,
    build_analyzer,
)

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "FeedbackBucket",
    "InvalidAudioError",
    "MetricConfigResolver",
    "MetricId",
    "SpeechEnergyAnalyzer",
    "Thresholds",
    "VADMetrics",
    "analyze",
    "analyze_async",
    "build_analyzer",
]
