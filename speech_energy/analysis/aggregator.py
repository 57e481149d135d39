"""Weighted overall score and feedback bucket."""

from __future__ import annotations

from collections.abc import Mapping

from speech_energy.analysis.signal import clamp_score
from speech_energy.analysis.types import FeedbackBucket, MetricId

EXCELLENT_THRESHOLD = 70
GOOD_THRESHOLD = 40


def overall_score(scores: Mapping[MetricId, int], weights: Mapping[MetricId, float]) -> int:
    """Combine per-metric scores with normalized weights.

    Metrics missing from ``weights`` contribute nothing; all-zero weights
    give 0.
    """
    total = sum(scores[metric_id] * weights.get(metric_id, 0.0) for metric_id in scores)
    return clamp_score(total)


def feedback_bucket(score: int) -> FeedbackBucket:
    if score >= EXCELLENT_THRESHOLD:
        return FeedbackBucket.EXCELLENT
    if score >= GOOD_THRESHOLD:
        return FeedbackBucket.GOOD
    return FeedbackBucket.POOR
