"""Acceleration (dynamics) analyzer.

Rewards energy that builds across the recording: the buffer is cut in half
and the second half's volume and speech rate are compared with the first's.
A decrease is not penalized beyond losing the bonus.
"""

from __future__ import annotations

import numpy as np

from speech_energy.analysis.signal import clamp_score
from speech_energy.analysis.speech_rate import (
    BasicRateStrategy,
    RateEstimationStrategy,
    analyze_speech_rate,
)
from speech_energy.analysis.types import AccelerationResult, Thresholds
from speech_energy.analysis.volume import analyze_volume
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)

RATE_ACCELERATION_WPM = 5


def score_acceleration(volume_increase: float, rate_increase: float) -> int:
    factor = max(0.0, volume_increase * 2 + rate_increase * 0.5)
    return clamp_score(50 + factor)


def analyze_acceleration(
    samples: np.ndarray,
    sample_rate: int,
    volume_thresholds: Thresholds,
    rate_thresholds: Thresholds,
    strategy: RateEstimationStrategy | None = None,
) -> AccelerationResult:
    """Compare the two halves of ``samples``.

    Each half gets its own share of the speech segments when ``strategy`` is
    segment-aware. A half too short to frame reports 0 WPM.
    """
    strategy = strategy or BasicRateStrategy()
    midpoint = samples.size // 2
    first, second = samples[:midpoint], samples[midpoint:]
    first_strategy, second_strategy = strategy.split(midpoint, samples.size, sample_rate)

    # An odd single-sample buffer leaves the first half empty
    if first.size == 0:
        first = np.zeros(1, dtype=samples.dtype)

    volume1 = analyze_volume(first, volume_thresholds)
    volume2 = analyze_volume(second, volume_thresholds)
    rate1 = analyze_speech_rate(first, sample_rate, rate_thresholds, first_strategy)
    rate2 = analyze_speech_rate(second, sample_rate, rate_thresholds, second_strategy)

    volume_increase = volume2.average_db - volume1.average_db
    rate_increase = rate2.words_per_minute - rate1.words_per_minute

    result = AccelerationResult(
        is_accelerating=volume_increase > 0 or rate_increase > RATE_ACCELERATION_WPM,
        segment1_volume=volume1.average_db,
        segment2_volume=volume2.average_db,
        segment1_rate=rate1.words_per_minute,
        segment2_rate=rate2.words_per_minute,
        score=score_acceleration(volume_increase, rate_increase),
    )
    logger.debug(
        "dynamics.analyzed",
        volume_increase=volume_increase,
        rate_increase=rate_increase,
        is_accelerating=result.is_accelerating,
        score=result.score,
    )
    return result
