"""Response-time (latency) analyzer."""

from __future__ import annotations

import numpy as np

from speech_energy.analysis.metric_config import usable_thresholds
from speech_energy.analysis.signal import clamp_score, rms, round_half_up
from speech_energy.analysis.types import MetricId, ResponseTimeResult, Thresholds
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)

NOISE_WINDOW_SECONDS = 0.1
MIN_NOISE_FLOOR = 0.005
NOISE_FLOOR_FACTOR = 3.0
LATE_PENALTY_MS = 3000.0


def estimate_noise_floor(samples: np.ndarray, sample_rate: int) -> float:
    """Adaptive floor from the first 100 ms, never below 0.005."""
    window = samples[: int(sample_rate * NOISE_WINDOW_SECONDS)]
    return max(MIN_NOISE_FLOOR, NOISE_FLOOR_FACTOR * rms(window))


def first_onset(samples: np.ndarray, noise_floor: float) -> int:
    """Index of the first sample louder than ``noise_floor``, else the buffer length."""
    above = np.flatnonzero(np.abs(samples) > noise_floor)
    return int(above[0]) if above.size else int(samples.size)


def score_response_time(response_ms: float, thresholds: Thresholds) -> int:
    # The "min" breakpoint holds the maximum acceptable latency
    max_ms, ideal_ms = thresholds.min, thresholds.ideal
    if response_ms <= ideal_ms:
        raw = 100.0
    elif response_ms <= max_ms:
        raw = 100 - (response_ms - ideal_ms) / (max_ms - ideal_ms) * 50
    else:
        raw = max(0.0, 50 * (1 - (response_ms - max_ms) / LATE_PENALTY_MS))
    return clamp_score(raw)


def analyze_response_time(
    samples: np.ndarray, sample_rate: int, thresholds: Thresholds
) -> ResponseTimeResult:
    thresholds = usable_thresholds(MetricId.RESPONSE_TIME, thresholds)
    noise_floor = estimate_noise_floor(samples, sample_rate)
    onset = first_onset(samples, noise_floor)
    response_ms = round_half_up(onset / sample_rate * 1000)
    if onset == samples.size:
        logger.debug("latency.no_onset_found", noise_floor=noise_floor, samples=int(samples.size))

    result = ResponseTimeResult(
        response_time_ms=response_ms,
        score=score_response_time(response_ms, thresholds),
        noise_floor=noise_floor,
    )
    logger.debug(
        "latency.analyzed",
        response_time_ms=result.response_time_ms,
        noise_floor=noise_floor,
        score=result.score,
    )
    return result
