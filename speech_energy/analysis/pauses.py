"""Pause analyzer.

The pause ratio comes from the speech-activity detector when it reports a
speech ratio (or the talking and silence totals to derive one), otherwise from counting near-silent 50 ms frames. The two sources
are never blended.
"""

from __future__ import annotations

import numpy as np

from speech_energy.analysis.metric_config import usable_thresholds
from speech_energy.analysis.payloads import VADMetrics
from speech_energy.analysis.signal import clamp_score, frame_mean_abs, round_to
from speech_energy.analysis.types import MetricId, PauseResult, Thresholds
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)

FRAME_MS = 50.0
SILENCE_THRESHOLD = 0.01
TOLERATED_PAUSE_RATIO = 0.1


def energy_pause_ratio(samples: np.ndarray, sample_rate: int) -> float:
    levels = frame_mean_abs(samples, sample_rate, FRAME_MS)
    silent = int(np.count_nonzero(levels < SILENCE_THRESHOLD))
    return silent / max(1, levels.size)


def score_pauses(pause_ratio: float, thresholds: Thresholds) -> int:
    """Pauses up to 10 % are free; beyond that the score falls against ``max``."""
    if pause_ratio <= TOLERATED_PAUSE_RATIO:
        return 100
    raw = max(0.0, 100 - (pause_ratio - TOLERATED_PAUSE_RATIO) / thresholds.max * 100)
    return clamp_score(raw)


def analyze_pauses(
    samples: np.ndarray,
    sample_rate: int,
    thresholds: Thresholds,
    vad: VADMetrics | None = None,
) -> PauseResult:
    thresholds = usable_thresholds(MetricId.PAUSE_MANAGEMENT, thresholds)
    speech_ratio = vad.effective_speech_ratio if vad is not None else None
    if speech_ratio is not None:
        ratio = 1.0 - speech_ratio
        source = "vad"
    else:
        ratio = energy_pause_ratio(samples, sample_rate)
        source = "energy"

    result = PauseResult(
        pause_ratio=round_to(ratio, 2),
        score=score_pauses(ratio, thresholds),
        source=source,
    )
    logger.debug("pauses.analyzed", pause_ratio=ratio, source=source, score=result.score)
    return result
