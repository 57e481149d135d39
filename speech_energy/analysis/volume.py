"""Volume (energy) analyzer."""

from __future__ import annotations

import numpy as np

from speech_energy.analysis.metric_config import usable_thresholds
from speech_energy.analysis.signal import amplitude_to_db, clamp_score, rms, round_to
from speech_energy.analysis.types import MetricId, Thresholds, VolumeResult
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)


def score_volume(db: float, thresholds: Thresholds) -> int:
    """Map a dB reading onto 0-100 using piecewise-linear breakpoints.

    At or above ``ideal`` the score decays towards 70 at ``max``; between
    ``min`` and ``ideal`` it climbs from 70 to 100; below ``min`` it falls
    linearly to 0 over 20 dB.
    """
    low, ideal, high = thresholds.min, thresholds.ideal, thresholds.max
    if db >= ideal:
        raw = 100 - (db - ideal) / (high - ideal) * 30
    elif db >= low:
        raw = 70 + (db - low) / (ideal - low) * 30
    else:
        raw = max(0.0, 70 * (1 - (low - db) / 20))
    return clamp_score(raw)


def measure_db(samples: np.ndarray) -> float:
    return amplitude_to_db(rms(samples))


def analyze_volume(samples: np.ndarray, thresholds: Thresholds) -> VolumeResult:
    thresholds = usable_thresholds(MetricId.VOLUME, thresholds)
    db = measure_db(samples)
    result = VolumeResult(average_db=round_to(db, 1), score=score_volume(db, thresholds))
    logger.debug("volume.analyzed", average_db=result.average_db, score=result.score)
    return result
