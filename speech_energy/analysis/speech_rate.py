"""Speech-rate analyzer.

Words per minute are estimated without transcription: syllable-like energy
pulses are counted on a 20 ms / 50 % overlap energy envelope and converted to
words with an average of 1.5 syllables per word.

Two estimation strategies share that pulse detector. ``BasicRateStrategy``
scans the whole buffer and divides by its duration. ``SegmentAwareRateStrategy``
only considers frames that start inside externally detected speech segments
and divides by the detected talking time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np

from speech_energy.analysis.metric_config import usable_thresholds
from speech_energy.analysis.payloads import VADMetrics
from speech_energy.analysis.signal import clamp_score, frame_energies, round_half_up
from speech_energy.analysis.types import MetricId, RateMode, SpeechRateResult, Thresholds
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)

FRAME_MS = 20.0
PEAK_THRESHOLD_RATIO = 0.15
REFRACTORY_FRAMES = 3
SYLLABLES_PER_WORD = 1.5


@dataclass(frozen=True, slots=True)
class RateEstimate:
    words_per_minute: int
    pulse_count: int
    mode: RateMode


def count_pulses(energies: np.ndarray, considered: np.ndarray | None = None) -> int:
    """Count syllable-like local energy maxima.

    Args:
        energies: Per-frame mean squared energy.
        considered: Optional boolean mask; only these frames set the
            threshold and may be counted. Neighbour comparisons always use
            the full envelope.
    """
    if energies.size < 3:
        return 0

    if considered is None:
        considered = np.ones(energies.size, dtype=bool)
    if not considered.any():
        return 0

    threshold = float(energies[considered].max()) * PEAK_THRESHOLD_RATIO
    pulses = 0
    last_pulse = -10
    for i in range(1, energies.size - 1):
        if not considered[i]:
            continue
        energy = energies[i]
        if (
            energy > threshold
            and energy > energies[i - 1]
            and energy > energies[i + 1]
            and i - last_pulse > REFRACTORY_FRAMES
        ):
            pulses += 1
            last_pulse = i
    return pulses


def words_per_minute(pulses: int, duration_seconds: float) -> int:
    if duration_seconds <= 0:
        return 0
    words = pulses / SYLLABLES_PER_WORD
    return round_half_up(words / duration_seconds * 60)


def score_speech_rate(wpm: float, thresholds: Thresholds) -> int:
    low, ideal, high = thresholds.min, thresholds.ideal, thresholds.max
    if low <= wpm <= ideal:
        raw = 70 + (wpm - low) / (ideal - low) * 30
    elif ideal < wpm <= high:
        raw = 100 - (wpm - ideal) / (high - ideal) * 30
    elif wpm < low:
        raw = max(0.0, 70 * wpm / low)
    else:
        raw = max(0.0, 70 * (1 - (wpm - high) / 50))
    return clamp_score(raw)


class RateEstimationStrategy(Protocol):
    """How speech rate is estimated for one buffer."""

    mode: RateMode

    def estimate(self, samples: np.ndarray, sample_rate: int) -> RateEstimate: ...

    def split(
        self, midpoint_sample: int, total_samples: int, sample_rate: int
    ) -> tuple[RateEstimationStrategy, RateEstimationStrategy]: ...


class BasicRateStrategy:
    """Pulse scan over the whole buffer."""

    mode = RateMode.ENERGY_PEAKS

    def estimate(self, samples: np.ndarray, sample_rate: int) -> RateEstimate:
        energies, _ = frame_energies(samples, sample_rate, FRAME_MS)
        pulses = count_pulses(energies)
        duration = samples.size / sample_rate
        return RateEstimate(words_per_minute(pulses, duration), pulses, self.mode)

    def split(
        self, midpoint_sample: int, total_samples: int, sample_rate: int
    ) -> tuple[RateEstimationStrategy, RateEstimationStrategy]:
        return self, self


class SegmentAwareRateStrategy:
    """Pulse scan restricted to speech-active frames, timed by talking time."""

    mode = RateMode.VAD_ENHANCED

    def __init__(self, vad: VADMetrics) -> None:
        self.vad = vad
        self._fallback = BasicRateStrategy()

    def _speech_mask(self, starts: np.ndarray, sample_rate: int) -> np.ndarray:
        times_ms = starts / sample_rate * 1000.0
        mask = np.zeros(starts.size, dtype=bool)
        for segment in self.vad.speech_segments:
            mask |= (times_ms >= segment.start_ms) & (times_ms <= segment.end_ms)
        return mask

    def estimate(self, samples: np.ndarray, sample_rate: int) -> RateEstimate:
        energies, starts = frame_energies(samples, sample_rate, FRAME_MS)
        mask = self._speech_mask(starts, sample_rate)
        if not mask.any():
            logger.debug(
                "speech_rate.segments_empty_fallback",
                segments=len(self.vad.speech_segments),
                frames=int(starts.size),
            )
            return self._fallback.estimate(samples, sample_rate)

        pulses = count_pulses(energies, mask)
        speech_ms = self.vad.total_speech_time_ms or sum(
            segment.length_ms for segment in self.vad.speech_segments
        )
        duration = speech_ms / 1000.0
        return RateEstimate(words_per_minute(pulses, duration), pulses, self.mode)

    def split(
        self, midpoint_sample: int, total_samples: int, sample_rate: int
    ) -> tuple[RateEstimationStrategy, RateEstimationStrategy]:
        midpoint_ms = midpoint_sample / sample_rate * 1000.0
        total_ms = total_samples / sample_rate * 1000.0
        first, second = self.vad.split_at(midpoint_ms, total_ms)
        return SegmentAwareRateStrategy(first), SegmentAwareRateStrategy(second)


def select_strategy(vad: VADMetrics | None) -> RateEstimationStrategy:
    """Pick the rate strategy once per analysis call."""
    if vad is not None and vad.has_segments:
        strategy: RateEstimationStrategy = SegmentAwareRateStrategy(vad)
    else:
        strategy = BasicRateStrategy()
    logger.debug("speech_rate.mode_selected", mode=strategy.mode.value)
    return strategy


def analyze_speech_rate(
    samples: np.ndarray,
    sample_rate: int,
    thresholds: Thresholds,
    strategy: RateEstimationStrategy | None = None,
    configured_method: str | None = None,
) -> SpeechRateResult:
    thresholds = usable_thresholds(MetricId.SPEECH_RATE, thresholds)
    strategy = strategy or BasicRateStrategy()
    estimate = strategy.estimate(samples, sample_rate)
    result = SpeechRateResult(
        words_per_minute=estimate.words_per_minute,
        score=score_speech_rate(estimate.words_per_minute, thresholds),
        method=estimate.mode,
        pulse_count=estimate.pulse_count,
        configured_method=configured_method,
    )
    logger.debug(
        "speech_rate.analyzed",
        words_per_minute=result.words_per_minute,
        pulses=result.pulse_count,
        mode=result.method.value,
        score=result.score,
    )
    return result
