"""Tests for the acceleration (dynamics) analyzer."""

import numpy as np
import pytest

from speech_energy.analysis.dynamics import analyze_acceleration, score_acceleration
from speech_energy.analysis.payloads import SpeechSegment, VADMetrics
from speech_energy.analysis.speech_rate import SegmentAwareRateStrategy
from speech_energy.analysis.types import MetricTag, Thresholds

VOLUME = Thresholds(min=-35, ideal=-15, max=0)
RATE = Thresholds(min=90, ideal=150, max=220)


class TestScoreAcceleration:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "volume_increase,rate_increase,expected",
        [
            (0.0, 0.0, 50),
            (12.0, 0.0, 74),
            (0.0, 20.0, 60),
            (-12.0, 0.0, 50),
            (-5.0, 30.0, 55),
            (40.0, 0.0, 100),
        ],
    )
    def test_only_increases_are_rewarded(self, volume_increase, rate_increase, expected):
        assert score_acceleration(volume_increase, rate_increase) == expected


class TestAnalyzeAcceleration:
    """Half-versus-half comparison."""

    @pytest.mark.unit
    def test_louder_second_half_accelerates(self, two_level_tone, sample_rate):
        result = analyze_acceleration(two_level_tone(), sample_rate, VOLUME, RATE)

        assert result.segment1_volume == -23.0
        assert result.segment2_volume == -11.0
        assert result.segment1_rate == result.segment2_rate
        assert result.is_accelerating is True
        assert result.score == 74
        assert result.tag is MetricTag.DYNAMICS

    @pytest.mark.unit
    def test_trailing_off_loses_bonus_only(self, two_level_tone, sample_rate):
        samples = two_level_tone()[::-1].copy()

        result = analyze_acceleration(samples, sample_rate, VOLUME, RATE)

        assert result.is_accelerating is False
        assert result.score == 50

    @pytest.mark.unit
    def test_silence_is_neutral(self, generate_silence, sample_rate):
        result = analyze_acceleration(generate_silence(2.0), sample_rate, VOLUME, RATE)

        assert result.segment1_volume == result.segment2_volume == -200.0
        assert result.is_accelerating is False
        assert result.score == 50

    @pytest.mark.unit
    def test_faster_second_half_accelerates(self, generate_bursts, sample_rate):
        slow = generate_bursts(count=2, gap_ms=400.0)
        fast = generate_bursts(count=4, gap_ms=150.0)
        samples = np.concatenate([slow, fast])

        result = analyze_acceleration(samples, sample_rate, VOLUME, RATE)

        assert result.segment2_rate - result.segment1_rate > 5
        assert result.is_accelerating is True
        assert result.score > 50

    @pytest.mark.unit
    def test_segments_are_split_per_half(self, generate_bursts, sample_rate):
        samples = generate_bursts(count=8)
        vad = VADMetrics(
            speech_segments=[
                SpeechSegment(start_ms=k * 250.0, end_ms=k * 250.0 + 100.0) for k in range(8)
            ],
            total_speech_time_ms=800,
            speech_ratio=0.4,
        )

        result = analyze_acceleration(
            samples, sample_rate, VOLUME, RATE, SegmentAwareRateStrategy(vad)
        )

        # 4 pulses over 0.4 s of speech in each half
        assert result.segment1_rate == 400
        assert result.segment2_rate == 400
        assert result.score == 50

    @pytest.mark.unit
    def test_single_sample_buffer(self, sample_rate):
        result = analyze_acceleration(np.array([0.5]), sample_rate, VOLUME, RATE)

        assert 0 <= result.score <= 100
