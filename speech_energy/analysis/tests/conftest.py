"""Test fixtures for the analysis pipeline."""

from collections.abc import Callable

import numpy as np
import pytest
import structlog

SAMPLE_RATE = 48000


@pytest.fixture
def sample_rate() -> int:
    return SAMPLE_RATE


@pytest.fixture
def generate_tone() -> Callable[..., np.ndarray]:
    """Generate a steady sine tone."""

    def _generate(
        duration: float = 1.0,
        amplitude: float = 0.5,
        frequency: float = 200.0,
        sample_rate: int = SAMPLE_RATE,
    ) -> np.ndarray:
        t = np.arange(int(sample_rate * duration)) / sample_rate
        return amplitude * np.sin(2 * np.pi * frequency * t)

    return _generate


@pytest.fixture
def generate_silence() -> Callable[..., np.ndarray]:
    def _generate(duration: float = 1.0, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
        return np.zeros(int(sample_rate * duration))

    return _generate


@pytest.fixture
def generate_bursts() -> Callable[..., np.ndarray]:
    """Generate syllable-like bursts: Hann-windowed tones separated by silence."""

    def _generate(
        count: int = 5,
        burst_ms: float = 100.0,
        gap_ms: float = 150.0,
        lead_ms: float = 0.0,
        amplitude: float = 0.5,
        frequency: float = 200.0,
        sample_rate: int = SAMPLE_RATE,
    ) -> np.ndarray:
        burst_len = int(sample_rate * burst_ms / 1000)
        gap_len = int(sample_rate * gap_ms / 1000)
        t = np.arange(burst_len) / sample_rate
        burst = amplitude * np.hanning(burst_len) * np.sin(2 * np.pi * frequency * t)
        pieces = [np.zeros(int(sample_rate * lead_ms / 1000))]
        for _ in range(count):
            pieces.extend([burst, np.zeros(gap_len)])
        return np.concatenate(pieces)

    return _generate


@pytest.fixture
def two_level_tone(generate_tone) -> Callable[..., np.ndarray]:
    """A tone whose second half is louder than its first."""

    def _generate(
        duration: float = 2.0,
        first_amplitude: float = 0.1,
        second_amplitude: float = 0.4,
        sample_rate: int = SAMPLE_RATE,
    ) -> np.ndarray:
        half = duration / 2
        return np.concatenate(
            [
                generate_tone(half, first_amplitude, sample_rate=sample_rate),
                generate_tone(half, second_amplitude, sample_rate=sample_rate),
            ]
        )

    return _generate


@pytest.fixture
def isolated_structlog():
    """Reset structlog configuration and context between tests."""
    original_config = structlog.get_config()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
    structlog.configure(**original_config)
