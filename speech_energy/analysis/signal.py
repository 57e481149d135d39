"""Shared numeric primitives for the analyzers.

Rounding helpers round half away from zero for positive values (half up), so
scores match the figures the presentation layer has always shown; Python's
built-in ``round`` rounds half to even.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from speech_energy.analysis.errors import InvalidAudioError

EPSILON = 1e-10


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int) -> float:
    scale = 10.0**digits
    return math.floor(value * scale + 0.5) / scale


def clamp_score(value: float) -> int:
    """Round a raw score and clamp it into [0, 100]; non-finite values score 0."""
    if not math.isfinite(value):
        return 0
    return min(100, max(0, round_half_up(value)))


def as_samples(samples: np.ndarray | Sequence[float], sample_rate: int) -> np.ndarray:
    """Validate a PCM buffer and return it as a read-only float64 array.

    Raises:
        InvalidAudioError: empty or multi-dimensional buffer, non-finite
            samples, or a sample rate that is not a positive integer.
    """
    if isinstance(sample_rate, bool) or not isinstance(sample_rate, (int, np.integer)):
        raise InvalidAudioError(
            f"sample_rate must be an integer, got {type(sample_rate).__name__}",
            value=sample_rate,
        )
    if sample_rate <= 0:
        raise InvalidAudioError(
            f"sample_rate must be positive, got {sample_rate}", value=sample_rate
        )

    try:
        array = np.asarray(samples, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidAudioError(f"samples are not numeric: {exc}") from exc

    if array.ndim != 1:
        raise InvalidAudioError(
            f"samples must be a mono 1-D buffer, got shape {array.shape}",
            value=array.shape,
        )
    if array.size == 0:
        raise InvalidAudioError("samples buffer is empty", value=0)
    if not np.all(np.isfinite(array)):
        raise InvalidAudioError("samples contain NaN or infinite values")

    if array is samples:
        array = array.copy()
    array.setflags(write=False)
    return array


def rms(samples: np.ndarray) -> float:
    """Root-mean-square amplitude; 0.0 for an empty buffer."""
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples))))


def amplitude_to_db(amplitude: float) -> float:
    return 20.0 * math.log10(max(amplitude, EPSILON))


def frame_starts(length: int, frame_size: int, hop: int) -> np.ndarray:
    """Start offsets of every full frame that ends strictly before the buffer end."""
    if frame_size <= 0 or hop <= 0 or length <= frame_size:
        return np.empty(0, dtype=np.int64)
    return np.arange(0, length - frame_size, hop, dtype=np.int64)


def frame_energies(
    samples: np.ndarray,
    sample_rate: int,
    frame_ms: float = 20.0,
) -> tuple[np.ndarray, np.ndarray]:
    """Mean squared energy of half-overlapping frames.

    Returns:
        ``(energies, start_offsets)``; both empty when the buffer is shorter
        than one frame.
    """
    frame_size = max(1, int(sample_rate * frame_ms / 1000.0))
    hop = max(1, frame_size // 2)
    starts = frame_starts(samples.size, frame_size, hop)
    if starts.size == 0:
        return np.empty(0, dtype=np.float64), starts

    windows = np.lib.stride_tricks.sliding_window_view(samples, frame_size)[starts]
    return np.mean(np.square(windows), axis=1), starts


def frame_mean_abs(
    samples: np.ndarray,
    sample_rate: int,
    frame_ms: float = 50.0,
) -> np.ndarray:
    """Mean absolute amplitude of non-overlapping frames."""
    frame_size = max(1, int(sample_rate * frame_ms / 1000.0))
    starts = frame_starts(samples.size, frame_size, frame_size)
    if starts.size == 0:
        return np.empty(0, dtype=np.float64)

    windows = np.lib.stride_tricks.sliding_window_view(samples, frame_size)[starts]
    return np.mean(np.abs(windows), axis=1)
