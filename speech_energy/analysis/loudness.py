"""Loudness measurement, device calibration stores and normalization.

Integrated loudness follows the BS.1770 gating scheme (400 ms blocks with
75 % overlap, -70 LUFS absolute gate, -10 LU relative gate) without the
K-weighting pre-filter, which is accurate enough to compare recordings of the
same voice across microphones.
"""

from __future__ import annotations

import json
import math
import os
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Protocol, runtime_checkable

import numpy as np
from pydantic import ValidationError

from speech_energy.analysis.payloads import CalibrationProfile
from speech_energy.analysis.signal import round_to
from speech_energy.analysis.types import NormalizationInfo
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)

BLOCK_SECONDS = 0.4
BLOCK_OVERLAP = 0.75
ABSOLUTE_GATE_LUFS = -70.0
RELATIVE_GATE_LU = -10.0
LOUDNESS_OFFSET = -0.691
DEFAULT_TARGET_LUFS = -23.0
DEFAULT_MAX_GAIN = 10.0


def _block_powers(samples: np.ndarray, sample_rate: int) -> np.ndarray:
    block = max(1, int(sample_rate * BLOCK_SECONDS))
    if samples.size <= block:
        return np.array([np.mean(np.square(samples))]) if samples.size else np.empty(0)
    hop = max(1, int(block * (1 - BLOCK_OVERLAP)))
    windows = np.lib.stride_tricks.sliding_window_view(samples, block)[::hop]
    return np.mean(np.square(windows), axis=1)


def _power_to_lufs(power: float) -> float:
    if power <= 0:
        return -math.inf
    return LOUDNESS_OFFSET + 10 * math.log10(power)


def noise_floor_lufs(profile: CalibrationProfile) -> float:
    """Profile noise floor (RMS dBFS) on the unweighted loudness scale.

    Without K-weighting a steady signal at ``x`` dBFS RMS measures
    ``x - 0.691`` LUFS.
    """
    return profile.noise_floor + LOUDNESS_OFFSET


def integrated_loudness(samples: np.ndarray, sample_rate: int) -> float:
    """Gated integrated loudness in LUFS; -70.0 for silence."""
    powers = _block_powers(samples, sample_rate)
    if powers.size == 0:
        return ABSOLUTE_GATE_LUFS

    with np.errstate(divide="ignore"):
        block_lufs = LOUDNESS_OFFSET + 10 * np.log10(powers)

    gated = powers[block_lufs > ABSOLUTE_GATE_LUFS]
    if gated.size == 0:
        return ABSOLUTE_GATE_LUFS

    relative_gate = _power_to_lufs(float(np.mean(gated))) + RELATIVE_GATE_LU
    kept = powers[(block_lufs > ABSOLUTE_GATE_LUFS) & (block_lufs > relative_gate)]
    if kept.size == 0:
        kept = gated
    return max(ABSOLUTE_GATE_LUFS, _power_to_lufs(float(np.mean(kept))))


@runtime_checkable
class CalibrationStore(Protocol):
    """Read access to per-device calibration profiles."""

    def get(self, device_id: str) -> CalibrationProfile | None: ...


class InMemoryCalibrationStore:
    def __init__(self, profiles: Iterable[CalibrationProfile] = ()) -> None:
        self._profiles: dict[str, CalibrationProfile] = {
            profile.device_id: profile for profile in profiles
        }
        self._lock = threading.Lock()

    def save(self, profile: CalibrationProfile) -> None:
        with self._lock:
            self._profiles[profile.device_id] = profile

    def get(self, device_id: str) -> CalibrationProfile | None:
        with self._lock:
            return self._profiles.get(device_id)


class JsonFileCalibrationStore:
    """Calibration profiles stored as a JSON object keyed by device id.

    The file is re-read when its modification time changes. Invalid profiles
    are dropped with a warning.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._mtime_ns: int | None = None
        self._profiles: Mapping[str, CalibrationProfile] = MappingProxyType({})

    def _refresh(self) -> Mapping[str, CalibrationProfile]:
        with self._lock:
            try:
                mtime_ns = self._path.stat().st_mtime_ns
            except FileNotFoundError:
                self._mtime_ns = None
                self._profiles = MappingProxyType({})
                return self._profiles

            if mtime_ns != self._mtime_ns:
                with self._path.open("r", encoding="utf-8") as handle:
                    document = json.load(handle)
                if not isinstance(document, dict):
                    raise ValueError(
                        f"calibration file must hold an object keyed by device id, got {type(document).__name__}"
                    )
                self._profiles = MappingProxyType(self._parse(document))
                self._mtime_ns = mtime_ns
                logger.info(
                    "calibration_store.reloaded",
                    path=str(self._path),
                    devices=len(self._profiles),
                )
            return self._profiles

    def _parse(self, document: dict[str, object]) -> dict[str, CalibrationProfile]:
        profiles: dict[str, CalibrationProfile] = {}
        for device_id, raw in document.items():
            if not isinstance(raw, dict):
                logger.warning("calibration_store.invalid_profile", device_id=device_id, error="not an object")
                continue
            try:
                profiles[device_id] = CalibrationProfile.model_validate({"device_id": device_id, **raw})
            except ValidationError as exc:
                logger.warning(
                    "calibration_store.invalid_profile",
                    device_id=device_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
        return profiles

    def get(self, device_id: str) -> CalibrationProfile | None:
        return self._refresh().get(device_id)


class LoudnessNormalizer:
    """Rescale a buffer towards a target loudness using a device profile."""

    def __init__(
        self,
        target_lufs: float = DEFAULT_TARGET_LUFS,
        max_gain: float = DEFAULT_MAX_GAIN,
    ) -> None:
        if max_gain < 1.0:
            raise ValueError(f"max_gain must be >= 1.0, got {max_gain}")
        self.target_lufs = target_lufs
        self.max_gain = max_gain

    def normalization_gain(self, calibrated_lufs: float, profile: CalibrationProfile) -> float:
        if calibrated_lufs <= ABSOLUTE_GATE_LUFS or calibrated_lufs <= noise_floor_lufs(profile):
            return 1.0
        gain = 10 ** ((self.target_lufs - calibrated_lufs) / 20)
        return min(self.max_gain, max(1.0 / self.max_gain, gain))

    def apply(
        self, samples: np.ndarray, sample_rate: int, profile: CalibrationProfile
    ) -> tuple[np.ndarray, NormalizationInfo]:
        """Return the normalized (read-only) buffer and its diagnostic record."""
        original_lufs = integrated_loudness(samples, sample_rate)

        calibrated = samples * profile.gain_adjustment
        calibrated_lufs = integrated_loudness(calibrated, sample_rate)

        gain = self.normalization_gain(calibrated_lufs, profile)
        normalized = np.clip(calibrated * gain, -1.0, 1.0)
        normalized.setflags(write=False)
        final_lufs = integrated_loudness(normalized, sample_rate)

        info = NormalizationInfo(
            original_lufs=round_to(original_lufs, 2),
            calibrated_lufs=round_to(calibrated_lufs, 2),
            final_lufs=round_to(final_lufs, 2),
            device_gain=profile.gain_adjustment,
            normalization_gain=round_to(gain, 4),
        )
        logger.debug(
            "loudness.normalized",
            device_id=profile.device_id,
            reference_level=profile.reference_level,
            **info.to_dict(),
        )
        return normalized, info
