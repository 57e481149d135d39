"""Metric configuration: built-in defaults, layered resolution and weights.

A ``MetricConfigResolver`` walks its layers in priority order (session
override, per-user settings, instructor/admin defaults) and takes the first
entry it finds for a metric; metrics no layer knows about get the built-in
default. ``snapshot()`` resolves all five metrics once so an analysis call
sees a single, immutable view of the configuration.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from speech_energy.analysis.types import (
    MetricConfigEntry,
    MetricId,
    SpeechRateMethod,
    Thresholds,
)
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)


DEFAULT_METRIC_CONFIG: Mapping[MetricId, MetricConfigEntry] = MappingProxyType(
    {
        MetricId.VOLUME: MetricConfigEntry(
            MetricId.VOLUME, 40, Thresholds(min=-35, ideal=-15, max=0)
        ),
        MetricId.SPEECH_RATE: MetricConfigEntry(
            MetricId.SPEECH_RATE,
            40,
            Thresholds(min=90, ideal=150, max=220),
            method=SpeechRateMethod.ENERGY_PEAKS.value,
        ),
        MetricId.ACCELERATION: MetricConfigEntry(
            MetricId.ACCELERATION, 5, Thresholds(min=0, ideal=50, max=100)
        ),
        # min carries the maximum acceptable latency
        MetricId.RESPONSE_TIME: MetricConfigEntry(
            MetricId.RESPONSE_TIME, 5, Thresholds(min=2000, ideal=200, max=0)
        ),
        MetricId.PAUSE_MANAGEMENT: MetricConfigEntry(
            MetricId.PAUSE_MANAGEMENT, 10, Thresholds(min=0, ideal=0, max=2.71)
        ),
    }
)


def default_entry(metric_id: MetricId) -> MetricConfigEntry:
    return DEFAULT_METRIC_CONFIG[metric_id]


def thresholds_usable(metric_id: MetricId, thresholds: Thresholds) -> bool:
    """Whether the scoring formula for ``metric_id`` can run on ``thresholds``.

    Only the breakpoints a formula divides by are checked; each metric reads
    its thresholds differently.
    """
    values = (thresholds.min, thresholds.ideal, thresholds.max)
    if not all(math.isfinite(value) for value in values):
        return False

    if metric_id is MetricId.VOLUME:
        return thresholds.min < thresholds.ideal < thresholds.max
    if metric_id is MetricId.SPEECH_RATE:
        return 0 < thresholds.min < thresholds.ideal < thresholds.max
    if metric_id is MetricId.RESPONSE_TIME:
        return 0 <= thresholds.ideal < thresholds.min
    if metric_id is MetricId.PAUSE_MANAGEMENT:
        return thresholds.max > 0
    return True


def usable_thresholds(metric_id: MetricId, thresholds: Thresholds) -> Thresholds:
    """Return ``thresholds`` or, when they are degenerate, the built-in defaults."""
    if thresholds_usable(metric_id, thresholds):
        return thresholds

    fallback = default_entry(metric_id).thresholds
    logger.warning(
        "metric_config.degenerate_thresholds",
        metric_id=metric_id.value,
        thresholds=thresholds.to_dict(),
        fallback=fallback.to_dict(),
    )
    return fallback


@runtime_checkable
class MetricSettingsStore(Protocol):
    """A read source of metric settings.

    Returns whatever entries the layer holds; metrics it has no opinion on
    are simply absent.
    """

    def load(self) -> Mapping[MetricId, MetricConfigEntry]: ...


@dataclass(frozen=True)
class MetricConfigSnapshot:
    """Immutable configuration for one analysis call."""

    entries: Mapping[MetricId, MetricConfigEntry]

    def __post_init__(self) -> None:
        missing = [metric_id for metric_id in MetricId if metric_id not in self.entries]
        merged = dict(self.entries)
        for metric_id in missing:
            merged[metric_id] = default_entry(metric_id)
        object.__setattr__(self, "entries", MappingProxyType(merged))

    @classmethod
    def defaults(cls) -> MetricConfigSnapshot:
        return cls(dict(DEFAULT_METRIC_CONFIG))

    @classmethod
    def from_entries(cls, entries: Iterable[MetricConfigEntry]) -> MetricConfigSnapshot:
        return cls({entry.metric_id: entry for entry in entries})

    def get(self, metric_id: MetricId) -> MetricConfigEntry:
        return self.entries[metric_id]

    def thresholds(self, metric_id: MetricId) -> Thresholds:
        return self.entries[metric_id].thresholds

    def normalized_weights(self) -> dict[MetricId, float]:
        """Relative weights of the contributing metrics, summing to 1.

        Disabled metrics and metrics with a zero weight get 0. When nothing
        contributes every weight is 0, which yields an overall score of 0.
        """
        total = sum(entry.weight for entry in self.entries.values() if entry.contributes)
        if total <= 0 or not math.isfinite(total):
            return {metric_id: 0.0 for metric_id in MetricId}
        return {
            metric_id: (entry.weight / total if entry.contributes else 0.0)
            for metric_id, entry in self.entries.items()
        }

    def with_entry(self, entry: MetricConfigEntry) -> MetricConfigSnapshot:
        merged = dict(self.entries)
        merged[entry.metric_id] = entry
        return MetricConfigSnapshot(merged)


class MetricConfigResolver:
    """Resolve metric configuration from layered settings stores."""

    def __init__(self, layers: Sequence[MetricSettingsStore] = ()) -> None:
        """Initialize the resolver.

        Args:
            layers: Settings stores in priority order, highest first. The
                built-in defaults are always the implicit last layer.
        """
        self._layers = tuple(layers)
        self._logger = get_logger(__name__)

    @property
    def layers(self) -> tuple[MetricSettingsStore, ...]:
        return self._layers

    def _load_layers(self) -> list[Mapping[MetricId, MetricConfigEntry]]:
        loaded: list[Mapping[MetricId, MetricConfigEntry]] = []
        for index, layer in enumerate(self._layers):
            try:
                loaded.append(layer.load())
            except Exception as exc:
                self._logger.warning(
                    "metric_config.layer_failed",
                    layer=type(layer).__name__,
                    layer_index=index,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
        return loaded

    @staticmethod
    def _pick(
        metric_id: MetricId, loaded: Sequence[Mapping[MetricId, MetricConfigEntry]]
    ) -> MetricConfigEntry:
        for entries in loaded:
            entry = entries.get(metric_id)
            if entry is not None:
                return _sanitize_weight(entry)
        return default_entry(metric_id)

    def resolve(self, metric_id: MetricId | str) -> MetricConfigEntry:
        """Resolve a single metric; never fails, falling back to built-in defaults."""
        metric_id = MetricId(metric_id)
        return self._pick(metric_id, self._load_layers())

    def snapshot(self) -> MetricConfigSnapshot:
        """Resolve all five metrics against one read of every layer."""
        loaded = self._load_layers()
        entries = {metric_id: self._pick(metric_id, loaded) for metric_id in MetricId}
        self._logger.debug(
            "metric_config.resolved",
            weights={metric_id.value: entry.weight for metric_id, entry in entries.items()},
            enabled=[metric_id.value for metric_id, entry in entries.items() if entry.enabled],
        )
        return MetricConfigSnapshot(entries)


def _sanitize_weight(entry: MetricConfigEntry) -> MetricConfigEntry:
    if math.isfinite(entry.weight) and entry.weight >= 0:
        return entry
    logger.warning(
        "metric_config.invalid_weight",
        metric_id=entry.metric_id.value,
        weight=entry.weight,
    )
    return replace(entry, weight=0.0, enabled=False)
