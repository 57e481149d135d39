"""Tests for metric configuration resolution."""

import pytest

from speech_energy.analysis.metric_config import (
    DEFAULT_METRIC_CONFIG,
    MetricConfigResolver,
    MetricConfigSnapshot,
    MetricSettingsStore,
    thresholds_usable,
    usable_thresholds,
)
from speech_energy.analysis.settings_store import InMemorySettingsStore
from speech_energy.analysis.types import MetricConfigEntry, MetricId, Thresholds


class _FailingStore:
    def load(self):
        raise OSError("settings unavailable")


class _StaticStore:
    def __init__(self, *entries):
        self.entries = {entry.metric_id: entry for entry in entries}

    def load(self):
        return self.entries


def _volume(weight=40, ideal=-15.0, **kwargs):
    return MetricConfigEntry(MetricId.VOLUME, weight, Thresholds(-35, ideal, 0), **kwargs)


class TestDefaults:
    @pytest.mark.unit
    def test_builtin_table(self):
        assert {metric_id: entry.weight for metric_id, entry in DEFAULT_METRIC_CONFIG.items()} == {
            MetricId.VOLUME: 40,
            MetricId.SPEECH_RATE: 40,
            MetricId.ACCELERATION: 5,
            MetricId.RESPONSE_TIME: 5,
            MetricId.PAUSE_MANAGEMENT: 10,
        }
        assert DEFAULT_METRIC_CONFIG[MetricId.RESPONSE_TIME].thresholds == Thresholds(2000, 200, 0)
        assert DEFAULT_METRIC_CONFIG[MetricId.SPEECH_RATE].method == "energy-peaks"

    @pytest.mark.unit
    def test_default_thresholds_are_usable(self):
        for metric_id, entry in DEFAULT_METRIC_CONFIG.items():
            assert thresholds_usable(metric_id, entry.thresholds)


class TestUsableThresholds:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "metric_id,thresholds",
        [
            (MetricId.VOLUME, Thresholds(-15, -15, 0)),
            (MetricId.VOLUME, Thresholds(-35, -15, -15)),
            (MetricId.SPEECH_RATE, Thresholds(0, 150, 220)),
            (MetricId.SPEECH_RATE, Thresholds(90, 150, 150)),
            (MetricId.RESPONSE_TIME, Thresholds(200, 200, 0)),
            (MetricId.PAUSE_MANAGEMENT, Thresholds(0, 0, 0)),
            (MetricId.PAUSE_MANAGEMENT, Thresholds(0, 0, float("inf"))),
        ],
    )
    def test_degenerate_thresholds_use_defaults(self, metric_id, thresholds):
        assert usable_thresholds(metric_id, thresholds) == DEFAULT_METRIC_CONFIG[metric_id].thresholds

    @pytest.mark.unit
    def test_consistent_thresholds_are_kept(self):
        thresholds = Thresholds(-40, -20, -5)

        assert usable_thresholds(MetricId.VOLUME, thresholds) is thresholds


class TestSnapshot:
    """Immutable per-call configuration."""

    @pytest.mark.unit
    def test_default_weights_normalize(self):
        weights = MetricConfigSnapshot.defaults().normalized_weights()

        assert weights[MetricId.VOLUME] == pytest.approx(0.4)
        assert weights[MetricId.PAUSE_MANAGEMENT] == pytest.approx(0.1)
        assert sum(weights.values()) == pytest.approx(1.0)

    @pytest.mark.unit
    def test_disabled_metric_is_excluded(self):
        snapshot = MetricConfigSnapshot.defaults().with_entry(_volume(enabled=False))

        weights = snapshot.normalized_weights()

        assert weights[MetricId.VOLUME] == 0.0
        assert weights[MetricId.SPEECH_RATE] == pytest.approx(40 / 60)

    @pytest.mark.unit
    def test_all_zero_weights(self):
        snapshot = MetricConfigSnapshot.from_entries(
            MetricConfigEntry(metric_id, 0, entry.thresholds)
            for metric_id, entry in DEFAULT_METRIC_CONFIG.items()
        )

        assert set(snapshot.normalized_weights().values()) == {0.0}

    @pytest.mark.unit
    def test_missing_metrics_filled_from_defaults(self):
        snapshot = MetricConfigSnapshot.from_entries([_volume(weight=10)])

        assert snapshot.get(MetricId.VOLUME).weight == 10
        assert snapshot.get(MetricId.SPEECH_RATE) == DEFAULT_METRIC_CONFIG[MetricId.SPEECH_RATE]

    @pytest.mark.unit
    def test_entries_are_read_only(self):
        snapshot = MetricConfigSnapshot.defaults()

        with pytest.raises(TypeError):
            snapshot.entries[MetricId.VOLUME] = _volume()


class TestResolver:
    """Layered resolution."""

    @pytest.mark.unit
    def test_no_layers_gives_defaults(self):
        resolver = MetricConfigResolver()

        assert resolver.resolve("volume") == DEFAULT_METRIC_CONFIG[MetricId.VOLUME]
        assert resolver.snapshot().entries == DEFAULT_METRIC_CONFIG

    @pytest.mark.unit
    def test_first_layer_wins(self):
        override = InMemorySettingsStore([_volume(weight=70)])
        user = _StaticStore(_volume(weight=20), MetricConfigEntry(MetricId.ACCELERATION, 9, Thresholds(0, 50, 100)))

        snapshot = MetricConfigResolver([override, user]).snapshot()

        assert snapshot.get(MetricId.VOLUME).weight == 70
        assert snapshot.get(MetricId.ACCELERATION).weight == 9
        assert snapshot.get(MetricId.SPEECH_RATE) == DEFAULT_METRIC_CONFIG[MetricId.SPEECH_RATE]

    @pytest.mark.unit
    def test_failing_layer_is_skipped(self):
        resolver = MetricConfigResolver([_FailingStore(), _StaticStore(_volume(weight=15))])

        assert resolver.resolve(MetricId.VOLUME).weight == 15

    @pytest.mark.unit
    def test_invalid_weight_disables_metric(self):
        resolver = MetricConfigResolver([_StaticStore(_volume(weight=float("nan")))])

        entry = resolver.resolve(MetricId.VOLUME)

        assert entry.weight == 0.0
        assert entry.enabled is False

    @pytest.mark.unit
    def test_override_changes_are_seen_by_next_snapshot(self):
        override = InMemorySettingsStore()
        resolver = MetricConfigResolver([override])
        before = resolver.snapshot()

        override.set(_volume(weight=5))

        assert before.get(MetricId.VOLUME).weight == 40
        assert resolver.snapshot().get(MetricId.VOLUME).weight == 5

    @pytest.mark.unit
    def test_unknown_metric_id(self):
        with pytest.raises(ValueError):
            MetricConfigResolver().resolve("eyeContact")

    @pytest.mark.unit
    def test_stores_satisfy_protocol(self):
        assert isinstance(InMemorySettingsStore(), MetricSettingsStore)
        assert isinstance(_StaticStore(), MetricSettingsStore)
