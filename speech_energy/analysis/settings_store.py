"""Metric settings stores consulted by ``MetricConfigResolver``.

``InMemorySettingsStore`` is the session override layer. ``JsonFileSettingsStore``
backs the per-user and admin-default layers and re-reads its file whenever the
modification time changes, so an edit is visible to the next analysis call.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from speech_energy.analysis.payloads import MetricSettingRow
from speech_energy.analysis.types import MetricConfigEntry, MetricId
from speech_energy.common.structured_logging import get_logger

logger = get_logger(__name__)

_KNOWN_METRIC_IDS = frozenset(metric_id.value for metric_id in MetricId)


def parse_settings_rows(rows: Iterable[Any], *, source: str = "<memory>") -> dict[MetricId, MetricConfigEntry]:
    """Convert persisted rows into config entries.

    Rows for metrics outside the five scored ones are ignored. Rows that fail
    validation are dropped with a warning; the rest are kept.
    """
    entries: dict[MetricId, MetricConfigEntry] = {}
    for index, raw in enumerate(rows):
        try:
            row = MetricSettingRow.model_validate(raw)
        except ValidationError as exc:
            logger.warning(
                "settings_store.invalid_row",
                source=source,
                row_index=index,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            continue

        if row.metric_id not in _KNOWN_METRIC_IDS:
            logger.debug("settings_store.unscored_metric_ignored", source=source, metric_id=row.metric_id)
            continue

        entry = row.to_entry()
        entries[entry.metric_id] = entry
    return entries


def _rows_from_document(document: Any) -> list[Any]:
    # Accepted documents: a list of rows, {"metrics": [...]}, or {metric_id: row}
    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        for key in ("metrics", "metricConfigs", "metric_configs"):
            if isinstance(document.get(key), list):
                return document[key]
        rows = []
        for metric_id, row in document.items():
            if isinstance(row, dict):
                rows.append({"id": metric_id, **row} if "id" not in row and "metric_id" not in row else row)
        return rows
    raise ValueError(f"unsupported settings document type: {type(document).__name__}")


class InMemorySettingsStore:
    """Session override layer."""

    def __init__(self, entries: Iterable[MetricConfigEntry] = ()) -> None:
        self._entries: dict[MetricId, MetricConfigEntry] = {
            entry.metric_id: entry for entry in entries
        }
        self._lock = threading.Lock()

    def set(self, entry: MetricConfigEntry) -> None:
        with self._lock:
            self._entries[entry.metric_id] = entry

    def remove(self, metric_id: MetricId | str) -> None:
        with self._lock:
            self._entries.pop(MetricId(metric_id), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def load(self) -> Mapping[MetricId, MetricConfigEntry]:
        with self._lock:
            return MappingProxyType(dict(self._entries))


class JsonFileSettingsStore:
    """Settings layer persisted as a JSON file.

    A missing file is an empty layer. Read or decode errors propagate so the
    resolver can log and skip the layer.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._mtime_ns: int | None = None
        self._entries: Mapping[MetricId, MetricConfigEntry] = MappingProxyType({})

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Mapping[MetricId, MetricConfigEntry]:
        with self._lock:
            try:
                mtime_ns = self._path.stat().st_mtime_ns
            except FileNotFoundError:
                if self._mtime_ns is not None:
                    logger.info("settings_store.file_removed", path=str(self._path))
                self._mtime_ns = None
                self._entries = MappingProxyType({})
                return self._entries

            if mtime_ns != self._mtime_ns:
                self._entries = MappingProxyType(self._read())
                self._mtime_ns = mtime_ns
                logger.info(
                    "settings_store.reloaded",
                    path=str(self._path),
                    metrics=sorted(metric_id.value for metric_id in self._entries),
                )
            return self._entries

    def _read(self) -> dict[MetricId, MetricConfigEntry]:
        with self._path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
        return parse_settings_rows(_rows_from_document(document), source=str(self._path))
