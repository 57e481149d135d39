"""Structured logging for the speech-energy engine.

Everything goes through one stdlib handler whose ``ProcessorFormatter`` renders
both structlog events and plain ``logging`` records, as JSON lines or as
console output. Logs are written to stderr by default so that the CLI can keep
stdout for the analysis result.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import structlog
from structlog.typing import EventDict, Processor

_FLAG_ON = ("true", "1", "yes")
_FLAG_OFF = ("false", "0", "no")


def _resolve_level(level: str | None) -> int:
    """Map a level name to its number; unknown names mean INFO."""
    value = logging.getLevelName((level or "").upper())
    return value if isinstance(value, int) else logging.INFO


def _wants_full_tracebacks(explicit: bool | None, level: int) -> bool:
    if explicit is not None:
        return explicit
    flag = os.getenv("LOG_FULL_TRACEBACKS", "").strip().lower()
    if flag in _FLAG_ON:
        return True
    if flag in _FLAG_OFF:
        return False
    return level <= logging.DEBUG


def _service_stamper(service_name: str | None) -> Processor:
    def stamp(_: Any, __: str, event_dict: EventDict) -> EventDict:
        if service_name:
            event_dict.setdefault("service", service_name)
        return event_dict

    return stamp


def configure_logging(
    level: str = "INFO",
    *,
    json_logs: bool = True,
    service_name: str | None = None,
    stream: IO[str] | None = None,
    full_tracebacks: bool | None = None,
) -> None:
    """Route structlog and stdlib logging to a single stream.

    Args:
        level: Level name; unknown names fall back to INFO.
        json_logs: JSON lines when true, coloured console output otherwise.
        service_name: Stamped on every event as ``service`` unless the event
            already carries one.
        stream: Destination, ``sys.stderr`` by default. Tests pass a StringIO.
        full_tracebacks: Structured ``dict_tracebacks`` instead of a formatted
            string. ``None`` defers to ``LOG_FULL_TRACEBACKS`` and then to the
            level (full at DEBUG).
    """
    numeric_level = _resolve_level(level)
    exception_renderer = (
        structlog.processors.dict_tracebacks
        if _wants_full_tracebacks(full_tracebacks, numeric_level)
        else structlog.processors.format_exc_info
    )

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        _service_stamper(service_name),
        exception_renderer,
    ]
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)
    logging.captureWarnings(True)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **bound: Any) -> structlog.stdlib.BoundLogger:
    """Return a named logger, optionally with extra fields already bound."""
    logger = structlog.stdlib.get_logger(name)
    return logger.bind(**bound) if bound else logger


@contextmanager
def correlation_context(correlation_id: str | None) -> Iterator[structlog.stdlib.BoundLogger]:
    """Attach ``correlation_id`` to every event logged inside the block.

    An outer correlation id is restored on exit. ``None`` binds nothing.
    """
    if not correlation_id:
        yield structlog.stdlib.get_logger()
        return
    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
        yield structlog.stdlib.get_logger()


__all__ = [
    "configure_logging",
    "correlation_context",
    "get_logger",
]
