"""Helpers for building configuration objects from the environment."""

from __future__ import annotations

import os
from typing import Any, TypeVar

from speech_energy.common.structured_logging import get_logger

from .base import BaseConfig

ConfigT = TypeVar("ConfigT", bound=BaseConfig)

logger = get_logger(__name__)


def load_config_from_env(config_class: type[ConfigT], **overrides: Any) -> ConfigT:
    """Instantiate ``config_class``, logging and re-raising any config error."""
    try:
        return config_class(**overrides)
    except Exception as exc:
        logger.error(
            "config.load_failed",
            config_class=config_class.__name__,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise


def get_env_with_default(key: str, default: Any, env_type: type = str) -> Any:
    """Read ``key`` converted to ``env_type``.

    Unset variables and values that fail conversion both yield ``default``;
    the latter is logged.
    """
    value = os.getenv(key)
    if value is None:
        return default
    if env_type is bool:
        return value.strip().lower() in ("true", "1", "yes", "on")
    try:
        return env_type(value)
    except (TypeError, ValueError) as exc:
        logger.warning(
            "config.env_conversion_failed",
            key=key,
            value=value,
            target_type=env_type.__name__,
            error=str(exc),
        )
        return default
