"""Environment-backed configuration for the speech-energy engine."""

from .base import (
    AnalysisConfig,
    BaseConfig,
    ConfigError,
    FieldDefinition,
    LoggingConfig,
    ValidationError,
)
from .loader import get_env_with_default, load_config_from_env


__all__ = [
    "AnalysisConfig",
    "BaseConfig",
    "ConfigError",
    "FieldDefinition",
    "LoggingConfig",
    "ValidationError",
    "get_env_with_default",
    "load_config_from_env",
]
