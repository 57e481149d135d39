"""Core configuration primitives for the speech-energy engine.

Configuration is declared as typed field definitions bound to environment
variables, validated once at construction time.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

_TRUE_VALUES = ("true", "1", "yes", "on")


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ValidationError(ConfigError):
    """A configured value is of the wrong type or outside its allowed set."""

    def __init__(self, field_name: str, value: Any, message: str) -> None:
        self.field = field_name
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for field '{field_name}': {message}")


@dataclass(frozen=True)
class FieldDefinition:
    """One configuration field: its type, default, env var and bounds."""

    name: str
    field_type: type[Any]
    default: Any
    env_var: str
    description: str = ""
    choices: tuple[str, ...] | None = None
    min_value: float | None = None
    max_value: float | None = None

    def __post_init__(self) -> None:
        if self.choices and self.default not in self.choices:
            raise ValueError(f"Field '{self.name}' default value not in choices")

    def parse(self, raw: str) -> Any:
        """Convert an environment string to this field's type."""
        if self.field_type is bool:
            return raw.strip().lower() in _TRUE_VALUES
        try:
            return self.field_type(raw)
        except ValueError as exc:
            raise ValidationError(
                self.name, raw, f"Cannot convert {self.env_var} to {self.field_type.__name__}"
            ) from exc

    def check(self, value: Any) -> Any:
        """Return ``value`` coerced to its canonical form, or raise ``ValidationError``."""
        if self.field_type is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, self.field_type):
            raise ValidationError(self.name, value, f"Expected {self.field_type.__name__}")

        if self.choices:
            # choices match case-insensitively and resolve to the declared spelling
            matched = next((c for c in self.choices if c.upper() == str(value).upper()), None)
            if matched is None:
                raise ValidationError(self.name, value, f"Must be one of {list(self.choices)}")
            value = matched

        if self.min_value is not None and value < self.min_value:
            raise ValidationError(self.name, value, f"Must be >= {self.min_value}")
        if self.max_value is not None and value > self.max_value:
            raise ValidationError(self.name, value, f"Must be <= {self.max_value}")
        return value


class BaseConfig(ABC):
    """Base configuration class with validation and environment loading.

    Environment variables override constructor values so deployments can
    retune the engine without code changes.
    """

    def __init__(self, **kwargs: Any) -> None:
        self._values: dict[str, Any] = {}
        for field_def in self.get_field_definitions():
            value = kwargs.get(field_def.name, field_def.default)
            raw = os.getenv(field_def.env_var)
            if raw is not None:
                value = field_def.parse(raw)
            self._values[field_def.name] = field_def.check(value)

    @classmethod
    @abstractmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        """Get field definitions for this configuration class."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._values:
            return self._values[name]
        raise AttributeError(f"Configuration field '{name}' not found")

    def to_dict(self) -> dict[str, Any]:
        return self._values.copy()

class LoggingConfig(BaseConfig):
    """Logging configuration."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="level",
                field_type=str,
                default="INFO",
                description="Log level",
                env_var="LOG_LEVEL",
                choices=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
            ),
            FieldDefinition(
                name="json_logs",
                field_type=bool,
                default=True,
                description="Use JSON logging format",
                env_var="LOG_JSON",
            ),
            FieldDefinition(
                name="service_name",
                field_type=str,
                default="speech-energy",
                description="Service name for logging",
                env_var="SERVICE_NAME",
            ),
        ]


class AnalysisConfig(BaseConfig):
    """Analysis engine configuration: loudness target and collaborator data sources."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="target_lufs",
                field_type=float,
                default=-23.0,
                description="Integrated loudness the normalizer steers calibrated audio towards",
                env_var="SPEECH_ENERGY_TARGET_LUFS",
                min_value=-40.0,
                max_value=-10.0,
            ),
            FieldDefinition(
                name="max_normalization_gain",
                field_type=float,
                default=10.0,
                description="Upper bound for the linear loudness normalization gain (its inverse is the lower bound)",
                env_var="SPEECH_ENERGY_MAX_NORMALIZATION_GAIN",
                min_value=1.0,
                max_value=100.0,
            ),
            FieldDefinition(
                name="user_settings_path",
                field_type=str,
                default="",
                description="JSON file with per-user metric settings (empty disables the layer)",
                env_var="SPEECH_ENERGY_USER_SETTINGS_PATH",
            ),
            FieldDefinition(
                name="default_settings_path",
                field_type=str,
                default="",
                description="JSON file with instructor/admin default metric settings (empty disables the layer)",
                env_var="SPEECH_ENERGY_DEFAULT_SETTINGS_PATH",
            ),
            FieldDefinition(
                name="calibration_path",
                field_type=str,
                default="",
                description="JSON file with device calibration profiles keyed by device id",
                env_var="SPEECH_ENERGY_CALIBRATION_PATH",
            ),
        ]
