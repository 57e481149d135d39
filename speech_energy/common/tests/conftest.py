"""Test fixtures for common utilities."""

from collections.abc import Generator
from io import StringIO

import pytest
import structlog


@pytest.fixture
def isolated_structlog() -> Generator[None, None, None]:
    """Reset structlog configuration and context between tests."""
    original_config = structlog.get_config()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
    structlog.configure(**original_config)


@pytest.fixture
def log_stream() -> StringIO:
    return StringIO()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every environment variable the configuration classes read."""
    for name in (
        "LOG_LEVEL",
        "LOG_JSON",
        "SERVICE_NAME",
        "LOG_FULL_TRACEBACKS",
        "SPEECH_ENERGY_TARGET_LUFS",
        "SPEECH_ENERGY_MAX_NORMALIZATION_GAIN",
        "SPEECH_ENERGY_USER_SETTINGS_PATH",
        "SPEECH_ENERGY_DEFAULT_SETTINGS_PATH",
        "SPEECH_ENERGY_CALIBRATION_PATH",
        "SPEECH_ENERGY_SAMPLE_RATE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
