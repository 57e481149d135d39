"""Test fixtures for the command-line entry point."""

from collections.abc import Generator

import pytest
import structlog


@pytest.fixture
def isolated_structlog() -> Generator[None, None, None]:
    original_config = structlog.get_config()
    yield
    structlog.contextvars.clear_contextvars()
    structlog.configure(**original_config)
