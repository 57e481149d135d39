"""Exceptions raised by the analysis pipeline."""

from __future__ import annotations

from typing import Any


class InvalidAudioError(ValueError):
    """Raised when the sample buffer or sample rate cannot be analyzed."""

    def __init__(self, message: str, *, value: Any = None) -> None:
        self.value = value
        super().__init__(message)
