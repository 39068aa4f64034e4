"""Exception types."""

from __future__ import annotations


class MimicError(Exception):
    """Base exception for mimic errors."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(MimicError):
    """A bot instance was built without a mandatory setting."""


class GenerationError(MimicError):
    """The text generator could not produce output for a corpus."""
