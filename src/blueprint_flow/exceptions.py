"""Custom exceptions for the blueprint authoring flow."""

from __future__ import annotations


class FlowError(Exception):
    """Base exception for all flow errors."""

    pass


class AdvanceBlockedError(FlowError):
    """Raised when ``advance()`` is called while the current step is incomplete."""

    def __init__(self, step: str, message: str = "") -> None:
        self.step = step
        super().__init__(message or f"Cannot advance: step '{step}' is incomplete")


class InvalidUpdateError(FlowError):
    """Raised when a direct blueprint edit does not validate."""

    def __init__(self, path: str, message: str = "") -> None:
        self.path = path
        super().__init__(message or f"Invalid value for '{path}'")


class ConfigurationError(FlowError):
    """Raised for configuration issues (unreadable file, bad values)."""

    pass
