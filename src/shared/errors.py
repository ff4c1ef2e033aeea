"""Custom exception classes shared across the blueprint packages."""
from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str, code: str = "app_error") -> None:
        self.detail = detail
        self.code = code
        super().__init__(detail)


class NotFoundError(AppError):
    """Resource not found."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(detail=detail, code="not_found")


class PersistenceError(AppError):
    """A blueprint could not be written to or read from storage."""

    def __init__(self, detail: str = "Persistence failure", blueprint_id: str = "") -> None:
        self.blueprint_id = blueprint_id
        super().__init__(detail=detail, code="persistence_error")


class GenerativeBackendError(AppError):
    """The generative-text backend failed or returned an unusable payload."""

    def __init__(self, detail: str = "Generative backend failure") -> None:
        super().__init__(detail=detail, code="generative_backend_error")
