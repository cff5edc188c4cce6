"""Domain errors raised by the catalog services."""

from __future__ import annotations


class CatalogError(RuntimeError):
    """Base class for catalog service errors."""


class InvalidReferenceError(CatalogError):
    """Raised when a payload points at a genre, platform or value that is not valid."""


class PayloadValidationError(InvalidReferenceError):
    """Raised when a request payload does not match its schema."""

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class AuthenticationError(CatalogError):
    """Raised when an operation needs an authenticated user and none is present."""


class ForbiddenActionError(CatalogError):
    """Raised when the current user may not perform the requested action."""


class ResourceNotFoundError(CatalogError):
    """Raised when a user, game or image cannot be located."""


__all__ = [
    "AuthenticationError",
    "CatalogError",
    "ForbiddenActionError",
    "InvalidReferenceError",
    "PayloadValidationError",
    "ResourceNotFoundError",
]
