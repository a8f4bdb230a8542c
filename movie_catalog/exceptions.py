"""
Domain exceptions for the movie catalog.

These carry no HTTP knowledge; the API layer maps them to responses.
"""

from typing import Any, Optional


class CatalogError(Exception):
    """Base class for all catalog errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(CatalogError):
    """A referenced entity does not exist."""

    def __init__(self, resource: str, identifier: Any = None, message: Optional[str] = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(message or f"{resource} not found")


class MovieNotFoundError(NotFoundError):
    """The movie does not exist."""

    def __init__(self, movie_id: Any):
        super().__init__("Movie", movie_id)


class ConflictError(CatalogError):
    """The write would violate a uniqueness rule."""


class AuthenticationError(CatalogError):
    """Credentials or tokens were rejected."""


class ProviderError(CatalogError):
    """The external movie provider could not be reached or answered badly."""
