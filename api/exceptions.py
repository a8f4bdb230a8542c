"""
Custom exceptions and error handlers for the API.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from movie_catalog.exceptions import (
    AuthenticationError,
    CatalogError,
    ConflictError,
    NotFoundError,
    ProviderError,
)

logger = logging.getLogger("api.errors")


class APIError(HTTPException):
    """Base API error with structured error response."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error = error
        self.message = message
        self.details = details
        super().__init__(status_code=status_code, detail=message)


class TooManyRequestsError(APIError):
    """Rate limit exhausted."""

    def __init__(self, message: str = "Too many requests, please try again later"):
        super().__init__(
            status_code=429,
            error="too_many_requests",
            message=message,
        )


# Domain error -> (status code, error code)
CATALOG_ERROR_STATUS = [
    (NotFoundError, 404, "not_found"),
    (ConflictError, 409, "conflict"),
    (AuthenticationError, 401, "unauthorized"),
    (ProviderError, 502, "provider_error"),
]


def _error_response(status_code: int, error: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
    }
    if details:
        content["details"] = details
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions and return structured JSON response."""
    return _error_response(exc.status_code, exc.error, exc.message, exc.details)


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Map domain errors raised by movie_catalog to HTTP responses."""
    for error_class, status_code, error in CATALOG_ERROR_STATUS:
        if isinstance(exc, error_class):
            details = None
            if isinstance(exc, NotFoundError) and exc.identifier is not None:
                details = {"resource": exc.resource, "id": exc.identifier}
            return _error_response(status_code, error, exc.message, details)

    logger.error(f"Unmapped catalog error on {request.method} {request.url.path}: {exc.message}")
    return _error_response(500, "internal_error", "An unexpected error occurred")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return request validation failures in the API error envelope."""
    return _error_response(
        422,
        "validation_error",
        "Request validation failed",
        {"errors": jsonable_encoder(exc.errors())},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(500, "internal_error", "An unexpected error occurred")
