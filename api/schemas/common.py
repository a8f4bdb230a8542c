"""
Schemas shared across API endpoints.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Machine-readable error code, e.g. not_found")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Extra context, e.g. the missing resource")


class MessageResponse(BaseModel):
    """Response carrying only a message."""

    message: str


_ERROR_DESCRIPTIONS = {
    400: "Invalid pagination parameters",
    401: "Missing, invalid or expired token",
    404: "Resource not found",
    409: "Conflicts with existing data",
    422: "Request validation failed",
    429: "Rate limit exceeded",
    500: "Unexpected server error",
    502: "Movie provider request failed",
}


def error_responses(*status_codes: int) -> Dict[int, dict]:
    """OpenAPI `responses=` entries documenting ErrorResponse for the given codes."""
    return {
        code: {"model": ErrorResponse, "description": _ERROR_DESCRIPTIONS[code]}
        for code in status_codes
    }
