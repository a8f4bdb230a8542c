"""
Rating-related Pydantic schemas.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class RateMovieRequest(BaseModel):
    """Request to rate a movie."""

    rating: float = Field(..., ge=1.0, le=10.0, description="Rating value (1.0-10.0, one decimal place)")

    @field_validator("rating")
    @classmethod
    def one_decimal_place(cls, value: float) -> float:
        if Decimal(str(value)).as_tuple().exponent < -1:
            raise ValueError("rating must have at most one decimal place")
        return value


class RateMovieResponse(BaseModel):
    """Movie aggregates after a rating."""

    average_rating: float
    rating_count: int
    message: str
