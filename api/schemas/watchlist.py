"""
Watchlist-related Pydantic schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from api.schemas.movie import MovieView


class WatchlistAdd(BaseModel):
    """Request to add movie to watchlist."""

    movie_id: str = Field(..., min_length=1, description="Movie ID to add")


class WatchlistEntryResponse(BaseModel):
    """A watchlist entry with its movie."""

    id: str
    user_id: str
    movies: List[MovieView] = []
    created_at: Optional[datetime] = None
