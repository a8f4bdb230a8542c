"""
Movie-related Pydantic schemas.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class MovieView(BaseModel):
    """Public view of a movie. Genres are flattened to their names."""

    id: str
    backdrop_path: Optional[str] = None
    tmdb_id: Optional[int] = None
    overview: Optional[str] = None
    popularity: float = 0.0
    poster_path: Optional[str] = None
    release_date: Optional[date] = None
    title: str
    vote_average: float = 0.0
    vote_count: int = 0
    average_rating: Optional[float] = None
    rating_count: int = 0
    genres: List[str] = []


class MovieListResponse(BaseModel):
    """A page of movies for list and search endpoints."""

    movies: List[MovieView]
    total: int = Field(..., ge=0, description="Total matching movies across all pages")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    current_page: int = Field(..., ge=1, description="Current page number")
