"""
Provider sync Pydantic schemas.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel


class SyncData(BaseModel):
    """Counters reported by a sync run."""

    new_genres: Optional[int] = None
    new_movies: Optional[int] = None
    total_processed: Optional[int] = None


class SyncResponse(BaseModel):
    """Result of a sync run."""

    success: bool
    message: str
    data: Optional[SyncData] = None


class ProviderGenre(BaseModel):
    id: int
    name: str


class ProviderMovieItem(BaseModel):
    """A movie as returned by the provider, before it is stored."""

    tmdb_id: Optional[int] = None
    title: Optional[str] = None
    original_title: Optional[str] = None
    original_language: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[date] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    popularity: Optional[float] = None
    adult: Optional[bool] = None
    video: Optional[bool] = None
    genre_ids: List[int] = []


class ProviderMoviesResponse(BaseModel):
    """One page of provider movies."""

    movies: List[ProviderMovieItem]
    current_page: int
    total_pages: int
