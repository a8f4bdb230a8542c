"""
Provider sync endpoints.

GET endpoints pass provider data through without storing it; POST
endpoints copy new genres and movies into the database.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_database_sync, get_movies_provider
from api.schemas.common import error_responses
from api.schemas.sync import ProviderGenre, ProviderMoviesResponse, SyncResponse
from movie_catalog.provider import MoviesProvider
from movie_catalog.sync import DatabaseSync

router = APIRouter(prefix="/sync", responses=error_responses(502))
logger = logging.getLogger("api.sync")


@router.get("/genres", response_model=List[ProviderGenre])
def get_provider_genres(
    provider: Optional[str] = Query(None, description="Provider name (default: tmdb)"),
    movies_provider: MoviesProvider = Depends(get_movies_provider),
):
    """
    Fetch the provider's genre list.
    """
    return [genre.to_dict() for genre in movies_provider.get_genres(provider)]


@router.get("/movies", response_model=ProviderMoviesResponse)
def get_provider_movies(
    page: int = Query(1, ge=1, description="Provider page number"),
    provider: Optional[str] = Query(None, description="Provider name (default: tmdb)"),
    movies_provider: MoviesProvider = Depends(get_movies_provider),
):
    """
    Fetch one page of the provider's popular movies.
    """
    return movies_provider.get_movies(page, provider).to_dict()


@router.post("/genres", response_model=SyncResponse)
def sync_genres(sync: DatabaseSync = Depends(get_database_sync)):
    """Store provider genres that are not in the database yet."""
    result = sync.sync_genres()
    logger.info(f"Genre sync: {result.message}")
    return result.to_dict()


@router.post("/movies", response_model=SyncResponse)
def sync_movies(sync: DatabaseSync = Depends(get_database_sync)):
    """Store popular provider movies that are not in the database yet."""
    result = sync.sync_movies()
    logger.info(f"Movie sync: {result.message}")
    return result.to_dict()


@router.post("/all", response_model=SyncResponse)
def sync_all(sync: DatabaseSync = Depends(get_database_sync)):
    """Sync genres, then movies."""
    result = sync.sync_all()
    logger.info(f"Full sync: {result.message}")
    return result.to_dict()
