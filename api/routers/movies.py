"""
Movie endpoints: listing, search, details and rating.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_current_user, get_db, validate_pagination
from api.schemas.common import error_responses
from api.schemas.movie import MovieListResponse, MovieView
from api.schemas.rating import RateMovieRequest, RateMovieResponse
from movie_catalog.database import DatabaseManager
from movie_catalog.models import MovieQueryResult, UserData

router = APIRouter(responses=error_responses(400, 401, 404, 422))
logger = logging.getLogger("api.movies")


def parse_genres(genres: Optional[List[str]]) -> List[str]:
    """
    Flatten ?genres=Action,Drama and ?genres=Action&genres=Drama into
    one list of trimmed, non-empty names.
    """
    names = []
    for value in genres or []:
        for name in value.split(","):
            name = name.strip()
            if name and name not in names:
                names.append(name)
    return names


def _page_response(result: MovieQueryResult, page: int) -> dict:
    return {
        "movies": [movie.to_view() for movie in result.movies],
        "total": result.total,
        "total_pages": result.total_pages,
        "current_page": page,
    }


@router.get("/movies", response_model=MovieListResponse)
def list_movies(
    page: int = Query(1, description="Page number"),
    limit: int = Query(10, description="Items per page"),
    genres: Optional[List[str]] = Query(None, description="Genre names; a movie matches if it has any of them"),
    db: DatabaseManager = Depends(get_db),
    user: UserData = Depends(get_current_user),
):
    """
    Browse movies by popularity, optionally filtered by genre.
    """
    validate_pagination(page, limit)

    result = db.list_movies(page=page, limit=limit, genres=parse_genres(genres))
    return _page_response(result, page)


@router.get("/movies/search", response_model=MovieListResponse)
def search_movies(
    query: str = Query(..., min_length=1, description="Text to find in title or overview"),
    page: int = Query(1, description="Page number"),
    limit: int = Query(10, description="Items per page"),
    db: DatabaseManager = Depends(get_db),
    user: UserData = Depends(get_current_user),
):
    """
    Case-insensitive search over movie titles and overviews.
    """
    validate_pagination(page, limit)

    result = db.search_movies(query, page=page, limit=limit)
    return _page_response(result, page)


@router.get("/movies/{movie_id}", response_model=MovieView)
def get_movie(
    movie_id: str,
    db: DatabaseManager = Depends(get_db),
    user: UserData = Depends(get_current_user),
):
    """
    Get a single movie with its genres.
    """
    return db.get_movie(movie_id).to_view()


@router.post("/movies/{movie_id}/rate", response_model=RateMovieResponse)
def rate_movie(
    movie_id: str,
    body: RateMovieRequest,
    db: DatabaseManager = Depends(get_db),
    user: UserData = Depends(get_current_user),
):
    """
    Rate a movie (1.0-10.0). Rating again replaces the user's previous value.
    """
    result = db.rate_movie(movie_id, user.id, body.rating)
    logger.info(
        f"Rated movie_id={movie_id} user_id={user.id}: "
        f"average={result.average_rating} count={result.rating_count}"
    )
    return result.to_dict()
