"""
Watchlist endpoints.

Each user manages only their own watchlist.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_current_user, get_db
from api.schemas.common import error_responses
from api.schemas.watchlist import WatchlistAdd, WatchlistEntryResponse
from movie_catalog.database import DatabaseManager
from movie_catalog.models import UserData

router = APIRouter(prefix="/watchlist", responses=error_responses(401, 404, 409, 422))
logger = logging.getLogger("api.watchlist")


@router.get("", response_model=List[WatchlistEntryResponse])
def get_watchlist(
    user: UserData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """
    Get the current user's watchlist, newest first.
    """
    return [entry.to_view() for entry in db.get_watchlist(user.id)]


@router.post("/movies", response_model=WatchlistEntryResponse, status_code=status.HTTP_201_CREATED)
def add_to_watchlist(
    body: WatchlistAdd,
    user: UserData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """
    Add a movie to the current user's watchlist.
    """
    entry = db.add_to_watchlist(user.id, body.movie_id)
    logger.info(f"Added movie_id={body.movie_id} to watchlist of user_id={user.id}")
    return entry.to_view()


@router.delete("/movies/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_from_watchlist(
    movie_id: str,
    user: UserData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """
    Remove a movie from the current user's watchlist.
    """
    db.remove_from_watchlist(user.id, movie_id)
    logger.info(f"Removed movie_id={movie_id} from watchlist of user_id={user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
