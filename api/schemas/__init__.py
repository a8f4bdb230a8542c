"""Pydantic schemas for API request and response validation."""

from api.schemas.common import ErrorResponse, MessageResponse, error_responses
from api.schemas.movie import MovieListResponse, MovieView
from api.schemas.rating import RateMovieRequest, RateMovieResponse
from api.schemas.user import LoginResponse, TokenResponse, UserLogin, UserResponse, UserSignup
from api.schemas.watchlist import WatchlistAdd, WatchlistEntryResponse
from api.schemas.sync import (
    ProviderGenre,
    ProviderMovieItem,
    ProviderMoviesResponse,
    SyncData,
    SyncResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "MessageResponse",
    "error_responses",
    # Movies
    "MovieListResponse",
    "MovieView",
    # Ratings
    "RateMovieRequest",
    "RateMovieResponse",
    # Users
    "LoginResponse",
    "TokenResponse",
    "UserLogin",
    "UserResponse",
    "UserSignup",
    # Watchlist
    "WatchlistAdd",
    "WatchlistEntryResponse",
    # Sync
    "ProviderGenre",
    "ProviderMovieItem",
    "ProviderMoviesResponse",
    "SyncData",
    "SyncResponse",
]
