"""
Movie Catalog - Movie data, ratings and watchlists backed by TMDB.

This package provides tools for:
- Storing movies and genres synced from the TMDB API
- Listing, searching and fetching movies with their genres
- Recording user ratings with consistent per-movie aggregates
- User authentication and per-user watchlists
"""

from .config import Config
from .models import GenreData, MovieData, ProviderMovie, RatingResult, SyncResult, UserData
from .client import TMDBClient
from .database import DatabaseManager
from .provider import MoviesProvider
from .sync import DatabaseSync
from .auth import AuthManager

__version__ = "1.0.0"
__all__ = [
    "Config",
    "GenreData",
    "MovieData",
    "ProviderMovie",
    "RatingResult",
    "SyncResult",
    "UserData",
    "TMDBClient",
    "DatabaseManager",
    "MoviesProvider",
    "DatabaseSync",
    "AuthManager",
]
