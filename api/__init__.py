"""
Movie Catalog REST API.

This module provides a FastAPI-based REST API for the movie catalog:
movie browsing and search, ratings, user accounts, watchlists and
provider sync.
"""

from api.main import app

__all__ = ["app"]
