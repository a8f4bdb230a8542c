"""
Dependency injection for the API.

Provides dependencies for configuration, database access, the movie
provider, authentication and rate limiting.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.exceptions import APIError, TooManyRequestsError
from api.logging_config import logger
from api.rate_limit import FixedWindowRateLimiter, TokenBucketRateLimiter, client_key, endpoint_key
from movie_catalog.auth import AuthManager
from movie_catalog.client import TMDBClient
from movie_catalog.config import Config
from movie_catalog.database import DatabaseManager
from movie_catalog.exceptions import AuthenticationError
from movie_catalog.models import UserData
from movie_catalog.provider import MoviesProvider
from movie_catalog.sync import DatabaseSync

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.from_env()


@lru_cache()
def get_db() -> DatabaseManager:
    """Get cached DatabaseManager instance."""
    config = get_config()
    return DatabaseManager(config)


@lru_cache()
def get_tmdb_client() -> TMDBClient:
    """Get cached TMDBClient instance."""
    config = get_config()
    return TMDBClient(config)


def get_movies_provider(client: TMDBClient = Depends(get_tmdb_client)) -> MoviesProvider:
    return MoviesProvider([client])


def get_database_sync(
    provider: MoviesProvider = Depends(get_movies_provider),
    db: DatabaseManager = Depends(get_db),
    config: Config = Depends(get_config),
) -> DatabaseSync:
    return DatabaseSync(provider, db, config)


def get_auth_manager(
    config: Config = Depends(get_config),
    db: DatabaseManager = Depends(get_db),
) -> AuthManager:
    return AuthManager(config, db)


@lru_cache()
def get_token_bucket() -> TokenBucketRateLimiter:
    """Get the process-wide token bucket map."""
    config = get_config()
    return TokenBucketRateLimiter(
        capacity=config.token_bucket_capacity,
        refill_rate=config.token_bucket_refill_rate,
    )


@lru_cache()
def get_request_window() -> FixedWindowRateLimiter:
    """Get the process-wide per-client request window."""
    config = get_config()
    return FixedWindowRateLimiter(
        max_requests=config.fixed_window_max_requests,
        window_seconds=config.fixed_window_size_ms / 1000,
    )


def rate_limit(
    request: Request,
    bucket: TokenBucketRateLimiter = Depends(get_token_bucket),
    window: FixedWindowRateLimiter = Depends(get_request_window),
) -> None:
    """Reject the request with 429 when its endpoint bucket is empty or its client window is full."""
    key = endpoint_key(request)
    if not bucket.try_acquire(key):
        logger.warning(f"Rate limit exceeded for {key}")
        raise TooManyRequestsError(f"Too many requests for endpoint {key}")

    client = client_key(request)
    if not window.try_acquire(client):
        logger.warning(f"Request window full for client {client}")
        raise TooManyRequestsError("Too many requests from this client, please try again later")


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return credentials.credentials


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthManager = Depends(get_auth_manager),
    db: DatabaseManager = Depends(get_db),
) -> UserData:
    """Resolve the user from a valid access token."""
    payload = auth.decode_access_token(_bearer_token(credentials))
    user = db.get_user_by_id(payload["sub"])
    if user is None:
        raise AuthenticationError("Invalid access token")
    return user


def get_refresh_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthManager = Depends(get_auth_manager),
) -> dict:
    """Validate a refresh token and return its payload, with the raw token under 'token'."""
    token = _bearer_token(credentials)
    payload = auth.decode_refresh_token(token)
    return dict(payload, token=token)


def validate_pagination(page: int, limit: int) -> None:
    """
    Validate pagination parameters.

    Args:
        page: Page number (must be >= 1)
        limit: Items per page (must be >= 1)

    Raises:
        APIError: 400 if parameters are invalid
    """
    if page < 1:
        raise APIError(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="bad_request",
            message="page must be >= 1",
            details={"page": page},
        )
    if limit < 1:
        raise APIError(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="bad_request",
            message="limit must be >= 1",
            details={"limit": limit},
        )
