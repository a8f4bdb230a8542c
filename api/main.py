"""
Movie catalog HTTP API.

Movies, ratings, users and watchlists under /api/v1, plus the provider
sync endpoints. Tables are created by `python -m movie_catalog setup`.
"""

import logging
import os
import time

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import rate_limit
from api.exceptions import (
    APIError,
    api_error_handler,
    catalog_error_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from api.logging_config import logger, resolve_request_id, set_request_id
from api.routers import movies, sync, users, watchlist
from api.schemas.common import error_responses
from movie_catalog.exceptions import CatalogError

API_PREFIX = "/api/v1"

# Served without per-request log lines
QUIET_PATHS = frozenset({"/", "/health", "/api/docs", "/api/redoc", "/api/openapi.json"})

app = FastAPI(
    title="Movie Catalog API",
    description="Browse, search, rate and save movies synced from TMDB",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    dependencies=[Depends(rate_limit)],
    responses=error_responses(429, 500),
)

for exc_class, handler in (
    (APIError, api_error_handler),
    (CatalogError, catalog_error_handler),
    (RequestValidationError, validation_exception_handler),
    (Exception, generic_exception_handler),
):
    app.add_exception_handler(exc_class, handler)

# Middleware is fixed at import time, so origins come straight from the environment
allowed_origins = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Bind a request ID to the request, log its outcome and echo the ID back."""
    request_id = resolve_request_id(request.headers.get("X-Request-ID"))
    set_request_id(request_id)
    route = f"{request.method} {request.url.path}"
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{route} failed after {(time.perf_counter() - started) * 1000:.1f}ms: {e}")
        raise

    if request.url.path not in QUIET_PATHS:
        client = request.client.host if request.client else "unknown"
        logger.log(
            _status_level(response.status_code),
            f"{route} -> {response.status_code} in {(time.perf_counter() - started) * 1000:.1f}ms "
            f"client={client}",
        )

    response.headers["X-Request-ID"] = request_id
    return response


for module, tag in ((movies, "Movies"), (users, "Users"), (watchlist, "Watchlist"), (sync, "Sync")):
    app.include_router(module.router, prefix=API_PREFIX, tags=[tag])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "Movie Catalog API", "docs": "/api/docs"}


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}
