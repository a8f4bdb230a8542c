"""
Request-scoped logging for the API.

Every record written through the `api` logger tree (api.movies,
api.users, ...) carries the ID of the request being served, taken from
a ContextVar the request middleware sets.
"""

import logging
import os
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Optional

from movie_catalog.utils import setup_logger

API_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s"

# Incoming request IDs longer than this are replaced
MAX_REQUEST_ID_LENGTH = 64

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Stamp records with the current request ID ('-' outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a caller-supplied X-Request-ID when it is short and printable, else make a new one."""
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex[:8]


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def setup_api_logger(log_dir: Optional[Path] = None) -> logging.Logger:
    """The `api` logger: daily file under $PROJECT_DIR/logs plus INFO to stdout."""
    if log_dir is None:
        log_dir = Path(os.getenv("PROJECT_DIR") or Path.cwd()) / "logs"
    return setup_logger(
        "api",
        log_dir,
        console_level=logging.INFO,
        fmt=API_LOG_FORMAT,
        log_filter=RequestIdFilter(),
    )


logger = setup_api_logger()
