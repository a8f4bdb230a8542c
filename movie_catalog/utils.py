"""
Shared helpers for the movie catalog: log setup, outbound request
throttling, sync progress display and timing.
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, Iterator, Optional, TypeVar

from tqdm import tqdm

T = TypeVar("T")

CATALOG_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    console_level: Optional[int] = logging.WARNING,
    fmt: str = CATALOG_LOG_FORMAT,
    log_filter: Optional[logging.Filter] = None,
) -> logging.Logger:
    """
    Configure a named logger writing to `<log_dir>/<name>_<YYYYMMDD>.log`.

    Console output goes to stdout at `console_level`; pass None to log to
    the file only. Handlers are attached once per logger name, so later
    calls return the existing logger unchanged.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    log_dir = Path(log_dir) if log_dir is not None else Path.cwd() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT)

    handlers = [(logging.FileHandler(log_dir / f"{name}_{datetime.now():%Y%m%d}.log"), level)]
    if console_level is not None:
        handlers.append((logging.StreamHandler(sys.stdout), console_level))

    for handler, handler_level in handlers:
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        if log_filter is not None:
            handler.addFilter(log_filter)
        logger.addHandler(handler)

    return logger


class RequestThrottle:
    """
    Spaces outgoing provider requests evenly at `requests_per_second`.

    Each caller reserves the next free slot under the lock and sleeps
    outside it, so concurrent callers queue up without blocking each
    other's bookkeeping.
    """

    def __init__(
        self,
        requests_per_second: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval = 1.0 / requests_per_second
        self.clock = clock
        self.sleep = sleep
        self._next_slot = 0.0
        self._lock = Lock()

    def acquire(self) -> float:
        """Wait for this caller's slot. Returns the time waited in seconds."""
        with self._lock:
            now = self.clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.interval
        delay = slot - now
        if delay > 0:
            self.sleep(delay)
        return delay


def progress_bar(iterable: Iterable[T], desc: str, unit: str = "movie", disable: bool = False) -> Iterator[T]:
    """tqdm bar for sync runs; `disable` hides it when the sync runs behind the API."""
    return tqdm(iterable, desc=desc, unit=unit, disable=disable, ncols=100, leave=False)


def format_duration(seconds: float) -> str:
    """Render seconds as `4.2s` or `3m 07s`."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(int(round(seconds)), 60)
    return f"{minutes}m {rest:02d}s"


class Timer:
    """Context manager measuring wall time of a block."""

    def __init__(self, description: str = "Operation"):
        self.description = description
        self.elapsed = 0.0
        self._start = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc) -> None:
        self.elapsed = time.perf_counter() - self._start

    def __str__(self) -> str:
        return f"{self.description} took {format_duration(self.elapsed)}"
