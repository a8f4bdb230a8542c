"""
Inbound rate limiting.

Two limiters guard every route:
- a token bucket per endpoint (method + route template); a request takes
  one token and tokens refill continuously up to the capacity;
- a request window per client address; a client may make at most
  `max_requests` requests within any `window_seconds` span.
"""

import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Deque, Dict

from fastapi import Request


@dataclass
class _Bucket:
    tokens: float
    last_refill: float


class TokenBucketRateLimiter:
    """
    Thread-safe map of token buckets keyed by endpoint.

    Args:
        capacity: Maximum tokens a bucket holds (burst size)
        refill_rate: Tokens added per second
        clock: Monotonic time source, replaceable in tests
    """

    def __init__(self, capacity: int = 20, refill_rate: float = 2.0, clock: Callable[[], float] = time.monotonic):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._lock = Lock()

    def try_acquire(self, key: str) -> bool:
        """Take a token from the key's bucket. Returns False when it is empty."""
        with self._lock:
            now = self.clock()
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = _Bucket(tokens=float(self.capacity), last_refill=now)
                self._buckets[key] = bucket

            elapsed = max(0.0, now - bucket.last_refill)
            bucket.tokens = min(float(self.capacity), bucket.tokens + elapsed * self.refill_rate)
            bucket.last_refill = now

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return True
            return False

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


class FixedWindowRateLimiter:
    """
    Thread-safe per-client request counter over a trailing time window.

    Rejected requests are not recorded, so a client that stops sending
    regains capacity as its accepted requests age out of the window.
    """

    def __init__(self, max_requests: int = 100, window_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._requests: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def try_acquire(self, client: str) -> bool:
        """Record a request for the client. Returns False when its window is full."""
        with self._lock:
            now = self.clock()
            timestamps = self._requests.setdefault(client, deque())
            while timestamps and timestamps[0] <= now - self.window_seconds:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                return False
            timestamps.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()


def endpoint_key(request: Request) -> str:
    """METHOD:route-template, falling back to the raw path."""
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    return f"{request.method}:{path}"


def client_key(request: Request) -> str:
    """Client address of the request, empty when unknown."""
    return request.client.host if request.client else ""
