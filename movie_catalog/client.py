"""
TMDB API client used by provider sync.

Requests are throttled below TMDB's 40 requests/second limit. Timeouts,
connection errors, 429 and 5xx responses are retried with backoff; any
other failure surfaces as ProviderError.
"""

import random
import time
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import Config
from .exceptions import ProviderError
from .models import GenreData, MoviePage, ProviderMovie
from .utils import RequestThrottle, setup_logger

GENRES_ENDPOINT = "/genre/movie/list"
POPULAR_ENDPOINT = "/movie/popular"


class TMDBClient:
    """Fetches genres and popular movie pages from TMDB."""

    PROVIDER_NAME = "tmdb"

    # TMDB allows 40/s; stay under it
    DEFAULT_RATE_LIMIT = 35
    MAX_RETRIES = 3
    REQUEST_TIMEOUT = 30

    def __init__(self, config: Config):
        self.config = config
        self.session = self._create_session()
        self.throttle = RequestThrottle(min(config.rate_limit_per_second, self.DEFAULT_RATE_LIMIT))
        self.logger = setup_logger("tmdb_client", config.log_dir)

    def get_provider_name(self) -> str:
        return self.PROVIDER_NAME

    def _create_session(self) -> requests.Session:
        # Transport-level retries for idempotent GETs; _request adds its own backoff on top
        adapter = HTTPAdapter(max_retries=Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        ))
        session = requests.Session()
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers.update(self.config.get_headers())
        return session

    @staticmethod
    def _backoff(attempt: int, base_delay: float = 1.0) -> float:
        """Exponential delay for the given attempt with +/-25% jitter, capped at 60s."""
        delay = base_delay * (2 ** attempt)
        return min(delay * random.uniform(0.75, 1.25), 60)

    def _retry_delay(self, response: requests.Response, attempt: int) -> Optional[float]:
        """Seconds to wait before retrying this response, or None if it must not be retried."""
        if response.status_code == 429:
            return int(response.headers.get("Retry-After", 10)) + random.uniform(1, 3)
        if response.status_code >= 500:
            return self._backoff(attempt)
        return None

    def _request(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """
        GET a TMDB endpoint and return its JSON body.

        Raises:
            ProviderError: on a non-retryable status, a request error, or
                once MAX_RETRIES attempts have failed
        """
        url = f"{self.config.base_url}{endpoint}"

        for attempt in range(self.MAX_RETRIES):
            self.throttle.acquire()
            try:
                response = self.session.get(url, params=params or {}, timeout=self.REQUEST_TIMEOUT)
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                base = 2.0 if isinstance(e, requests.exceptions.ConnectionError) else 1.0
                delay = self._backoff(attempt, base)
                self.logger.warning(
                    f"{type(e).__name__} for {endpoint}, retrying in {delay:.1f}s "
                    f"({attempt + 1}/{self.MAX_RETRIES})"
                )
                time.sleep(delay)
                continue
            except requests.exceptions.RequestException as e:
                self.logger.error(f"Request error for {endpoint}: {e}")
                raise ProviderError(f"TMDB request to {endpoint} failed: {e}") from e

            if response.status_code == 200:
                return response.json()

            delay = self._retry_delay(response, attempt)
            if delay is None:
                self.logger.error(f"TMDB returned {response.status_code} for {endpoint}")
                raise ProviderError(f"TMDB request to {endpoint} failed with status {response.status_code}")

            self.logger.warning(
                f"TMDB returned {response.status_code} for {endpoint}, retrying in {delay:.1f}s "
                f"({attempt + 1}/{self.MAX_RETRIES})"
            )
            time.sleep(delay)

        self.logger.error(f"Giving up on {endpoint} after {self.MAX_RETRIES} attempts")
        raise ProviderError(f"TMDB request to {endpoint} failed after {self.MAX_RETRIES} attempts")

    def get_genres(self) -> List[GenreData]:
        """All TMDB movie genres."""
        data = self._request(GENRES_ENDPOINT)
        return [GenreData.from_tmdb(g) for g in data.get("genres", [])]

    def get_popular_movies(self, page: int = 1) -> MoviePage:
        """One page (1-indexed) of TMDB's popular movies, in English."""
        data = self._request(POPULAR_ENDPOINT, params={"language": "en-US", "page": page})
        return MoviePage(
            movies=[ProviderMovie.from_tmdb(m) for m in data.get("results", [])],
            current_page=data.get("page", page),
            total_pages=data.get("total_pages", 0),
        )

    # Provider interface used by MoviesProvider
    get_movies = get_popular_movies

    def test_connection(self) -> bool:
        """True if the genre list can be fetched."""
        try:
            return "genres" in self._request(GENRES_ENDPOINT)
        except ProviderError as e:
            self.logger.error(f"TMDB connection test failed: {e}")
            return False
