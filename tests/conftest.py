"""
Shared fixtures for movie catalog tests.

Provides a file-backed SQLite database, sample genres and movies, a mock
TMDB client, and an API test client with dependencies overridden.
"""

import pytest
from datetime import date
from typing import Dict, List, Optional

from fastapi.testclient import TestClient

from movie_catalog.config import Config
from movie_catalog.database import DatabaseManager
from movie_catalog.exceptions import ProviderError
from movie_catalog.models import GenreData, MoviePage, ProviderMovie, UserData


# =============================================================================
# SAMPLE DATA
# =============================================================================

SAMPLE_GENRES = [
    GenreData(id=28, name="Action"),
    GenreData(id=18, name="Drama"),
    GenreData(id=878, name="Science Fiction"),
    GenreData(id=35, name="Comedy"),
    GenreData(id=53, name="Thriller"),
]


def create_provider_movie(
    tmdb_id: int,
    title: str,
    popularity: float = 50.0,
    genre_ids: Optional[List[int]] = None,
    overview: Optional[str] = None,
    release_date: Optional[date] = None,
    vote_average: float = 7.5,
) -> ProviderMovie:
    """Create a sample ProviderMovie for testing."""
    return ProviderMovie(
        tmdb_id=tmdb_id,
        title=title,
        original_title=title,
        original_language="en",
        overview=overview if overview is not None else f"This is the overview for {title}.",
        release_date=release_date or date(2020, 1, 15),
        poster_path=f"/poster_{tmdb_id}.jpg",
        backdrop_path=f"/backdrop_{tmdb_id}.jpg",
        vote_average=vote_average,
        vote_count=1000,
        popularity=popularity,
        adult=False,
        video=False,
        genre_ids=genre_ids if genre_ids is not None else [],
    )


SAMPLE_PROVIDER_MOVIES = [
    create_provider_movie(
        155, "The Dark Knight", 95.0, [28, 18],
        "Batman raises the stakes in his war on crime.", date(2008, 7, 18), 9.0,
    ),
    create_provider_movie(
        27205, "Inception", 90.0, [28, 878, 53],
        "A thief who steals corporate secrets through dream-sharing technology.", date(2010, 7, 16), 8.8,
    ),
    create_provider_movie(
        157336, "Interstellar", 85.0, [878, 18],
        "A team of explorers travel through a wormhole in space.", date(2014, 11, 7), 8.6,
    ),
    create_provider_movie(
        550, "Fight Club", 80.0, [18],
        "An insomniac office worker and a soap maker form an underground fight club.", date(1999, 10, 15), 8.4,
    ),
    create_provider_movie(
        8363, "Superbad", 40.0, [35],
        "Two co-dependent high school seniors are forced to deal with separation anxiety.", date(2007, 8, 17), 7.2,
    ),
    create_provider_movie(
        999, "Unrelated", 10.0, [],
        "Nothing to see here.", date(2001, 1, 1), 5.0,
    ),
]


def create_user(db: DatabaseManager, username: str) -> UserData:
    """Insert a user directly (password hash is irrelevant for storage tests)."""
    return db.create_user(username, "not-a-bcrypt-hash", f"{username.title()} Tester")


# =============================================================================
# MOCK TMDB CLIENT
# =============================================================================

class MockTMDBClient:
    """Mock TMDB client serving in-memory pages."""

    def __init__(
        self,
        genres: Optional[List[GenreData]] = None,
        movies: Optional[List[ProviderMovie]] = None,
        per_page: int = 2,
    ):
        self.genres = list(SAMPLE_GENRES if genres is None else genres)
        movies = list(SAMPLE_PROVIDER_MOVIES if movies is None else movies)
        self.pages: Dict[int, List[ProviderMovie]] = {
            i // per_page + 1: movies[i:i + per_page] for i in range(0, len(movies), per_page)
        }
        self.failing_pages = set()
        self.fail_genres = False
        self.connection_ok = True
        self.requested_pages: List[int] = []

    def get_provider_name(self) -> str:
        return "tmdb"

    def test_connection(self) -> bool:
        return self.connection_ok

    def get_genres(self) -> List[GenreData]:
        if self.fail_genres:
            raise ProviderError("TMDB request to /genre/movie/list failed with status 401")
        return list(self.genres)

    def get_movies(self, page: int = 1) -> MoviePage:
        self.requested_pages.append(page)
        if page in self.failing_pages:
            raise ProviderError(f"TMDB request to /movie/popular failed for page {page}")
        return MoviePage(
            movies=list(self.pages.get(page, [])),
            current_page=page,
            total_pages=len(self.pages),
        )

    get_popular_movies = get_movies


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def test_config(tmp_path):
    """Config pointing at a throwaway SQLite file."""
    return Config(
        api_key="test-api-key",
        database_url=f"sqlite:///{tmp_path / 'catalog.db'}",
        project_dir=tmp_path,
        log_dir=tmp_path / "logs",
        max_pages=10,
        jwt_secret_key="test-access-secret",
        jwt_refresh_secret_key="test-refresh-secret",
        bcrypt_salt_rounds=4,
    )


@pytest.fixture
def db(test_config):
    """Provide a fresh database with all tables for each test."""
    manager = DatabaseManager(test_config)
    manager.create_all_tables()
    yield manager
    manager.engine.dispose()


@pytest.fixture
def movie_ids(db) -> Dict[str, str]:
    """Seed sample genres and movies; map title -> stored movie ID."""
    db.insert_genres(SAMPLE_GENRES)
    return {m.title: db.save_provider_movie(m, m.genre_ids) for m in SAMPLE_PROVIDER_MOVIES}


@pytest.fixture
def seeded_db(db, movie_ids):
    """Database pre-populated with sample genres and movies."""
    return db


@pytest.fixture
def mock_tmdb_client():
    """Provide mock TMDB client."""
    return MockTMDBClient()


@pytest.fixture
def api_client(seeded_db, test_config, mock_tmdb_client):
    """Provide FastAPI test client with the test database and mocked TMDB."""
    from api.main import app
    from api import dependencies
    from api.rate_limit import FixedWindowRateLimiter, TokenBucketRateLimiter

    # Clear any cached config/db from previous runs
    dependencies.get_config.cache_clear()
    dependencies.get_db.cache_clear()
    dependencies.get_tmdb_client.cache_clear()
    dependencies.get_token_bucket.cache_clear()
    dependencies.get_request_window.cache_clear()

    limiter = TokenBucketRateLimiter(capacity=1000, refill_rate=100.0)
    window = FixedWindowRateLimiter(max_requests=10000, window_seconds=60)

    app.dependency_overrides[dependencies.get_db] = lambda: seeded_db
    app.dependency_overrides[dependencies.get_config] = lambda: test_config
    app.dependency_overrides[dependencies.get_tmdb_client] = lambda: mock_tmdb_client
    app.dependency_overrides[dependencies.get_token_bucket] = lambda: limiter
    app.dependency_overrides[dependencies.get_request_window] = lambda: window

    with TestClient(app) as client:
        yield client

    # Clean up overrides
    app.dependency_overrides.clear()


def signup_and_login(client: TestClient, username: str = "alice", password: str = "secret123") -> dict:
    """Create a user through the API and return the login response body."""
    response = client.post(
        "/api/v1/users/signup",
        json={"username": username, "password": password, "full_name": f"{username.title()} Tester"},
    )
    assert response.status_code == 201, response.text
    response = client.post("/api/v1/users/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def auth_headers(api_client) -> dict:
    """Authorization header for a freshly signed-up user."""
    tokens = signup_and_login(api_client)
    return {"Authorization": f"Bearer {tokens['access_token']}"}
