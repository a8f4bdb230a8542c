"""
Configuration for the movie catalog.

Every setting comes from the environment (optionally seeded from a .env
file) and lands in one Config dataclass shared by the CLI and the API.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_TMDB_URL = "https://api.themoviedb.org/3"


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes")


def _env_list(name: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


def _require(*names: str) -> None:
    missing = [name for name in names if not os.getenv(name)]
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")


def _load_env_file(env_path: Optional[str]) -> None:
    """Load an explicit .env, else the project root's, else one in the working directory."""
    if env_path:
        load_dotenv(env_path)
        return
    root_env = Path(__file__).parent.parent / ".env"
    load_dotenv(root_env if root_env.exists() else None)


@dataclass
class Config:
    """Catalog settings. Only `api_key` has no default."""

    # TMDB
    api_key: str
    base_url: str = DEFAULT_TMDB_URL
    max_pages: int = 10
    rate_limit_per_second: int = 40

    # Database: a full SQLAlchemy URL wins over the MySQL parts
    database_url: str = ""
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = ""
    db_password: str = ""
    db_name: str = ""

    project_dir: Path = field(default_factory=Path.cwd)
    log_dir: Path = field(default_factory=lambda: Path.cwd() / "logs")

    # HTTP server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    allowed_origins: List[str] = field(default_factory=list)

    # Auth
    jwt_secret_key: str = ""
    jwt_refresh_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_access_expire_minutes: int = 15
    jwt_refresh_expire_minutes: int = 7 * 24 * 60
    bcrypt_salt_rounds: int = 10

    # Inbound rate limits: token bucket per endpoint, request window per client
    token_bucket_capacity: int = 20
    token_bucket_refill_rate: float = 2.0
    fixed_window_size_ms: int = 60000
    fixed_window_max_requests: int = 100

    @classmethod
    def from_env(cls, env_path: Optional[str] = None) -> "Config":
        """
        Build a Config from environment variables.

        TMDB_API_KEY, JWT_SECRET and JWT_REFRESH_SECRET are required, as is
        either DATABASE_URL or SQL_USER plus SQL_DB.

        Raises:
            ValueError: If a required variable is missing.
        """
        _load_env_file(env_path)

        _require("TMDB_API_KEY", "JWT_SECRET", "JWT_REFRESH_SECRET")
        if not os.getenv("DATABASE_URL"):
            _require("SQL_USER", "SQL_DB")

        project_dir = Path(os.getenv("PROJECT_DIR") or Path.cwd())

        return cls(
            api_key=os.environ["TMDB_API_KEY"],
            base_url=os.getenv("TMDB_API_URL", DEFAULT_TMDB_URL),
            max_pages=_env_int("TMDB_MAX_PAGES", 10),
            database_url=os.getenv("DATABASE_URL", ""),
            db_host=os.getenv("SQL_HOST", "localhost"),
            db_port=_env_int("SQL_PORT", 3306),
            db_user=os.getenv("SQL_USER", ""),
            db_password=os.getenv("SQL_PASS", ""),
            db_name=os.getenv("SQL_DB", ""),
            project_dir=project_dir,
            log_dir=project_dir / "logs",
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=_env_int("API_PORT", 8000),
            api_debug=_env_bool("API_DEBUG"),
            allowed_origins=_env_list("ALLOWED_ORIGINS"),
            jwt_secret_key=os.environ["JWT_SECRET"],
            jwt_refresh_secret_key=os.environ["JWT_REFRESH_SECRET"],
            jwt_access_expire_minutes=_env_int("JWT_ACCESS_TOKEN_EXPIRATION", 15),
            jwt_refresh_expire_minutes=_env_int("JWT_REFRESH_TOKEN_EXPIRATION", 7 * 24 * 60),
            bcrypt_salt_rounds=_env_int("BCRYPT_SALT_ROUNDS", 10),
            token_bucket_capacity=_env_int("TOKEN_BUCKET_CAPACITY", 20),
            token_bucket_refill_rate=_env_float("TOKEN_BUCKET_REFILL_RATE", 2.0),
            fixed_window_size_ms=_env_int("FIXED_WINDOW_SIZE_MS", 60000),
            fixed_window_max_requests=_env_int("FIXED_WINDOW_MAX_REQUESTS", 100),
        )

    def get_db_url(self) -> str:
        """SQLAlchemy URL: DATABASE_URL as given, else MySQL via PyMySQL."""
        if self.database_url:
            return self.database_url
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    def get_headers(self) -> dict:
        """TMDB request headers (v4 bearer token auth)."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
