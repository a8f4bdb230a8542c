"""
Database manager for the movie catalog.

Handles all database operations including:
- Connection and transaction management with SQLAlchemy
- The rating transaction that keeps movie aggregates consistent
- Paginated listing and search queries over movies and genres
- Provider sync writes, users and watchlists
"""

import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set, Tuple

from sqlalchemy import bindparam, create_engine, event, inspect, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import schema
from .config import Config
from .exceptions import ConflictError, MovieNotFoundError, NotFoundError
from .models import (
    GenreData,
    MovieData,
    MovieQueryResult,
    ProviderMovie,
    RatingResult,
    UserData,
    WatchlistEntry,
    average_from_tenths,
    parse_datetime,
)
from .utils import setup_logger

# Ratings have one decimal; summing them as integer tenths keeps the mean exact
RATING_STATS_QUERY = """
    SELECT SUM(ROUND(rating * 10)), COUNT(*) FROM ratings WHERE movie_id = :movie_id
"""

MOVIE_COLUMNS = """
    m.id, m.title, m.overview, m.release_date, m.poster_path, m.backdrop_path,
    m.vote_average, m.vote_count, m.popularity, m.tmdb_id,
    m.average_rating, m.rating_count, m.created_at, m.updated_at
"""


def _text(query: str, params: Optional[dict] = None):
    """Build a text() clause, expanding list parameters for IN (...)."""
    stmt = text(query)
    expanding = [
        bindparam(key, expanding=True)
        for key, value in (params or {}).items()
        if isinstance(value, (list, tuple, set))
    ]
    return stmt.bindparams(*expanding) if expanding else stmt


def _enable_sqlite_write_locks(engine: Engine) -> None:
    """
    Let write transactions on SQLite take the database lock up front.

    pysqlite's own transaction handling is disabled so that BEGIN is
    emitted by SQLAlchemy; connections flagged with the `write_lock`
    execution option start with BEGIN IMMEDIATE.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get("write_lock"):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """
    Handles all database operations.

    Responsibilities:
    - Connection management with SQLAlchemy
    - Transaction management
    - Movie queries, rating aggregation, users, watchlists
    - Table setup and status
    """

    REQUIRED_TABLES = schema.REQUIRED_TABLES

    # Isolation for the rating transaction; SQLite uses BEGIN IMMEDIATE instead
    RATING_ISOLATION_LEVEL = "REPEATABLE READ"

    def __init__(self, config: Config):
        self.config = config
        self.engine = self._create_engine()
        self.logger = setup_logger("database", config.log_dir)

    def _create_engine(self) -> Engine:
        """Create SQLAlchemy engine with connection pooling."""
        url = make_url(self.config.get_db_url())
        if url.get_backend_name() == "sqlite":
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
            _enable_sqlite_write_locks(engine)
            return engine
        return create_engine(
            url,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    @property
    def _for_update(self) -> str:
        # SQLite has no row locks; the BEGIN IMMEDIATE transaction already holds the write lock
        return "" if self.is_sqlite else " FOR UPDATE"

    def _execute(self, query: str, params: dict = None) -> list:
        """Execute a query and return results."""
        with self.engine.connect() as conn:
            result = conn.execute(_text(query, params), params or {})
            conn.commit()
            return result.fetchall() if result.returns_rows else []

    def _fetch_all(self, conn: Connection, query: str, params: dict = None) -> List[dict]:
        """Execute a query on an open connection and return row mappings."""
        result = conn.execute(_text(query, params), params or {})
        return [dict(row) for row in result.mappings()]

    @contextmanager
    def _transaction(self, isolation_level: Optional[str] = None) -> Iterator[Connection]:
        """
        Open a write transaction.

        Commits when the block exits normally and rolls back on any
        exception, which is then re-raised.
        """
        with self.engine.connect() as conn:
            options = {"write_lock": True}
            if isolation_level and not self.is_sqlite:
                options["isolation_level"] = isolation_level
            conn = conn.execution_options(**options)
            with conn.begin():
                yield conn

    # ============ SETUP OPERATIONS ============

    def test_connection(self) -> Tuple[bool, Optional[str]]:
        """Check that the database answers a trivial query."""
        try:
            self._execute("SELECT 1")
            return True, None
        except SQLAlchemyError as e:
            self.logger.error(f"Database connection test failed: {e}")
            return False, str(e)

    def table_exists(self, table_name: str) -> bool:
        """Check if a specific table exists."""
        return inspect(self.engine).has_table(table_name)

    def get_missing_tables(self) -> List[str]:
        """Get list of required tables that don't exist."""
        return [t for t in self.REQUIRED_TABLES if not self.table_exists(t)]

    def check_and_create_tables(self) -> dict:
        """
        Check which tables exist and create any that are missing.

        Returns:
            {
                "existing": List[str],
                "created": List[str],
                "all_present": bool
            }
        """
        missing = self.get_missing_tables()
        existing = [t for t in self.REQUIRED_TABLES if t not in missing]

        if missing:
            self.create_all_tables()
            self.logger.info(f"Created tables: {', '.join(missing)}")

        created = [t for t in missing if self.table_exists(t)]
        return {
            "existing": existing,
            "created": created,
            "all_present": len(existing) + len(created) == len(self.REQUIRED_TABLES),
        }

    def create_all_tables(self) -> None:
        """Create all tables and indexes that do not exist yet."""
        schema.metadata.create_all(self.engine)

    def get_status(self) -> dict:
        """Get row counts for the main tables."""
        missing = self.get_missing_tables()
        status = {"missing_tables": missing, "all_tables_exist": not missing}
        for key, table in (
            ("movies", "movies"),
            ("genres", "genres"),
            ("users", "users"),
            ("ratings", "ratings"),
            ("watchlist_entries", "user_watchlist_movies"),
        ):
            if table in missing:
                status[key] = 0
            else:
                status[key] = self._execute(f"SELECT COUNT(*) FROM {table}")[0][0]
        return status

    def get_movie_count(self) -> int:
        """Get count of stored movies."""
        return self._execute("SELECT COUNT(*) FROM movies")[0][0]

    # ============ MOVIE QUERY OPERATIONS ============

    def list_movies(
        self,
        page: int = 1,
        limit: int = 10,
        genres: Optional[List[str]] = None,
    ) -> MovieQueryResult:
        """
        Get a page of movies ordered by popularity.

        A movie matches the genre filter when it has at least one of
        the given genres.
        """
        where_clauses = []
        params = {}

        if genres:
            where_clauses.append(
                "m.id IN (SELECT mg.movie_id FROM movie_genres mg "
                "JOIN genres g ON g.id = mg.genre_id WHERE g.name IN :genres)"
            )
            params["genres"] = list(genres)

        return self._query_movies(where_clauses, params, page, limit)

    def search_movies(self, query: str, page: int = 1, limit: int = 10) -> MovieQueryResult:
        """Case-insensitive substring search over title and overview."""
        where_clauses = ["(LOWER(m.title) LIKE :query OR LOWER(m.overview) LIKE :query)"]
        params = {"query": f"%{query.lower()}%"}
        return self._query_movies(where_clauses, params, page, limit)

    def get_movie(self, movie_id: str) -> MovieData:
        """Get a movie with its genres, or raise MovieNotFoundError."""
        with self.engine.connect() as conn:
            movie = self._fetch_movie(conn, movie_id)
        if movie is None:
            raise MovieNotFoundError(movie_id)
        return movie

    def movie_exists(self, movie_id: str) -> bool:
        """Check if a movie exists."""
        result = self._execute(
            "SELECT 1 FROM movies WHERE id = :id",
            {"id": movie_id}
        )
        return len(result) > 0

    def _query_movies(
        self,
        where_clauses: List[str],
        params: dict,
        page: int,
        limit: int,
    ) -> MovieQueryResult:
        """Run the count and page queries for a movie filter."""
        where_sql = " AND ".join(where_clauses) if where_clauses else "1=1"

        with self.engine.connect() as conn:
            total = conn.execute(
                _text(f"SELECT COUNT(*) FROM movies m WHERE {where_sql}", params),
                params,
            ).scalar_one()

            page_params = dict(params, limit=limit, offset=(page - 1) * limit)
            rows = self._fetch_all(
                conn,
                f"""
                    SELECT {MOVIE_COLUMNS}
                    FROM movies m
                    WHERE {where_sql}
                    ORDER BY m.popularity DESC, m.id ASC
                    LIMIT :limit OFFSET :offset
                """,
                page_params,
            )
            genres_map = self._load_genres(conn, [row["id"] for row in rows])

        movies = [MovieData.from_row(row, genres_map.get(row["id"], [])) for row in rows]
        total_pages = (total + limit - 1) // limit if limit > 0 else 0
        return MovieQueryResult(movies=movies, total=total, total_pages=total_pages)

    def _fetch_movie(self, conn: Connection, movie_id: str) -> Optional[MovieData]:
        rows = self._fetch_all(
            conn,
            f"SELECT {MOVIE_COLUMNS} FROM movies m WHERE m.id = :id",
            {"id": movie_id},
        )
        if not rows:
            return None
        genres_map = self._load_genres(conn, [movie_id])
        return MovieData.from_row(rows[0], genres_map.get(movie_id, []))

    def _load_genres(self, conn: Connection, movie_ids: List[str]) -> Dict[str, List[GenreData]]:
        """Batch fetch genres for a set of movies, ordered by name."""
        if not movie_ids:
            return {}
        rows = self._fetch_all(
            conn,
            """
                SELECT mg.movie_id, g.id, g.name
                FROM movie_genres mg
                JOIN genres g ON g.id = mg.genre_id
                WHERE mg.movie_id IN :movie_ids
                ORDER BY g.name
            """,
            {"movie_ids": list(movie_ids)},
        )
        genres_map: Dict[str, List[GenreData]] = {}
        for row in rows:
            genres_map.setdefault(row["movie_id"], []).append(GenreData(id=row["id"], name=row["name"]))
        return genres_map

    # ============ RATING OPERATIONS ============

    def rate_movie(self, movie_id: str, user_id: str, rating: float) -> RatingResult:
        """
        Record a user's rating and recompute the movie's aggregates.

        The movie row is locked for the whole transaction so concurrent
        ratings of one movie are applied one at a time; ratings of other
        movies are not blocked.

        Raises:
            MovieNotFoundError: If the movie does not exist. Nothing is written.
        """
        with self._transaction(isolation_level=self.RATING_ISOLATION_LEVEL) as conn:
            locked = conn.execute(
                text(f"SELECT id FROM movies WHERE id = :id{self._for_update}"),
                {"id": movie_id}
            ).fetchone()
            if locked is None:
                self.logger.warning(f"Rating failed: movie_id={movie_id} not found")
                raise MovieNotFoundError(movie_id)

            existing = conn.execute(
                text("SELECT id FROM ratings WHERE user_id = :user_id AND movie_id = :movie_id"),
                {"user_id": user_id, "movie_id": movie_id}
            ).fetchone()

            if existing:
                self._update_rating(conn, user_id, movie_id, rating)
                created = False
            else:
                created = self._insert_rating(conn, user_id, movie_id, rating)

            average_rating, rating_count = self._recompute_rating_stats(conn, movie_id)

        self.logger.info(
            f"Rating {'created' if created else 'updated'}: movie_id={movie_id} user_id={user_id} "
            f"rating={rating} average={average_rating} count={rating_count}"
        )
        return RatingResult(
            average_rating=average_rating,
            rating_count=rating_count,
            created=created,
        )

    def _insert_rating(self, conn: Connection, user_id: str, movie_id: str, rating: float) -> bool:
        """Insert a new rating; falls back to an update if one appeared meanwhile."""
        try:
            with conn.begin_nested():
                conn.execute(
                    text("""
                        INSERT INTO ratings (id, user_id, movie_id, rating)
                        VALUES (:id, :user_id, :movie_id, :rating)
                    """),
                    {
                        "id": str(uuid.uuid4()),
                        "user_id": user_id,
                        "movie_id": movie_id,
                        "rating": rating,
                    }
                )
            return True
        except IntegrityError:
            # Unique (user_id, movie_id) hit: another insert won, so update it instead
            if self._update_rating(conn, user_id, movie_id, rating) == 0:
                raise
            self.logger.warning(f"Rating insert conflict resolved as update: movie_id={movie_id} user_id={user_id}")
            return False

    def _update_rating(self, conn: Connection, user_id: str, movie_id: str, rating: float) -> int:
        result = conn.execute(
            text("""
                UPDATE ratings SET rating = :rating, updated_at = CURRENT_TIMESTAMP
                WHERE user_id = :user_id AND movie_id = :movie_id
            """),
            {"rating": rating, "user_id": user_id, "movie_id": movie_id}
        )
        return result.rowcount

    def _recompute_rating_stats(self, conn: Connection, movie_id: str) -> Tuple[float, int]:
        """Recompute AVG/COUNT over the movie's ratings and store them on the movie."""
        row = conn.execute(text(RATING_STATS_QUERY), {"movie_id": movie_id}).fetchone()
        average_rating = average_from_tenths(row[0], row[1])
        rating_count = int(row[1])

        conn.execute(
            text("""
                UPDATE movies
                SET average_rating = :average_rating, rating_count = :rating_count,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = :id
            """),
            {"average_rating": average_rating, "rating_count": rating_count, "id": movie_id}
        )
        return average_rating, rating_count

    def get_rating_stats(self, movie_id: str) -> Tuple[float, int]:
        """Compute the live AVG/COUNT for a movie without storing them."""
        result = self._execute(RATING_STATS_QUERY, {"movie_id": movie_id})
        return average_from_tenths(result[0][0], result[0][1]), int(result[0][1])

    def get_user_rating(self, user_id: str, movie_id: str) -> Optional[float]:
        """Get a user's rating of a movie, if any."""
        result = self._execute(
            "SELECT rating FROM ratings WHERE user_id = :user_id AND movie_id = :movie_id",
            {"user_id": user_id, "movie_id": movie_id}
        )
        return float(result[0][0]) if result else None

    # ============ PROVIDER SYNC OPERATIONS ============

    def get_all_genre_ids(self) -> Set[int]:
        """Get all stored genre IDs."""
        result = self._execute("SELECT id FROM genres")
        return {row[0] for row in result}

    def get_all_genres(self) -> Dict[int, GenreData]:
        """Get all stored genres keyed by ID."""
        result = self._execute("SELECT id, name FROM genres")
        return {row[0]: GenreData(id=row[0], name=row[1]) for row in result}

    def insert_genres(self, genres: List[GenreData]) -> int:
        """Insert genres in one transaction."""
        if not genres:
            return 0
        with self._transaction() as conn:
            for genre in genres:
                conn.execute(
                    text("INSERT INTO genres (id, name) VALUES (:id, :name)"),
                    genre.to_dict()
                )
        return len(genres)

    def get_existing_tmdb_ids(self, tmdb_ids: List[int]) -> Set[int]:
        """Get which of the given provider IDs are already stored."""
        if not tmdb_ids:
            return set()
        result = self._execute(
            "SELECT tmdb_id FROM movies WHERE tmdb_id IN :tmdb_ids",
            {"tmdb_ids": list(tmdb_ids)}
        )
        return {row[0] for row in result}

    def save_provider_movie(self, movie: ProviderMovie, genre_ids: List[int]) -> str:
        """
        Insert a provider movie with its genre links.

        If a movie with the same provider ID already exists only its
        genre links are replaced.

        Returns:
            The stored movie's ID.
        """
        with self._transaction() as conn:
            existing = conn.execute(
                text("SELECT id FROM movies WHERE tmdb_id = :tmdb_id"),
                {"tmdb_id": movie.tmdb_id}
            ).fetchone()

            if existing:
                movie_id = existing[0]
                conn.execute(
                    text("DELETE FROM movie_genres WHERE movie_id = :movie_id"),
                    {"movie_id": movie_id}
                )
            else:
                movie_id = str(uuid.uuid4())
                movie_dict = movie.to_dict()
                movie_dict["id"] = movie_id
                columns = ", ".join(movie_dict.keys())
                placeholders = ", ".join(f":{k}" for k in movie_dict.keys())
                conn.execute(
                    text(f"INSERT INTO movies ({columns}) VALUES ({placeholders})"),
                    movie_dict
                )

            for genre_id in dict.fromkeys(genre_ids):
                conn.execute(
                    text("INSERT INTO movie_genres (movie_id, genre_id) VALUES (:movie_id, :genre_id)"),
                    {"movie_id": movie_id, "genre_id": genre_id}
                )

        return movie_id

    # ============ USER OPERATIONS ============

    def create_user(self, username: str, password_hash: str, full_name: str) -> UserData:
        """
        Create a user.

        Raises:
            ConflictError: If the username is taken.
        """
        if self.get_user_by_username(username):
            raise ConflictError("User with this username already exists")

        user = UserData(
            id=str(uuid.uuid4()),
            username=username,
            full_name=full_name,
            password=password_hash,
        )
        try:
            with self._transaction() as conn:
                conn.execute(
                    text("""
                        INSERT INTO users (id, username, password, full_name)
                        VALUES (:id, :username, :password, :full_name)
                    """),
                    {
                        "id": user.id,
                        "username": user.username,
                        "password": user.password,
                        "full_name": user.full_name,
                    }
                )
        except IntegrityError:
            raise ConflictError("User with this username already exists")

        self.logger.info(f"User created: user_id={user.id}")
        return user

    def get_user_by_username(self, username: str) -> Optional[UserData]:
        with self.engine.connect() as conn:
            rows = self._fetch_all(conn, "SELECT * FROM users WHERE username = :username", {"username": username})
        return UserData.from_row(rows[0]) if rows else None

    def get_user_by_id(self, user_id: str) -> Optional[UserData]:
        with self.engine.connect() as conn:
            rows = self._fetch_all(conn, "SELECT * FROM users WHERE id = :id", {"id": user_id})
        return UserData.from_row(rows[0]) if rows else None

    def user_exists(self, user_id: str) -> bool:
        result = self._execute("SELECT 1 FROM users WHERE id = :id", {"id": user_id})
        return len(result) > 0

    def set_refresh_token(self, user_id: str, refresh_token: Optional[str]) -> bool:
        """Store (or clear, with None) the user's current refresh token."""
        with self._transaction() as conn:
            result = conn.execute(
                text("UPDATE users SET refresh_token = :refresh_token WHERE id = :id"),
                {"refresh_token": refresh_token, "id": user_id}
            )
        return result.rowcount > 0

    def get_user_with_refresh_token(self, user_id: str, refresh_token: str) -> Optional[UserData]:
        """Get the user only if the given refresh token is the stored one."""
        with self.engine.connect() as conn:
            rows = self._fetch_all(
                conn,
                "SELECT * FROM users WHERE id = :id AND refresh_token = :refresh_token",
                {"id": user_id, "refresh_token": refresh_token},
            )
        return UserData.from_row(rows[0]) if rows else None

    # ============ WATCHLIST OPERATIONS ============

    def get_watchlist(self, user_id: str) -> List[WatchlistEntry]:
        """
        Get a user's watchlist, newest first.

        Raises:
            NotFoundError: If the user does not exist.
        """
        if not self.user_exists(user_id):
            raise NotFoundError("User", user_id)
        return self._fetch_watchlist_entries("w.user_id = :user_id", {"user_id": user_id})

    def add_to_watchlist(self, user_id: str, movie_id: str) -> WatchlistEntry:
        """
        Add a movie to a user's watchlist.

        Raises:
            NotFoundError: If the user or movie does not exist.
            ConflictError: If the movie is already on the watchlist.
        """
        if not self.user_exists(user_id):
            raise NotFoundError("User", user_id)
        if not self.movie_exists(movie_id):
            raise MovieNotFoundError(movie_id)

        entry_id = str(uuid.uuid4())
        with self._transaction() as conn:
            duplicate = conn.execute(
                text("SELECT 1 FROM user_watchlist_movies WHERE user_id = :user_id AND movie_id = :movie_id"),
                {"user_id": user_id, "movie_id": movie_id}
            ).fetchone()
            if duplicate:
                self.logger.warning(f"Watchlist duplicate: user_id={user_id} movie_id={movie_id}")
                raise ConflictError("Movie already in watchlist")

            conn.execute(
                text("INSERT INTO user_watchlist_movies (id, user_id, movie_id) VALUES (:id, :user_id, :movie_id)"),
                {"id": entry_id, "user_id": user_id, "movie_id": movie_id}
            )

        self.logger.info(f"Watchlist add: user_id={user_id} movie_id={movie_id}")
        return self._fetch_watchlist_entries("w.id = :id", {"id": entry_id})[0]

    def remove_from_watchlist(self, user_id: str, movie_id: str) -> None:
        """
        Remove a movie from a user's watchlist.

        Raises:
            NotFoundError: If the movie is not on the watchlist.
        """
        with self._transaction() as conn:
            result = conn.execute(
                text("DELETE FROM user_watchlist_movies WHERE user_id = :user_id AND movie_id = :movie_id"),
                {"user_id": user_id, "movie_id": movie_id}
            )

        if result.rowcount == 0:
            self.logger.warning(f"Watchlist remove failed: user_id={user_id} movie_id={movie_id} not found")
            raise NotFoundError("Watchlist entry", movie_id, message="Movie not found in watchlist")

        self.logger.info(f"Watchlist remove: user_id={user_id} movie_id={movie_id}")

    def _fetch_watchlist_entries(self, where_sql: str, params: dict) -> List[WatchlistEntry]:
        with self.engine.connect() as conn:
            rows = self._fetch_all(
                conn,
                f"""
                    SELECT w.id AS entry_id, w.user_id AS entry_user_id,
                           w.created_at AS entry_created_at, {MOVIE_COLUMNS}
                    FROM user_watchlist_movies w
                    JOIN movies m ON m.id = w.movie_id
                    WHERE {where_sql}
                    ORDER BY w.created_at DESC
                """,
                params,
            )
            genres_map = self._load_genres(conn, list({row["id"] for row in rows}))

        return [
            WatchlistEntry(
                id=row["entry_id"],
                user_id=row["entry_user_id"],
                movie=MovieData.from_row(row, genres_map.get(row["id"], [])),
                created_at=parse_datetime(row["entry_created_at"]),
            )
            for row in rows
        ]
