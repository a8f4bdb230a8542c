"""
Table definitions for the movie catalog.

Declared with SQLAlchemy Core so the same schema can be created on
MySQL (production) and SQLite (local runs and tests).
"""

from sqlalchemy import (
    CHAR,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)

metadata = MetaData()

movies = Table(
    "movies",
    metadata,
    Column("id", CHAR(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("overview", Text),
    Column("release_date", Date),
    Column("poster_path", String(500)),
    Column("backdrop_path", String(500)),
    Column("vote_average", Numeric(3, 1), nullable=False, server_default="0"),
    Column("vote_count", Integer, nullable=False, server_default="0"),
    Column("popularity", Numeric(8, 3), nullable=False, server_default="0"),
    Column("tmdb_id", Integer, unique=True, nullable=True),
    Column("average_rating", Numeric(10, 1), nullable=True),
    Column("rating_count", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Index("idx_movies_popularity", "popularity"),
    Index("idx_movies_title", "title"),
)

genres = Table(
    "genres",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("name", String(100), nullable=False, unique=True),
)

movie_genres = Table(
    "movie_genres",
    metadata,
    Column("movie_id", CHAR(36), ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_movie_genres_genre_id", "genre_id"),
)

users = Table(
    "users",
    metadata,
    Column("id", CHAR(36), primary_key=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
    Column("full_name", String(100), nullable=False),
    Column("refresh_token", String(768), nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

ratings = Table(
    "ratings",
    metadata,
    Column("id", CHAR(36), primary_key=True),
    Column("user_id", CHAR(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("movie_id", CHAR(36), ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
    Column("rating", Numeric(3, 1), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("user_id", "movie_id", name="uq_ratings_user_movie"),
    Index("idx_ratings_movie_id", "movie_id"),
)

watchlist = Table(
    "user_watchlist_movies",
    metadata,
    Column("id", CHAR(36), primary_key=True),
    Column("user_id", CHAR(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("movie_id", CHAR(36), ForeignKey("movies.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Index("idx_watchlist_user_id", "user_id"),
)

REQUIRED_TABLES = [t.name for t in metadata.sorted_tables]
