"""
Data models for the movie catalog.

Provides dataclasses for type-safe data handling between the database,
the provider client and the API layer.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional


# Fields a movie exposes publicly, in render order
MOVIE_VIEW_FIELDS = (
    "id",
    "backdrop_path",
    "tmdb_id",
    "overview",
    "popularity",
    "poster_path",
    "release_date",
    "title",
    "vote_average",
    "vote_count",
    "average_rating",
    "rating_count",
)


def parse_date(value) -> Optional[date]:
    """Parse a date from a provider string or a database value."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def round_rating(value) -> float:
    """Round an average rating to one decimal, halves away from zero. None becomes 0."""
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_from_tenths(sum_tenths, count) -> float:
    """
    Mean rating from a sum of ratings expressed in tenths.

    Ratings carry one decimal, so their sum in tenths is an exact integer
    and the division happens in Decimal. An empty set averages to 0.
    """
    if not count or sum_tenths is None:
        return 0.0
    return round_rating(Decimal(int(round(sum_tenths))) / (Decimal(int(count)) * 10))


def parse_datetime(value) -> Optional[datetime]:
    """Parse a timestamp column (SQLite returns strings)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


@dataclass
class GenreData:
    """Genre as known by the provider (id is the provider's id)."""

    id: int
    name: str

    def to_dict(self) -> dict:
        """Convert to dictionary for database insertion."""
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_tmdb(cls, data: dict) -> "GenreData":
        """Create GenreData from a TMDB genre entry."""
        return cls(id=data.get("id"), name=data.get("name", ""))


@dataclass
class MovieData:
    """A stored movie with its genres and derived rating statistics."""

    id: str
    title: str
    overview: Optional[str] = None
    release_date: Optional[date] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    tmdb_id: Optional[int] = None
    average_rating: Optional[float] = None
    rating_count: int = 0
    genres: List[GenreData] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def genre_names(self) -> List[str]:
        return [g.name for g in self.genres]

    def to_view(self) -> dict:
        """
        Render the public view of this movie.

        Only the allowlisted fields are exposed; genres are flattened
        to their names and are never null.
        """
        view = {name: getattr(self, name) for name in MOVIE_VIEW_FIELDS}
        view["genres"] = self.genre_names
        return view

    @classmethod
    def from_row(cls, row: dict, genres: Optional[List[GenreData]] = None) -> "MovieData":
        """Create MovieData from a movies table row mapping."""
        return cls(
            id=row["id"],
            title=row["title"],
            overview=row.get("overview"),
            release_date=parse_date(row.get("release_date")),
            poster_path=row.get("poster_path"),
            backdrop_path=row.get("backdrop_path"),
            vote_average=_to_float(row.get("vote_average")) or 0.0,
            vote_count=row.get("vote_count") or 0,
            popularity=_to_float(row.get("popularity")) or 0.0,
            tmdb_id=row.get("tmdb_id"),
            average_rating=_to_float(row.get("average_rating")),
            rating_count=row.get("rating_count") or 0,
            genres=genres or [],
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
        )


@dataclass
class ProviderMovie:
    """A movie list item as returned by the provider."""

    tmdb_id: Optional[int]
    title: Optional[str]
    original_title: Optional[str] = None
    original_language: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[date] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    popularity: Optional[float] = None
    adult: Optional[bool] = None
    video: Optional[bool] = None
    genre_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for database insertion (id added by caller)."""
        return {
            "title": self.title,
            "overview": self.overview or None,
            "release_date": self.release_date.isoformat() if self.release_date else None,
            "poster_path": self.poster_path,
            "backdrop_path": self.backdrop_path,
            "vote_average": self.vote_average or 0,
            "vote_count": self.vote_count or 0,
            "popularity": self.popularity or 0,
            "tmdb_id": self.tmdb_id,
        }

    @classmethod
    def from_tmdb(cls, data: dict) -> "ProviderMovie":
        """Create ProviderMovie from a TMDB list result."""
        return cls(
            tmdb_id=data.get("id"),
            title=data.get("title"),
            original_title=data.get("original_title"),
            original_language=data.get("original_language"),
            overview=data.get("overview"),
            release_date=parse_date(data.get("release_date")),
            poster_path=data.get("poster_path"),
            backdrop_path=data.get("backdrop_path"),
            vote_average=data.get("vote_average"),
            vote_count=data.get("vote_count"),
            popularity=data.get("popularity"),
            adult=data.get("adult"),
            video=data.get("video"),
            genre_ids=data.get("genre_ids") or [],
        )


@dataclass
class MoviePage:
    """One page of provider movies."""

    movies: List[ProviderMovie]
    current_page: int
    total_pages: int

    def to_dict(self) -> dict:
        return {
            "movies": [vars(m) for m in self.movies],
            "current_page": self.current_page,
            "total_pages": self.total_pages,
        }


@dataclass
class MovieQueryResult:
    """A page of movies matching a listing or search query."""

    movies: List[MovieData]
    total: int
    total_pages: int


@dataclass
class RatingResult:
    """Outcome of a rating submission."""

    average_rating: float
    rating_count: int
    created: bool

    @property
    def message(self) -> str:
        if self.created:
            return "Movie rated successfully"
        return "Movie rating updated successfully"

    def to_dict(self) -> dict:
        return {
            "average_rating": self.average_rating,
            "rating_count": self.rating_count,
            "message": self.message,
        }


@dataclass
class UserData:
    """A stored user. The password field holds the bcrypt hash."""

    id: str
    username: str
    full_name: str
    password: str = field(default="", repr=False)
    refresh_token: Optional[str] = field(default=None, repr=False)

    def to_public_dict(self) -> dict:
        """User fields safe to return to clients."""
        return {"id": self.id, "username": self.username, "full_name": self.full_name}

    @classmethod
    def from_row(cls, row: dict) -> "UserData":
        return cls(
            id=row["id"],
            username=row["username"],
            full_name=row["full_name"],
            password=row.get("password") or "",
            refresh_token=row.get("refresh_token"),
        )


@dataclass
class TokenPair:
    """Access and refresh tokens issued together."""

    access_token: str
    refresh_token: str

    def to_dict(self) -> dict:
        return {"access_token": self.access_token, "refresh_token": self.refresh_token}


@dataclass
class WatchlistEntry:
    """A movie saved to a user's watchlist."""

    id: str
    user_id: str
    movie: MovieData
    created_at: Optional[datetime] = None

    def to_view(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "movies": [self.movie.to_view()],
            "created_at": self.created_at,
        }


@dataclass
class SyncResult:
    """Result of a provider synchronization run."""

    success: bool
    message: str
    data: Optional[dict] = None

    def to_dict(self) -> dict:
        result = {"success": self.success, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


def _to_float(value) -> Optional[float]:
    # MySQL returns DECIMAL columns as Decimal
    if value is None:
        return None
    return float(value)
