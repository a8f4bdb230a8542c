"""
Provider to database synchronization.

Copies genres and popular movies from the registered provider into the
catalog tables, skipping anything already stored.
"""

import time
from typing import Dict, List

from .config import Config
from .database import DatabaseManager
from .models import ProviderMovie, SyncResult
from .provider import MoviesProvider
from .utils import Timer, progress_bar, setup_logger


class DatabaseSync:
    """
    Synchronizes genres and movies from a MoviesProvider.

    Every operation returns a SyncResult; failures are reported in the
    result rather than raised.
    """

    def __init__(
        self,
        provider: MoviesProvider,
        db: DatabaseManager,
        config: Config,
        retry_delay: float = 2.0,
        show_progress: bool = False,
    ):
        self.provider = provider
        self.db = db
        self.config = config
        self.retry_delay = retry_delay
        self.show_progress = show_progress
        self.logger = setup_logger("sync", config.log_dir)

    # ============ GENRES ============

    def sync_genres(self) -> SyncResult:
        """Insert provider genres whose IDs are not stored yet."""
        try:
            genres = self.provider.get_genres()

            if not genres:
                return SyncResult(True, "No genres found to sync", {"new_genres": 0})

            existing_ids = self.db.get_all_genre_ids()
            new_genres = [g for g in genres if g.id not in existing_ids]

            if not new_genres:
                return SyncResult(True, "All genres are already up to date", {"new_genres": 0})

            self.db.insert_genres(new_genres)
            self.logger.info(f"Synced {len(new_genres)} new genres")
            return SyncResult(
                True,
                f"Successfully synced {len(new_genres)} new genres",
                {"new_genres": len(new_genres)},
            )
        except Exception as e:
            self.logger.exception("Genre sync failed")
            return SyncResult(False, f"Failed to sync genres: {e}")

    # ============ MOVIES ============

    def sync_movies(self) -> SyncResult:
        """
        Fetch popular movie pages and store the movies not seen before.

        Pages are fetched from 1 up to the provider's total_pages, capped
        at config.max_pages. A failed page is skipped after a short pause.
        """
        try:
            with Timer("Movie sync") as timer:
                all_movies = self._fetch_pages()

                if not all_movies:
                    return SyncResult(
                        False,
                        "No movies could be fetched from the provider. "
                        "This may be due to network issues or API problems.",
                        {"new_movies": 0, "total_processed": 0},
                    )

                self.logger.info(f"Total movies fetched: {len(all_movies)}")

                tmdb_ids = [m.tmdb_id for m in all_movies if m.tmdb_id is not None]
                existing_ids = self.db.get_existing_tmdb_ids(tmdb_ids)
                new_movies = [m for m in all_movies if m.tmdb_id and m.tmdb_id not in existing_ids]

                if not new_movies:
                    return SyncResult(
                        True,
                        "All movies are already up to date",
                        {"new_movies": 0, "total_processed": len(all_movies)},
                    )

                saved = self._save_movies(self._unique_valid(new_movies))

            self.logger.info(f"Synced {saved} new movies ({timer})")
            return SyncResult(
                True,
                f"Successfully synced {saved} new movies",
                {"new_movies": saved, "total_processed": len(all_movies)},
            )
        except Exception as e:
            self.logger.exception("Movie sync failed")
            return SyncResult(False, f"Failed to sync movies: {e}")

    def _fetch_pages(self) -> List[ProviderMovie]:
        all_movies: List[ProviderMovie] = []
        max_pages = self.config.max_pages
        page = 1
        total_pages = 1

        while page <= total_pages and page <= max_pages:
            try:
                result = self.provider.get_movies(page)
            except Exception as e:
                self.logger.error(f"Failed to fetch page {page}: {e}")
                page += 1
                if page > max_pages:
                    break
                time.sleep(self.retry_delay)
                continue

            if not result or not result.movies:
                self.logger.warning(f"No movies found on page {page}")
                break

            self.logger.info(f"Fetched page {page}/{result.total_pages}")
            all_movies.extend(result.movies)
            total_pages = result.total_pages
            page += 1

        return all_movies

    def _unique_valid(self, movies: List[ProviderMovie]) -> List[ProviderMovie]:
        """Drop movies without title or provider ID and repeats within the batch."""
        unique: Dict[int, ProviderMovie] = {}
        for movie in movies:
            if movie.title and movie.tmdb_id and movie.tmdb_id not in unique:
                unique[movie.tmdb_id] = movie
        return list(unique.values())

    def _save_movies(self, movies: List[ProviderMovie]) -> int:
        known_genres = self.db.get_all_genre_ids()
        saved = 0

        for movie in progress_bar(movies, desc="Saving movies", unit="movie", disable=not self.show_progress):
            genre_ids = [g for g in movie.genre_ids if g in known_genres]
            try:
                self.db.save_provider_movie(movie, genre_ids)
                saved += 1
            except Exception as e:
                self.logger.warning(f"Failed to save movie with tmdb_id {movie.tmdb_id}: {e}")

        return saved

    # ============ ALL ============

    def sync_all(self) -> SyncResult:
        """Sync genres, then movies. Stops at the first failure."""
        genres_result = self.sync_genres()
        if not genres_result.success:
            return genres_result

        movies_result = self.sync_movies()
        if not movies_result.success:
            return movies_result

        new_genres = (genres_result.data or {}).get("new_genres", 0)
        new_movies = (movies_result.data or {}).get("new_movies", 0)
        return SyncResult(
            True,
            f"Successfully synced {new_genres} genres and {new_movies} movies",
            {
                "new_genres": new_genres,
                "new_movies": new_movies,
                "total_processed": (movies_result.data or {}).get("total_processed", 0),
            },
        )
