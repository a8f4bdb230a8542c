"""
Rating transaction tests.

Ratings go through the real SQLite database so the aggregate stored on
the movie row can be compared with what the ratings table says.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor
from sqlalchemy.exc import IntegrityError

from conftest import create_user
from movie_catalog.exceptions import MovieNotFoundError, NotFoundError
from movie_catalog.models import average_from_tenths, round_rating


def stored_aggregate(db, movie_id):
    movie = db.get_movie(movie_id)
    return movie.average_rating, movie.rating_count


class TestRatingScenario:
    """A movie collects ratings from several users, one of whom changes their mind."""

    def test_full_scenario(self, seeded_db, movie_ids):
        movie_id = movie_ids["Inception"]
        ann, bob, cat = (create_user(seeded_db, name) for name in ("ann", "bob", "cat"))

        seeded_db.rate_movie(movie_id, ann.id, 8.0)
        result = seeded_db.rate_movie(movie_id, bob.id, 6.0)
        assert (result.average_rating, result.rating_count) == (7.0, 2)

        result = seeded_db.rate_movie(movie_id, cat.id, 10.0)
        assert (result.average_rating, result.rating_count) == (8.0, 3)
        assert result.created is True
        assert result.message == "Movie rated successfully"

        result = seeded_db.rate_movie(movie_id, cat.id, 4.0)
        assert (result.average_rating, result.rating_count) == (6.0, 3)
        assert result.created is False
        assert result.message == "Movie rating updated successfully"

        assert stored_aggregate(seeded_db, movie_id) == (6.0, 3)

    def test_first_rating_sets_aggregate(self, seeded_db, movie_ids):
        user = create_user(seeded_db, "ann")

        result = seeded_db.rate_movie(movie_ids["Fight Club"], user.id, 7.5)

        assert result.to_dict() == {
            "average_rating": 7.5,
            "rating_count": 1,
            "message": "Movie rated successfully",
        }

    def test_unrated_movie_has_no_average(self, seeded_db, movie_ids):
        assert stored_aggregate(seeded_db, movie_ids["Superbad"]) == (None, 0)


class TestRatingInvariants:
    """The stored aggregate always matches AVG/COUNT over the ratings table."""

    def test_stored_aggregate_matches_live_aggregate(self, seeded_db, movie_ids):
        movie_id = movie_ids["Interstellar"]
        values = [9.5, 7.0, 8.3, 6.1]
        for i, value in enumerate(values):
            user = create_user(seeded_db, f"user{i}")
            seeded_db.rate_movie(movie_id, user.id, value)
            assert stored_aggregate(seeded_db, movie_id) == seeded_db.get_rating_stats(movie_id)

        assert stored_aggregate(seeded_db, movie_id) == (round_rating(sum(values) / len(values)), 4)

    def test_same_rating_twice_does_not_duplicate(self, seeded_db, movie_ids):
        movie_id = movie_ids["Inception"]
        user = create_user(seeded_db, "ann")

        first = seeded_db.rate_movie(movie_id, user.id, 9.0)
        second = seeded_db.rate_movie(movie_id, user.id, 9.0)

        assert first.rating_count == second.rating_count == 1
        assert second.created is False
        assert seeded_db.get_user_rating(user.id, movie_id) == 9.0

    def test_ratings_of_other_movies_are_independent(self, seeded_db, movie_ids):
        user = create_user(seeded_db, "ann")

        seeded_db.rate_movie(movie_ids["Inception"], user.id, 9.0)
        seeded_db.rate_movie(movie_ids["Fight Club"], user.id, 3.0)

        assert stored_aggregate(seeded_db, movie_ids["Inception"]) == (9.0, 1)
        assert stored_aggregate(seeded_db, movie_ids["Fight Club"]) == (3.0, 1)

    def test_average_rounds_half_up(self, seeded_db, movie_ids):
        movie_id = movie_ids["Superbad"]
        # (8.0 + 8.5) / 2 = 8.25
        for name, value in (("ann", 8.0), ("bob", 8.5)):
            seeded_db.rate_movie(movie_id, create_user(seeded_db, name).id, value)

        assert stored_aggregate(seeded_db, movie_id) == (8.3, 2)

    def test_average_of_float_inexact_ratings(self, seeded_db, movie_ids):
        movie_id = movie_ids["Superbad"]
        # Exact mean 3.35; a binary float AVG gives 3.3499999999999996
        for name, value in (("ann", 1.1), ("bob", 5.6)):
            seeded_db.rate_movie(movie_id, create_user(seeded_db, name).id, value)

        assert stored_aggregate(seeded_db, movie_id) == (3.4, 2)
        assert seeded_db.get_rating_stats(movie_id) == (3.4, 2)


class TestRatingFailures:
    """Failed submissions leave nothing behind."""

    def test_unknown_movie_raises_not_found(self, seeded_db):
        user = create_user(seeded_db, "ann")

        with pytest.raises(MovieNotFoundError) as exc_info:
            seeded_db.rate_movie("00000000-0000-0000-0000-000000000000", user.id, 8.0)

        assert isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.message == "Movie not found"
        assert seeded_db.get_status()["ratings"] == 0

    def test_storage_error_rolls_back_everything(self, seeded_db, movie_ids):
        movie_id = movie_ids["Inception"]
        seeded_db.rate_movie(movie_id, create_user(seeded_db, "ann").id, 8.0)

        # Unknown user violates the ratings -> users foreign key
        with pytest.raises(IntegrityError):
            seeded_db.rate_movie(movie_id, "no-such-user", 2.0)

        assert stored_aggregate(seeded_db, movie_id) == (8.0, 1)
        assert seeded_db.get_status()["ratings"] == 1


class TestConcurrentRatings:
    """Concurrent raters of one movie are serialized; no update is lost."""

    def test_distinct_users_rating_concurrently(self, seeded_db, movie_ids):
        movie_id = movie_ids["The Dark Knight"]
        users = [create_user(seeded_db, f"rater{i}") for i in range(10)]
        values = [float(1 + i % 10) for i in range(10)]

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [
                executor.submit(seeded_db.rate_movie, movie_id, user.id, value)
                for user, value in zip(users, values)
            ]
            results = [f.result() for f in futures]

        assert all(r.created for r in results)
        assert sorted(r.rating_count for r in results) == list(range(1, 11))
        assert stored_aggregate(seeded_db, movie_id) == (round_rating(sum(values) / len(values)), 10)

    def test_same_user_rating_concurrently_keeps_one_row(self, seeded_db, movie_ids):
        movie_id = movie_ids["Inception"]
        user = create_user(seeded_db, "ann")

        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(lambda v: seeded_db.rate_movie(movie_id, user.id, v), [5.0, 6.0, 7.0, 8.0]))

        assert sum(1 for r in results if r.created) == 1
        assert stored_aggregate(seeded_db, movie_id)[1] == 1
        assert seeded_db.get_user_rating(user.id, movie_id) in (5.0, 6.0, 7.0, 8.0)


class TestRoundRating:

    @pytest.mark.parametrize("value, expected", [
        (None, 0.0),
        (7, 7.0),
        (6.25, 6.3),
        (6.649999, 6.6),
        (20 / 3, 6.7),
        ("7.333333", 7.3),
    ])
    def test_round_rating(self, value, expected):
        assert round_rating(value) == expected

    @pytest.mark.parametrize("sum_tenths, count, expected", [
        (None, 0, 0.0),
        (67, 2, 3.4),
        (67.0, 2, 3.4),
        (165, 2, 8.3),
        (200, 3, 6.7),
        (100, 10, 1.0),
    ])
    def test_average_from_tenths(self, sum_tenths, count, expected):
        assert average_from_tenths(sum_tenths, count) == expected
