"""
TMDB client tests with the HTTP session mocked out.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from movie_catalog.client import TMDBClient
from movie_catalog.exceptions import ProviderError


def make_response(status_code: int, payload: dict = None, headers: dict = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.headers = headers or {}
    return response


@pytest.fixture
def client(test_config):
    client = TMDBClient(test_config)
    client.session = MagicMock()
    return client


class TestParsing:

    def test_get_genres(self, client):
        client.session.get.return_value = make_response(
            200, {"genres": [{"id": 28, "name": "Action"}, {"id": 18, "name": "Drama"}]}
        )

        genres = client.get_genres()

        assert [(g.id, g.name) for g in genres] == [(28, "Action"), (18, "Drama")]
        url = client.session.get.call_args[0][0]
        assert url == "https://api.themoviedb.org/3/genre/movie/list"

    def test_get_popular_movies(self, client):
        client.session.get.return_value = make_response(200, {
            "page": 2,
            "total_pages": 40,
            "results": [{
                "id": 27205,
                "title": "Inception",
                "overview": "Dreams within dreams.",
                "release_date": "2010-07-16",
                "popularity": 90.5,
                "vote_average": 8.8,
                "vote_count": 35000,
                "genre_ids": [28, 878],
            }, {
                "id": 1,
                "title": "No Date",
                "release_date": "",
            }],
        })

        page = client.get_movies(2)

        assert page.current_page == 2
        assert page.total_pages == 40
        inception, undated = page.movies
        assert inception.tmdb_id == 27205
        assert inception.release_date == date(2010, 7, 16)
        assert inception.genre_ids == [28, 878]
        assert undated.release_date is None
        assert undated.genre_ids == []
        assert client.session.get.call_args[1]["params"] == {"language": "en-US", "page": 2}

    def test_provider_name(self, client):
        assert client.get_provider_name() == "tmdb"


class TestErrors:

    @pytest.mark.parametrize("status_code", [401, 404])
    def test_client_error_raises(self, client, status_code):
        client.session.get.return_value = make_response(status_code)

        with pytest.raises(ProviderError, match=f"status {status_code}"):
            client.get_genres()

        assert client.session.get.call_count == 1

    @patch("movie_catalog.client.time.sleep")
    def test_server_error_retried_until_exhausted(self, mock_sleep, client):
        client.session.get.return_value = make_response(503)

        with pytest.raises(ProviderError, match="after 3 attempts"):
            client.get_genres()

        assert client.session.get.call_count == 3
        assert mock_sleep.call_count == 3

    @patch("movie_catalog.client.time.sleep")
    def test_rate_limited_then_succeeds(self, mock_sleep, client):
        client.session.get.side_effect = [
            make_response(429, headers={"Retry-After": "1"}),
            make_response(200, {"genres": []}),
        ]

        assert client.get_genres() == []
        assert mock_sleep.call_count == 1

    @patch("movie_catalog.client.time.sleep")
    def test_timeout_then_succeeds(self, mock_sleep, client):
        client.session.get.side_effect = [
            requests.exceptions.Timeout(),
            make_response(200, {"genres": [{"id": 35, "name": "Comedy"}]}),
        ]

        assert [g.name for g in client.get_genres()] == ["Comedy"]

    def test_other_request_error_raises(self, client):
        client.session.get.side_effect = requests.exceptions.InvalidURL("bad url")

        with pytest.raises(ProviderError):
            client.get_genres()


class TestConnection:

    def test_connection_ok(self, client):
        client.session.get.return_value = make_response(200, {"genres": []})

        assert client.test_connection() is True

    def test_connection_failure(self, client):
        client.session.get.return_value = make_response(401)

        assert client.test_connection() is False
