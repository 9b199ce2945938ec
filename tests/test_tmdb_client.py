from unittest import TestCase, mock

import requests

from domain.scan_errors import ConfigurationError, ExternalServiceError, RateLimitedError
from domain.scan_models import MediaType, SearchResult
from infrastructure.tmdb_client import PLACEHOLDER_POSTER, TMDBSearchClient, poster_url


def _response(status=200, payload=None, reason="OK"):
    response = mock.Mock()
    response.status_code = status
    response.ok = status < 400
    response.reason = reason
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


SEARCH_PAYLOAD = {
    "page": 1,
    "total_pages": 1,
    "results": [
        {"id": 155, "media_type": "movie", "title": "The Dark Knight", "release_date": "2008-07-16", "poster_path": "/dk.jpg"},
        {"id": 3894, "media_type": "person", "name": "Christian Bale"},
        {"id": 1396, "media_type": "tv", "name": "Breaking Bad", "first_air_date": "2008-01-20"},
    ],
}


class TMDBSearchClientTest(TestCase):
    def setUp(self) -> None:
        self.client = TMDBSearchClient("tmdb-key", base_url="https://tmdb.test/3/", language="fr-FR", timeout=4)

    def test_missing_key_is_a_configuration_error(self):
        for key in (None, "", "your_tmdb_api_key"):
            with self.subTest(key=key), self.assertRaises(ConfigurationError):
                TMDBSearchClient(key)

    def test_search_keeps_movies_and_tv_only(self):
        with mock.patch("infrastructure.tmdb_client.requests.get", return_value=_response(payload=SEARCH_PAYLOAD)) as get:
            results = self.client.search("dark knight")

        url = get.call_args[0][0]
        params = get.call_args[1]["params"]
        self.assertEqual(url, "https://tmdb.test/3/search/multi")
        self.assertEqual(params["query"], "dark knight")
        self.assertEqual(params["api_key"], "tmdb-key")
        self.assertEqual(params["language"], "fr-FR")
        self.assertEqual(params["page"], 1)

        self.assertEqual([r.id for r in results], [155, 1396])
        self.assertEqual(results[0].media_type, MediaType.MOVIE)
        self.assertEqual(results[1].title, "Breaking Bad")
        self.assertEqual(results[1].release_date, "2008-01-20")

    def test_empty_query_does_not_call_the_api(self):
        with mock.patch("infrastructure.tmdb_client.requests.get") as get:
            self.assertEqual(self.client.search("   "), [])
        get.assert_not_called()

    def test_error_mapping(self):
        cases = [
            (_response(401, {"status_code": 7, "status_message": "Invalid API key"}, "Unauthorized"), ConfigurationError),
            (_response(429, {"status_code": 25}, "Too Many Requests"), RateLimitedError),
            (_response(500, {"status_message": "Internal error"}, "Server Error"), ExternalServiceError),
        ]
        for response, expected in cases:
            with self.subTest(status=response.status_code):
                with mock.patch("infrastructure.tmdb_client.requests.get", return_value=response):
                    with self.assertRaises(expected):
                        self.client.search("alien")

    def test_network_failure_is_an_external_error(self):
        with mock.patch("infrastructure.tmdb_client.requests.get", side_effect=requests.Timeout("slow")):
            with self.assertRaises(ExternalServiceError):
                self.client.search("alien")

    def test_movie_details(self):
        payload = {
            "id": 155,
            "title": "The Dark Knight",
            "release_date": "2008-07-16",
            "runtime": 152,
            "genres": [{"id": 28, "name": "Action"}, {"id": 80, "name": "Crime"}],
            "vote_average": 8.5,
            "videos": {"results": [
                {"type": "Teaser", "site": "YouTube", "key": "teaser"},
                {"type": "Trailer", "site": "YouTube", "key": "EXeTwQWrcwY"},
            ]},
        }
        with mock.patch("infrastructure.tmdb_client.requests.get", return_value=_response(payload=payload)) as get:
            details = self.client.get_details(SearchResult(id=155, title="The Dark Knight"))

        self.assertEqual(get.call_args[0][0], "https://tmdb.test/3/movie/155")
        self.assertEqual(get.call_args[1]["params"]["append_to_response"], "videos,credits")
        self.assertEqual(details.year, 2008)
        self.assertEqual(details.runtime, 152)
        self.assertEqual(details.genres, ["Action", "Crime"])
        self.assertEqual(details.trailer_key, "EXeTwQWrcwY")

    def test_tv_details_use_first_episode_runtime(self):
        payload = {
            "id": 1396,
            "name": "Breaking Bad",
            "first_air_date": "2008-01-20",
            "episode_run_time": [45, 47],
            "number_of_seasons": 5,
            "number_of_episodes": 62,
        }
        with mock.patch("infrastructure.tmdb_client.requests.get", return_value=_response(payload=payload)) as get:
            details = self.client.get_details(SearchResult(id=1396, title="Breaking Bad", media_type=MediaType.TV))

        self.assertEqual(get.call_args[0][0], "https://tmdb.test/3/tv/1396")
        self.assertEqual(details.title, "Breaking Bad")
        self.assertEqual(details.runtime, 45)
        self.assertEqual(details.number_of_seasons, 5)
        self.assertIsNone(details.trailer_key)

    def test_details_not_found(self):
        response = _response(404, {"status_code": 34, "status_message": "The resource could not be found."}, "Not Found")
        with mock.patch("infrastructure.tmdb_client.requests.get", return_value=response):
            with self.assertRaises(ExternalServiceError) as ctx:
                self.client.get_details(SearchResult(id=1, title="", media_type=MediaType.TV))
        self.assertEqual(ctx.exception.message, "Série introuvable.")


def test_poster_url():
    assert poster_url("/dk.jpg") == "https://image.tmdb.org/t/p/w500/dk.jpg"
    assert poster_url("/dk.jpg", "w154") == "https://image.tmdb.org/t/p/w154/dk.jpg"
    assert poster_url(None) == PLACEHOLDER_POSTER
