"""Tests for the TMDB catalog client."""

from __future__ import annotations

from typing import cast

import httpx
import pytest

from app.errors import InvalidRequestError, ProviderError, ProviderUnavailable
from app.models import MovieDetail, SeriesDetail
from app.services.tmdb import TMDBClient

from conftest import build_settings

pytestmark = pytest.mark.anyio

BASE_URL = "https://api.example.com/3"


def _client(http_client: httpx.AsyncClient, **overrides) -> TMDBClient:
    return TMDBClient(build_settings(**overrides), http_client)


def test_client_requires_api_key() -> None:
    with pytest.raises(ValueError, match="TMDB API key"):
        TMDBClient(build_settings(TMDB_API_KEY=""), cast(httpx.AsyncClient, object()))


async def test_trending_movies_sends_key_and_page() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "page": 2,
                "results": [
                    {
                        "id": 11,
                        "title": "Arrival",
                        "popularity": 55.5,
                        "vote_average": 7.9,
                        "genre_ids": [18, 878],
                        "release_date": "2016-11-11",
                    },
                    {"title": "No identifier"},
                ],
            },
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        items = await _client(http_client).trending_movies(2)

    assert [item.provider_id for item in items] == [11]
    assert items[0].kind == "movie"
    assert items[0].display_title() == "Arrival"
    assert items[0].genre_ids == [18, 878]
    assert requests[0].url.path == "/3/trending/movie/week"
    assert requests[0].url.params["api_key"] == "test-key"
    assert requests[0].url.params["page"] == "2"


async def test_series_by_genre_maps_to_series_items() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/discover/tv"
        assert request.url.params["with_genres"] == "35"
        return httpx.Response(
            200,
            json={"results": [{"id": 7, "name": "Parks", "first_air_date": "2009-04-09"}]},
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        items = await _client(http_client).series_by_genre(35)

    assert items[0].kind == "series"
    assert items[0].display_title() == "Parks"
    assert items[0].released_on() is not None


async def test_search_drops_people_and_passes_filters() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/search/multi"
        assert request.url.params["query"] == "star"
        assert request.url.params["with_original_language"] == "en"
        assert request.url.params["with_genres"] == "878"
        assert request.url.params["primary_release_year"] == "1977"
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": 1, "media_type": "movie", "title": "Star Wars"},
                    {"id": 2, "media_type": "person", "name": "Someone"},
                    {"id": 3, "media_type": "tv", "name": "Star Trek"},
                ]
            },
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        items = await _client(http_client).search(
            "star", language="en", genre=878, year=1977
        )

    assert [(item.kind, item.provider_id) for item in items] == [
        ("movie", 1),
        ("series", 3),
    ]


async def test_item_detail_dispatches_on_kind() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/3/tv/99":
            assert "seasons" in request.url.params["append_to_response"]
            return httpx.Response(
                200,
                json={
                    "id": 99,
                    "name": "Dark",
                    "genres": [{"id": 18, "name": "Drama"}, {"id": 9648, "name": "Mystery"}],
                    "number_of_seasons": 3,
                    "seasons": [{"season_number": 1, "episode_count": 10}],
                },
            )
        assert request.url.path == "/3/movie/5"
        return httpx.Response(
            200,
            json={
                "id": 5,
                "title": "Heat",
                "genres": [{"id": 80, "name": "Crime"}],
                "credits": {"cast": [{"name": "Al Pacino"}, {"name": "Robert De Niro"}]},
            },
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        client = _client(http_client)
        show = await client.item_detail("tv", 99)
        film = await client.item_detail("movie", 5)

    assert isinstance(show, SeriesDetail)
    assert show.genre_id_list() == [18, 9648]
    assert show.number_of_seasons == 3
    assert show.seasons[0].episode_count == 10
    assert isinstance(film, MovieDetail)
    assert film.genre_ids == [80]
    assert film.cast_names() == ["Al Pacino", "Robert De Niro"]


async def test_non_success_status_raises_provider_error() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401, json={"status_code": 7, "status_message": "Invalid API key"}
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        with pytest.raises(ProviderError) as excinfo:
            await _client(http_client).trending_series()

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Invalid API key"


async def test_timeout_raises_provider_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        with pytest.raises(ProviderUnavailable):
            await _client(http_client).movies_by_genre(28)


async def test_connection_failure_raises_provider_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        with pytest.raises(ProviderUnavailable):
            await _client(http_client).item_detail("movie", 1)


async def test_page_below_one_is_rejected_without_request() -> None:
    def handler(_: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        raise AssertionError("No request expected")

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        with pytest.raises(InvalidRequestError):
            await _client(http_client).trending_movies(0)


async def test_unknown_kind_is_rejected() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        with pytest.raises(InvalidRequestError):
            await _client(http_client).item_detail("podcast", 1)
