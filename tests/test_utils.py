from datetime import date

import pytest

from app.errors import InvalidRequestError
from app.genres import genre_name, genre_payload
from app.utils import (
    build_image_url,
    ensure_page,
    parse_media_kind,
    parse_release_date,
    provider_path_segment,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("movie", "movie"),
        ("Movies", "movie"),
        ("tv", "series"),
        (" tvshows ", "series"),
        ("series", "series"),
    ],
)
def test_parse_media_kind_aliases(raw, expected):
    assert parse_media_kind(raw) == expected


def test_parse_media_kind_rejects_unknown():
    with pytest.raises(InvalidRequestError):
        parse_media_kind("podcast")
    with pytest.raises(InvalidRequestError):
        parse_media_kind(None)


def test_provider_path_segment():
    assert provider_path_segment("movie") == "movie"
    assert provider_path_segment("series") == "tv"


def test_parse_release_date_variants():
    assert parse_release_date("2024-02-29") == date(2024, 2, 29)
    assert parse_release_date("2024-02-29T12:00:00Z") == date(2024, 2, 29)
    assert parse_release_date("2024") is None
    assert parse_release_date("2023-02-30") is None
    assert parse_release_date(None) is None


def test_build_image_url():
    assert build_image_url("/a.jpg", "https://img/t/p/", "w500") == "https://img/t/p/w500/a.jpg"
    assert build_image_url("https://cdn/a.jpg", "https://img", "w500") == "https://cdn/a.jpg"
    assert build_image_url("", "https://img", "w500") is None


def test_ensure_page():
    assert ensure_page(3) == 3
    assert ensure_page("2") == 2
    with pytest.raises(InvalidRequestError):
        ensure_page(0)
    with pytest.raises(InvalidRequestError):
        ensure_page("next")


def test_genre_name_falls_back_to_identifier():
    assert genre_name(28) == "Action"
    assert genre_name(424242) == "Genre 424242"
    assert genre_name(1, {1: "Custom"}) == "Custom"


def test_genre_payload_lists_every_genre():
    payload = genre_payload({1: "One", 2: "Two"})
    assert payload == [{"id": 1, "name": "One"}, {"id": 2, "name": "Two"}]
