"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, AsyncIterator

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from app.config import Settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.errors import ProviderError  # noqa: E402
from app.models import (  # noqa: E402
    CatalogDetail,
    Movie,
    Series,
    parse_catalog_detail,
    parse_catalog_item,
)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object with defaults suitable for tests."""

    base: dict[str, Any] = {"TMDB_API_KEY": "test-key"}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
async def database(tmp_path, anyio_backend) -> AsyncIterator[Database]:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'cinefeed.db'}")
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


def movie(provider_id: int, **fields: Any) -> Movie | Series:
    payload = {"id": provider_id, "title": f"Movie {provider_id}", **fields}
    return parse_catalog_item(payload, "movie")


def series(provider_id: int, **fields: Any) -> Movie | Series:
    payload = {"id": provider_id, "name": f"Series {provider_id}", **fields}
    return parse_catalog_item(payload, "series")


class FakeCatalog:
    """In-memory stand-in for :class:`app.services.tmdb.TMDBClient`.

    Failures are configured by assigning exceptions to ``failures`` keyed by
    the method name, ``("detail", provider_id)`` for detail lookups, or
    ``(method, genre_id)`` for a single genre discovery call.
    """

    def __init__(self) -> None:
        self.trending_movie_items: list[Movie | Series] = []
        self.trending_series_items: list[Movie | Series] = []
        self.movie_genre_pools: dict[int, list[Movie | Series]] = {}
        self.series_genre_pools: dict[int, list[Movie | Series]] = {}
        self.details: dict[tuple[str, int], dict[str, Any]] = {}
        self.failures: dict[object, Exception] = {}
        self.calls: list[tuple[Any, ...]] = []

    def add_detail(self, kind: str, provider_id: int, genre_ids: list[int], **fields: Any) -> None:
        self.details[(kind, provider_id)] = {
            "id": provider_id,
            "genres": [{"id": genre_id, "name": f"G{genre_id}"} for genre_id in genre_ids],
            **fields,
        }

    def _maybe_fail(self, key: object) -> None:
        error = self.failures.get(key)
        if error is not None:
            raise error

    async def trending_movies(self, page: int = 1) -> list[Movie | Series]:
        self.calls.append(("trending_movies", page))
        self._maybe_fail("trending_movies")
        return list(self.trending_movie_items)

    async def trending_series(self, page: int = 1) -> list[Movie | Series]:
        self.calls.append(("trending_series", page))
        self._maybe_fail("trending_series")
        return list(self.trending_series_items)

    async def trending(self, kind: str, page: int = 1) -> list[Movie | Series]:
        if kind == "movie":
            return await self.trending_movies(page)
        return await self.trending_series(page)

    async def movies_by_genre(self, genre_id: int, page: int = 1) -> list[Movie | Series]:
        self.calls.append(("movies_by_genre", genre_id, page))
        self._maybe_fail("movies_by_genre")
        self._maybe_fail(("movies_by_genre", genre_id))
        return list(self.movie_genre_pools.get(genre_id, []))

    async def series_by_genre(self, genre_id: int, page: int = 1) -> list[Movie | Series]:
        self.calls.append(("series_by_genre", genre_id, page))
        self._maybe_fail("series_by_genre")
        self._maybe_fail(("series_by_genre", genre_id))
        return list(self.series_genre_pools.get(genre_id, []))

    async def item_detail(self, kind: str, provider_id: int) -> CatalogDetail:
        self.calls.append(("item_detail", kind, provider_id))
        self._maybe_fail(("detail", provider_id))
        payload = self.details.get((kind, provider_id))
        if payload is None:
            raise ProviderError(404, f"No fake detail for {kind} {provider_id}")
        return parse_catalog_detail(payload, kind)  # type: ignore[arg-type]
