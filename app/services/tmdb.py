"""Client for The Movie Database (TMDB) catalog endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import ProviderError, ProviderUnavailable
from ..models import CatalogDetail, Movie, Series, parse_catalog_detail, parse_catalog_item
from ..utils import MediaKind, ensure_page, parse_media_kind, provider_path_segment

logger = logging.getLogger(__name__)

MOVIE_DETAIL_APPENDS = "credits,videos,images,similar"
SERIES_DETAIL_APPENDS = "credits,videos,images,similar,seasons"


class TMDBClient:
    """Read-only wrapper around the provider's list, search and detail endpoints.

    Every list call returns a fresh list for the requested page; nothing is
    cached and nothing is retried. Non-success statuses raise
    :class:`ProviderError`, transport failures raise :class:`ProviderUnavailable`.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client

    async def trending_movies(self, page: int = 1) -> list[Movie | Series]:
        return await self._list(
            "/trending/movie/week", kind="movie", params={"page": ensure_page(page)}
        )

    async def trending_series(self, page: int = 1) -> list[Movie | Series]:
        return await self._list(
            "/trending/tv/week", kind="series", params={"page": ensure_page(page)}
        )

    async def trending(self, kind: MediaKind, page: int = 1) -> list[Movie | Series]:
        if parse_media_kind(kind) == "movie":
            return await self.trending_movies(page)
        return await self.trending_series(page)

    async def movies_by_genre(self, genre_id: int, page: int = 1) -> list[Movie | Series]:
        return await self._list(
            "/discover/movie",
            kind="movie",
            params={"with_genres": genre_id, "page": ensure_page(page)},
        )

    async def series_by_genre(self, genre_id: int, page: int = 1) -> list[Movie | Series]:
        return await self._list(
            "/discover/tv",
            kind="series",
            params={"with_genres": genre_id, "page": ensure_page(page)},
        )

    async def search(
        self,
        query: str,
        *,
        page: int = 1,
        language: str | None = None,
        genre: int | str | None = None,
        year: int | str | None = None,
    ) -> list[Movie | Series]:
        """Search movies and series together; person results are dropped."""

        params: dict[str, Any] = {"query": query, "page": ensure_page(page)}
        if language:
            params["with_original_language"] = language
        if genre:
            params["with_genres"] = genre
        if year:
            params["primary_release_year"] = year

        payload = await self._get("/search/multi", params)
        items: list[Movie | Series] = []
        for entry in self._results(payload):
            media_type = entry.get("media_type")
            if media_type not in {"movie", "tv"}:
                continue
            item = self._parse_item(entry, parse_media_kind(media_type))
            if item is not None:
                items.append(item)
        return items

    async def item_detail(self, kind: MediaKind, provider_id: int) -> CatalogDetail:
        """Return the full detail payload for a movie or series."""

        resolved = parse_media_kind(kind)
        appends = MOVIE_DETAIL_APPENDS if resolved == "movie" else SERIES_DETAIL_APPENDS
        payload = await self._get(
            f"/{provider_path_segment(resolved)}/{int(provider_id)}",
            {"append_to_response": appends},
        )
        if not isinstance(payload, dict):
            raise ProviderError(502, "Unexpected detail payload")
        try:
            return parse_catalog_detail(payload, resolved)
        except ValidationError as exc:
            raise ProviderError(502, f"Malformed detail payload: {exc}") from exc

    async def _list(
        self, endpoint: str, *, kind: MediaKind, params: dict[str, Any]
    ) -> list[Movie | Series]:
        payload = await self._get(endpoint, params)
        items: list[Movie | Series] = []
        for entry in self._results(payload):
            item = self._parse_item(entry, kind)
            if item is not None:
                items.append(item)
        return items

    async def _get(self, endpoint: str, params: dict[str, Any]) -> Any:
        query = {**params, "api_key": self._settings.tmdb_api_key}
        if self._settings.tmdb_language:
            query.setdefault("language", self._settings.tmdb_language)
        try:
            response = await self._client.get(endpoint, params=query)
        except httpx.TimeoutException as exc:
            logger.warning("TMDB request to %s timed out", endpoint)
            raise ProviderUnavailable(f"TMDB request to {endpoint} timed out") from exc
        except httpx.TransportError as exc:
            logger.warning("TMDB request to %s failed: %s", endpoint, exc)
            raise ProviderUnavailable(f"TMDB is unreachable: {exc}") from exc

        if not response.is_success:
            message = self._error_message(response)
            logger.warning(
                "TMDB %s responded %s: %s", endpoint, response.status_code, message
            )
            raise ProviderError(response.status_code, message)

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(502, f"Non-JSON response from {endpoint}") from exc

    @staticmethod
    def _results(payload: Any) -> list[dict[str, Any]]:
        if not isinstance(payload, dict):
            return []
        results = payload.get("results") or []
        if not isinstance(results, list):
            return []
        return [entry for entry in results if isinstance(entry, dict)]

    @staticmethod
    def _parse_item(entry: dict[str, Any], kind: MediaKind) -> Movie | Series | None:
        try:
            return parse_catalog_item(entry, kind)
        except ValidationError:
            logger.debug("Skipping malformed TMDB %s entry: %s", kind, entry.get("id"))
            return None

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.reason_phrase or response.text or "Unknown error"
        if isinstance(data, dict):
            message = data.get("status_message") or data.get("message")
            if message:
                return str(message)
        return response.reason_phrase or "Unknown error"
