"""Merge policies that combine movie and series listings from the provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..config import Settings
from ..errors import InvalidRequestError
from ..models import CatalogDetail, Movie, Series
from ..utils import MediaKind, ensure_page, parse_media_kind
from .reconciler import CatalogReconciler
from .reviews import ReviewService
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class AggregationEngine:
    """Fans out trending lookups and ranks the combined result.

    All policies are fail-fast: the first provider error aborts the whole
    operation and is raised unchanged.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: TMDBClient,
        reconciler: CatalogReconciler,
        reviews: ReviewService,
    ):
        self._settings = settings
        self._catalog = catalog
        self._reconciler = reconciler
        self._reviews = reviews

    async def newest(self, limit: int | None = None) -> list[Movie | Series]:
        """Trending movies and series, most recently released first.

        Titles without a usable release date trail the dated ones in their
        original relative order.
        """

        size = self._resolve_limit(limit)
        combined = await self._trending_pool()
        dated = [item for item in combined if item.released_on() is not None]
        undated = [item for item in combined if item.released_on() is None]
        dated.sort(key=lambda item: item.released_on(), reverse=True)
        return (dated + undated)[:size]

    async def most_popular(self, limit: int | None = None) -> list[Movie | Series]:
        """Trending movies and series by descending popularity.

        Equal scores keep their pool order, so movies win ties against series.
        """

        size = self._resolve_limit(limit)
        combined = await self._trending_pool()
        ranked = sorted(combined, key=lambda item: item.popularity, reverse=True)
        return ranked[:size]

    async def most_reviewed(
        self, page: int = 1, limit: int | None = None
    ) -> list[CatalogDetail]:
        """Locally known titles ranked by review count, with provider details."""

        size = self._resolve_limit(limit)
        offset = (ensure_page(page) - 1) * size

        records = await self._reconciler.list_records()
        counts = await self._reviews.review_counts()
        ranked = sorted(records, key=lambda record: counts.get(record.id, 0), reverse=True)
        selected = ranked[offset : offset + size]
        if not selected:
            return []

        logger.debug(
            "Fetching details for %s most reviewed titles (page %s)", len(selected), page
        )
        details = await asyncio.gather(
            *(
                self._catalog.item_detail(parse_media_kind(record.media_kind), record.provider_id)
                for record in selected
            )
        )
        return list(details)

    async def trending(
        self, kind: MediaKind | str, page: int = 1, limit: int | None = None
    ) -> list[Movie | Series]:
        """A single trending page for one media kind."""

        size = self._resolve_limit(limit)
        items = await self._catalog.trending(parse_media_kind(kind), page)
        return items[:size]

    async def _trending_pool(self) -> Sequence[Movie | Series]:
        movies, series = await asyncio.gather(
            self._catalog.trending_movies(1),
            self._catalog.trending_series(1),
        )
        return [*movies, *series]

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._settings.default_page_size
        if limit < 1:
            raise InvalidRequestError("Limit must be 1 or greater")
        return limit
