"""Weighted-genre recommendations derived from a profile's ratings."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Mapping, Sequence

from ..config import Settings
from ..db_models import Review
from ..errors import InvalidRequestError, NotFound, ProviderError, ProviderUnavailable
from ..models import GenreAffinity, Movie, RatingSignal, Series
from ..utils import parse_media_kind
from .reconciler import CatalogReconciler
from .reviews import ReviewService
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Deterministic genre-affinity recommender.

    The profile's ratings are turned into per-genre average weights, the
    strongest genres are used to pull discovery pages from the provider, and
    the pooled titles are interleaved, filtered and deduplicated. Nothing is
    cached: every call recomputes from the current history and catalog.
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

    async def recommend(
        self, profile_id: int, limit: int | None = None
    ) -> list[Movie | Series]:
        size = self._settings.default_page_size if limit is None else limit
        if size < 1:
            raise InvalidRequestError("Limit must be 1 or greater")

        await self._reviews.get_profile(profile_id)
        history = await self._reviews.list_by_profile(profile_id)
        if not history:
            return []

        signals, rated_provider_ids = await self._rating_signals(history)
        affinities = self.genre_affinity(signals)
        genres = self.top_genres(affinities, self._settings.recommendation_genre_count)
        if not genres:
            logger.info("Profile %s has ratings but no resolvable genres", profile_id)
            return []

        logger.debug("Profile %s top genres: %s", profile_id, genres)
        pools = await asyncio.gather(*(self._genre_pool(genre_id) for genre_id in genres))

        candidates: list[Movie | Series] = []
        for movies, series in pools:
            candidates.extend(
                self.interleave(
                    movies, series, self._settings.recommendation_pairs_per_genre
                )
            )
        return self.finalize(candidates, rated_provider_ids, size)

    async def _rating_signals(
        self, history: Sequence[Review]
    ) -> tuple[list[RatingSignal], set[int]]:
        """Resolve genres for each rated title, skipping titles that fail."""

        resolved = await asyncio.gather(*(self._signal_for(review) for review in history))
        signals: list[RatingSignal] = []
        rated_provider_ids: set[int] = set()
        for provider_id, signal in resolved:
            if provider_id is not None:
                rated_provider_ids.add(provider_id)
            if signal is not None:
                signals.append(signal)
        return signals, rated_provider_ids

    async def _signal_for(self, review: Review) -> tuple[int | None, RatingSignal | None]:
        try:
            record = await self._reconciler.by_local_id(review.content_id)
        except NotFound:
            logger.warning(
                "Review %s points at missing content %s; skipping",
                review.id,
                review.content_id,
            )
            return None, None

        try:
            detail = await self._catalog.item_detail(
                parse_media_kind(record.media_kind), record.provider_id
            )
        except (ProviderError, ProviderUnavailable) as exc:
            logger.warning(
                "Could not load genres for content %s (%s %s): %s",
                record.id,
                record.media_kind,
                record.provider_id,
                exc,
            )
            return record.provider_id, None

        return record.provider_id, RatingSignal(
            content_id=record.id,
            rating=review.rating,
            genre_ids=detail.genre_id_list(),
            provider_id=record.provider_id,
        )

    async def _genre_pool(
        self, genre_id: int
    ) -> tuple[list[Movie | Series], list[Movie | Series]]:
        """Discovery pools for one genre; a failing genre contributes nothing."""

        try:
            movies, series = await asyncio.gather(
                self._catalog.movies_by_genre(genre_id, 1),
                self._catalog.series_by_genre(genre_id, 1),
            )
        except (ProviderError, ProviderUnavailable) as exc:
            logger.warning("Skipping genre %s for recommendations: %s", genre_id, exc)
            return [], []
        return movies, series

    @staticmethod
    def genre_affinity(signals: Iterable[RatingSignal]) -> dict[int, GenreAffinity]:
        """Average rating weight per genre, keyed in first-seen order."""

        affinities: dict[int, GenreAffinity] = {}
        for signal in signals:
            for genre_id in signal.genre_ids:
                affinity = affinities.get(genre_id)
                if affinity is None:
                    affinity = affinities[genre_id] = GenreAffinity(genre_id)
                affinity.add(signal.weight)
        return affinities

    @staticmethod
    def top_genres(affinities: Mapping[int, GenreAffinity], count: int) -> list[int]:
        # sorted() is stable, so equal averages keep first-seen order.
        ranked = sorted(
            affinities.values(), key=lambda affinity: affinity.average, reverse=True
        )
        return [affinity.genre_id for affinity in ranked[:count]]

    @staticmethod
    def interleave(
        movies: Sequence[Movie | Series],
        series: Sequence[Movie | Series],
        pairs: int,
    ) -> list[Movie | Series]:
        """Alternate movie/series pairs, stopping at the shorter pool."""

        merged: list[Movie | Series] = []
        for index in range(min(len(movies), len(series), pairs)):
            merged.append(movies[index])
            merged.append(series[index])
        return merged

    @staticmethod
    def finalize(
        candidates: Iterable[Movie | Series],
        excluded_provider_ids: set[int],
        limit: int,
    ) -> list[Movie | Series]:
        """Drop already-rated titles, keep first occurrences, cap at ``limit``."""

        seen: set[int] = set()
        results: list[Movie | Series] = []
        for item in candidates:
            if item.provider_id in excluded_provider_ids or item.provider_id in seen:
                continue
            seen.add(item.provider_id)
            results.append(item)
            if len(results) >= limit:
                break
        return results
