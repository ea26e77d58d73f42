"""Materialise provider titles as local content records on first reference."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import ContentRecord
from ..errors import NotFound
from ..models import CatalogEntry
from ..utils import MediaKind, ensure_page, parse_media_kind
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class CatalogReconciler:
    """Maps ephemeral provider items onto durable :class:`ContentRecord` rows.

    Records are created once and never refreshed, so their snapshot fields may
    drift from the provider over time. Uniqueness of (provider ID, media kind)
    is enforced by the table's unique constraint; a losing concurrent insert
    falls back to reading the winner's row.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        catalog: TMDBClient | None = None,
    ):
        self._session_factory = session_factory
        self._catalog = catalog

    async def reconcile(
        self,
        item: CatalogEntry,
        kind: MediaKind | str | None = None,
        *,
        added_by: int | None = None,
    ) -> ContentRecord:
        """Return the local record for ``item``, creating it when missing."""

        resolved = parse_media_kind(kind or item.kind)
        async with self._session_factory() as session:
            existing = await self._find(session, item.provider_id, resolved)
            if existing is not None:
                return existing

            record = ContentRecord(
                provider_id=item.provider_id,
                media_kind=resolved,
                title=item.display_title(),
                overview=item.overview,
                poster_path=item.poster_path,
                backdrop_path=item.backdrop_path,
                popularity=item.popularity,
                vote_average=item.vote_average,
                genre_ids=list(item.genre_ids),
                release_date=item.raw_release_date(),
                added_by=added_by,
            )
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await self._find(session, item.provider_id, resolved)
                if existing is None:
                    raise
                logger.info(
                    "Concurrent reconcile for %s %s resolved to content %s",
                    resolved,
                    item.provider_id,
                    existing.id,
                )
                return existing

        logger.info(
            "Materialised %s %s (%s) as content %s",
            resolved,
            record.provider_id,
            record.title,
            record.id,
        )
        return record

    async def reconcile_reference(
        self,
        kind: MediaKind | str,
        provider_id: int,
        *,
        added_by: int | None = None,
    ) -> ContentRecord:
        """Resolve a bare provider reference, fetching details only when new."""

        resolved = parse_media_kind(kind)
        async with self._session_factory() as session:
            existing = await self._find(session, provider_id, resolved)
        if existing is not None:
            return existing
        if self._catalog is None:
            raise RuntimeError("Reconciler has no catalog client for provider lookups")
        detail = await self._catalog.item_detail(resolved, provider_id)
        return await self.reconcile(detail, resolved, added_by=added_by)

    async def by_local_id(self, content_id: int) -> ContentRecord:
        async with self._session_factory() as session:
            record = await session.get(ContentRecord, content_id)
        if record is None:
            raise NotFound(f"Content {content_id} not found")
        return record

    async def by_provider_id(
        self, provider_id: int, kind: MediaKind | str | None = None
    ) -> ContentRecord:
        """Return the record for a provider ID, optionally narrowed by kind."""

        async with self._session_factory() as session:
            if kind is not None:
                record = await self._find(session, provider_id, parse_media_kind(kind))
            else:
                result = await session.execute(
                    select(ContentRecord)
                    .where(ContentRecord.provider_id == provider_id)
                    .order_by(ContentRecord.id)
                    .limit(1)
                )
                record = result.scalar_one_or_none()
        if record is None:
            raise NotFound(f"No content recorded for provider ID {provider_id}")
        return record

    async def list_records(
        self, page: int = 1, limit: int | None = None
    ) -> Sequence[ContentRecord]:
        """Return records in local ID order, optionally paginated."""

        statement = select(ContentRecord).order_by(ContentRecord.id)
        if limit is not None:
            statement = statement.offset((ensure_page(page) - 1) * limit).limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return result.scalars().all()

    @staticmethod
    async def _find(
        session: AsyncSession, provider_id: int, kind: MediaKind
    ) -> ContentRecord | None:
        result = await session.execute(
            select(ContentRecord).where(
                ContentRecord.provider_id == provider_id,
                ContentRecord.media_kind == kind,
            )
        )
        return result.scalar_one_or_none()
