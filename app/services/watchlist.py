"""Per-profile watchlists backed by reconciled content records."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import ContentRecord, Profile, WatchlistEntry
from ..errors import Conflict, InvalidRequestError, NotFound
from ..utils import MediaKind
from .reconciler import CatalogReconciler

logger = logging.getLogger(__name__)


class WatchlistService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        reconciler: CatalogReconciler,
    ):
        self._session_factory = session_factory
        self._reconciler = reconciler

    async def add(
        self,
        profile_id: int,
        *,
        content_id: int | None = None,
        provider_id: int | None = None,
        kind: MediaKind | str | None = None,
    ) -> tuple[WatchlistEntry, ContentRecord]:
        """Add a title to the profile's list.

        A provider reference is reconciled first, so this is one of the places
        a content record gets created.
        """

        async with self._session_factory() as session:
            if await session.get(Profile, profile_id) is None:
                raise NotFound(f"Profile {profile_id} not found")

        if content_id is not None:
            record = await self._reconciler.by_local_id(content_id)
        elif provider_id is not None and kind:
            record = await self._reconciler.reconcile_reference(kind, provider_id)
        else:
            raise InvalidRequestError("Provide a content ID or a provider ID with a kind")

        async with self._session_factory() as session:
            entry = WatchlistEntry(profile_id=profile_id, content_id=record.id)
            session.add(entry)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise Conflict("Content already in list") from exc
        logger.info("Profile %s added content %s to their list", profile_id, record.id)
        return entry, record

    async def remove(self, profile_id: int, content_id: int) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(WatchlistEntry).where(
                    WatchlistEntry.profile_id == profile_id,
                    WatchlistEntry.content_id == content_id,
                )
            )
            await session.commit()
        if not result.rowcount:
            raise NotFound(f"Content {content_id} is not in profile {profile_id}'s list")

    async def entries(self, profile_id: int) -> list[tuple[WatchlistEntry, ContentRecord]]:
        async with self._session_factory() as session:
            if await session.get(Profile, profile_id) is None:
                raise NotFound(f"Profile {profile_id} not found")
            result = await session.execute(
                select(WatchlistEntry, ContentRecord)
                .join(ContentRecord, ContentRecord.id == WatchlistEntry.content_id)
                .where(WatchlistEntry.profile_id == profile_id)
                .order_by(WatchlistEntry.added_at, WatchlistEntry.id)
            )
            return [(entry, record) for entry, record in result.all()]
