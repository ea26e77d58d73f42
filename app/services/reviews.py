"""Profile and review persistence used by the ranking engines."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from pydantic import ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import ContentRecord, Profile, Review
from ..errors import InvalidRequestError, NotFound
from ..models import ReviewUpdate

logger = logging.getLogger(__name__)


class ReviewService:
    """Thin CRUD over profiles and their reviews."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_profile(self, name: str, avatar_id: int = 0) -> Profile:
        profile = Profile(name=name.strip(), avatar_id=avatar_id)
        async with self._session_factory() as session:
            session.add(profile)
            await session.commit()
        logger.info("Created profile %s (%s)", profile.id, profile.name)
        return profile

    async def get_profile(self, profile_id: int) -> Profile:
        async with self._session_factory() as session:
            profile = await session.get(Profile, profile_id)
        if profile is None:
            raise NotFound(f"Profile {profile_id} not found")
        return profile

    async def create_review(
        self,
        *,
        profile_id: int,
        content_id: int,
        rating: int | None = None,
        review: str | None = None,
        is_public: bool = False,
    ) -> Review:
        if rating is not None and not 1 <= rating <= 5:
            raise InvalidRequestError("Rating must be between 1 and 5")
        async with self._session_factory() as session:
            if await session.get(Profile, profile_id) is None:
                raise NotFound(f"Profile {profile_id} not found")
            if await session.get(ContentRecord, content_id) is None:
                raise NotFound(f"Content {content_id} not found")
            record = Review(
                profile_id=profile_id,
                content_id=content_id,
                rating=rating,
                review=review,
                is_public=is_public,
            )
            session.add(record)
            await session.commit()
        logger.info(
            "Profile %s reviewed content %s (rating=%s)", profile_id, content_id, rating
        )
        return record

    async def update_review(
        self, review_id: int, changes: ReviewUpdate | Mapping[str, Any]
    ) -> Review:
        if not isinstance(changes, ReviewUpdate):
            try:
                changes = ReviewUpdate.model_validate(dict(changes))
            except ValidationError as exc:
                raise InvalidRequestError(
                    f"Invalid review update: {exc.error_count()} field error(s)"
                ) from exc
        async with self._session_factory() as session:
            record = await session.get(Review, review_id)
            if record is None:
                raise NotFound(f"Review {review_id} not found")
            for key, value in changes.changes().items():
                setattr(record, key, value)
            await session.commit()
        return record

    async def delete_review(self, review_id: int) -> None:
        async with self._session_factory() as session:
            record = await session.get(Review, review_id)
            if record is None:
                raise NotFound(f"Review {review_id} not found")
            await session.delete(record)
            await session.commit()

    async def list_by_profile(self, profile_id: int) -> Sequence[Review]:
        """Return every review written by the profile, oldest first."""

        async with self._session_factory() as session:
            result = await session.execute(
                select(Review)
                .where(Review.profile_id == profile_id)
                .order_by(Review.id)
            )
            return result.scalars().all()

    async def list_by_content(
        self, content_id: int, *, viewer_profile_id: int | None = None
    ) -> Sequence[Review]:
        """Return public reviews plus the viewer's own private ones."""

        visibility = Review.is_public.is_(True)
        if viewer_profile_id is not None:
            visibility = or_(visibility, Review.profile_id == viewer_profile_id)
        async with self._session_factory() as session:
            if await session.get(ContentRecord, content_id) is None:
                raise NotFound(f"Content {content_id} not found")
            result = await session.execute(
                select(Review)
                .where(Review.content_id == content_id, visibility)
                .order_by(Review.id)
            )
            return result.scalars().all()

    async def count_by_content(self, content_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(Review.id)).where(Review.content_id == content_id)
            )
            return int(result.scalar_one())

    async def review_counts(self) -> dict[int, int]:
        """Return review counts keyed by content ID (absent means zero)."""

        async with self._session_factory() as session:
            result = await session.execute(
                select(Review.content_id, func.count(Review.id)).group_by(
                    Review.content_id
                )
            )
            return {int(content_id): int(count) for content_id, count in result.all()}
