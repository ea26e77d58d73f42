"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class Profile(Base):
    """A viewer profile whose ratings drive recommendations."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120))
    avatar_id: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class ContentRecord(Base):
    """Local snapshot of a provider title, created on first reference."""

    __tablename__ = "contents"
    __table_args__ = (
        UniqueConstraint("provider_id", "media_kind", name="uq_contents_provider_kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    provider_id: Mapped[int] = mapped_column(Integer, index=True)
    media_kind: Mapped[str] = mapped_column(String(16))
    title: Mapped[str] = mapped_column(String(255))
    overview: Mapped[str | None] = mapped_column(Text, nullable=True)
    poster_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    backdrop_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    popularity: Mapped[float] = mapped_column(Float, default=0.0)
    vote_average: Mapped[float] = mapped_column(Float, default=0.0)
    genre_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    added_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Review(Base):
    """A profile's rating and optional write-up of a content record."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contents.id"), index=True
    )
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class WatchlistEntry(Base):
    """Membership of a content record in a profile's list."""

    __tablename__ = "watchlist_entries"
    __table_args__ = (
        UniqueConstraint("profile_id", "content_id", name="uq_watchlist_profile_content"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    content_id: Mapped[int] = mapped_column(Integer, ForeignKey("contents.id"))
    added_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
