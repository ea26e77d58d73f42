"""Pydantic models describing provider payloads and local projections."""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from .utils import MediaKind, build_image_url, parse_release_date


class Genre(BaseModel):
    id: int
    name: str | None = None


class CatalogEntry(BaseModel):
    """Fields shared by every provider title, whatever its media kind."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    provider_id: int = Field(
        validation_alias=AliasChoices("id", "provider_id", "tmdb_id"),
        serialization_alias="id",
    )
    overview: str | None = None
    popularity: float = 0.0
    vote_average: float = 0.0
    genre_ids: list[int] = Field(default_factory=list)
    poster_path: str | None = None
    backdrop_path: str | None = None

    @field_validator("popularity", "vote_average", mode="before")
    @classmethod
    def _coerce_score(cls, value: object) -> object:
        return 0.0 if value is None else value

    @field_validator("genre_ids", mode="before")
    @classmethod
    def _coerce_genre_ids(cls, value: object) -> object:
        return [] if value is None else value

    @property
    @abstractmethod
    def kind(self) -> MediaKind: ...

    @abstractmethod
    def display_title(self) -> str: ...

    @abstractmethod
    def raw_release_date(self) -> str | None: ...

    def released_on(self) -> date | None:
        """Return the parsed release (or first air) date, if usable."""

        return parse_release_date(self.raw_release_date())

    @property
    def rating(self) -> float:
        return self.vote_average

    def poster_url(self, image_base_url: str, size: str = "w500") -> str | None:
        return build_image_url(self.poster_path, image_base_url, size)

    def backdrop_url(self, image_base_url: str, size: str = "w780") -> str | None:
        return build_image_url(self.backdrop_path, image_base_url, size)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready provider shape, keyed by ``id``."""

        return self.model_dump(mode="json", by_alias=True)


class Movie(CatalogEntry):
    media_type: Literal["movie"] = "movie"
    title: str = Field(
        default="", validation_alias=AliasChoices("title", "name", "original_title")
    )
    release_date: str | None = None

    @property
    def kind(self) -> MediaKind:
        return "movie"

    def display_title(self) -> str:
        return self.title.strip() or f"Movie {self.provider_id}"

    def raw_release_date(self) -> str | None:
        return self.release_date


class Series(CatalogEntry):
    media_type: Literal["series"] = "series"
    name: str = Field(
        default="", validation_alias=AliasChoices("name", "title", "original_name")
    )
    first_air_date: str | None = None

    @property
    def kind(self) -> MediaKind:
        return "series"

    def display_title(self) -> str:
        return self.name.strip() or f"Series {self.provider_id}"

    def raw_release_date(self) -> str | None:
        return self.first_air_date


class _DetailMixin(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    genres: list[Genre] = Field(default_factory=list)

    @model_validator(mode="after")
    def _sync_genre_ids(self) -> "_DetailMixin":
        if self.genres and not getattr(self, "genre_ids", None):
            self.genre_ids = [genre.id for genre in self.genres]
        return self

    def genre_id_list(self) -> list[int]:
        if self.genres:
            return [genre.id for genre in self.genres]
        return list(getattr(self, "genre_ids", []) or [])

    def cast_names(self, limit: int = 10) -> list[str]:
        credits = (self.model_extra or {}).get("credits") or {}
        cast = credits.get("cast") if isinstance(credits, dict) else None
        if not isinstance(cast, list):
            return []
        names = [
            str(member.get("name"))
            for member in cast
            if isinstance(member, dict) and member.get("name")
        ]
        return names[:limit]


class MovieDetail(_DetailMixin, Movie):
    runtime: int | None = None


class Season(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | None = None
    season_number: int
    name: str | None = None
    episode_count: int | None = None
    air_date: str | None = None


class SeriesDetail(_DetailMixin, Series):
    seasons: list[Season] = Field(default_factory=list)
    number_of_seasons: int | None = None
    number_of_episodes: int | None = None


CatalogItem = Annotated[Union[Movie, Series], Field(discriminator="media_type")]
CatalogDetail = Union[MovieDetail, SeriesDetail]

_ITEM_ADAPTER: TypeAdapter[Movie | Series] = TypeAdapter(CatalogItem)


def parse_catalog_item(payload: dict[str, Any], kind: MediaKind) -> Movie | Series:
    """Validate a provider list entry as the given media kind."""

    return _ITEM_ADAPTER.validate_python({**payload, "media_type": kind})


def parse_catalog_detail(payload: dict[str, Any], kind: MediaKind) -> CatalogDetail:
    data = {**payload, "media_type": kind}
    if kind == "movie":
        return MovieDetail.model_validate(data)
    return SeriesDetail.model_validate(data)


class ContentReference(BaseModel):
    """Request body naming a provider title to materialise locally."""

    model_config = ConfigDict(populate_by_name=True)

    provider_id: int = Field(
        gt=0, validation_alias=AliasChoices("providerId", "tmdbId", "provider_id")
    )
    kind: str = Field(validation_alias=AliasChoices("type", "kind", "mediaType"))
    added_by: int | None = Field(
        default=None, validation_alias=AliasChoices("addedBy", "added_by")
    )


class ContentRecordOut(BaseModel):
    """Serialized view of a locally persisted content record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    provider_id: int
    media_kind: MediaKind
    title: str
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    popularity: float = 0.0
    vote_average: float = 0.0
    genre_ids: list[int] = Field(default_factory=list)
    release_date: str | None = None
    added_by: int | None = None
    added_at: datetime


class ProfileIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=120)
    avatar_id: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("avatarId", "avatar_id")
    )


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar_id: int
    created_at: datetime


class ReviewIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    profile_id: int = Field(validation_alias=AliasChoices("profileId", "profile_id"))
    content_id: int = Field(validation_alias=AliasChoices("contentId", "content_id"))
    rating: int | None = Field(default=None, ge=1, le=5)
    review: str | None = Field(default=None, max_length=5_000)
    is_public: bool = Field(
        default=False, validation_alias=AliasChoices("isPublic", "is_public")
    )


class ReviewUpdate(BaseModel):
    """Partial review edit; only fields present in the body are applied."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    rating: int | None = Field(default=None, ge=1, le=5)
    review: str | None = Field(default=None, max_length=5_000)
    is_public: bool = Field(
        default=False, validation_alias=AliasChoices("isPublic", "is_public")
    )

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    profile_id: int
    content_id: int
    rating: int | None = None
    review: str | None = None
    is_public: bool
    created_at: datetime


class WatchlistIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    profile_id: int = Field(validation_alias=AliasChoices("profileId", "profile_id"))
    content_id: int | None = Field(
        default=None, validation_alias=AliasChoices("contentId", "content_id")
    )
    provider_id: int | None = Field(
        default=None, validation_alias=AliasChoices("providerId", "tmdbId", "provider_id")
    )
    kind: str | None = Field(
        default=None, validation_alias=AliasChoices("type", "kind", "mediaType")
    )

    @model_validator(mode="after")
    def _require_target(self) -> "WatchlistIn":
        if self.content_id is None and (self.provider_id is None or not self.kind):
            raise ValueError("Provide contentId or both providerId and type")
        return self


@dataclass(slots=True)
class RatingSignal:
    """A rated content record as seen by the recommendation engine."""

    content_id: int
    rating: int | None
    genre_ids: list[int] = field(default_factory=list)
    provider_id: int | None = None

    @property
    def weight(self) -> int:
        return self.rating or 3


@dataclass(slots=True)
class GenreAffinity:
    """Average rating weight accumulated for a single genre."""

    genre_id: int
    total: float = 0.0
    count: int = 0

    def add(self, weight: float) -> None:
        self.total += weight
        self.count += 1

    @property
    def average(self) -> float:
        if not self.count:
            return 0.0
        return self.total / self.count
