"""Utility helpers for the Cinefeed service."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from .errors import InvalidRequestError

MediaKind = Literal["movie", "series"]

_KIND_ALIASES: dict[str, MediaKind] = {
    "movie": "movie",
    "movies": "movie",
    "series": "series",
    "tv": "series",
    "show": "series",
    "shows": "series",
    "tvshows": "series",
}


def parse_media_kind(value: Any) -> MediaKind:
    """Normalise provider and route spellings of a media kind."""

    key = str(value or "").strip().lower()
    kind = _KIND_ALIASES.get(key)
    if kind is None:
        raise InvalidRequestError(f"Unknown media kind: {value!r}")
    return kind


def provider_path_segment(kind: MediaKind) -> str:
    """Return the provider's URL segment for a media kind."""

    return "movie" if kind == "movie" else "tv"


def parse_release_date(value: Any) -> date | None:
    """Parse an ISO ``YYYY-MM-DD`` date, returning ``None`` when unusable."""

    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def build_image_url(path: str | None, base_url: str, size: str) -> str | None:
    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url.rstrip('/')}/{size}{path}"


def ensure_page(page: int) -> int:
    """Validate a 1-based page number."""

    try:
        number = int(page)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError("Page must be an integer") from exc
    if number < 1:
        raise InvalidRequestError("Page must be 1 or greater")
    return number
