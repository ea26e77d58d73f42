"""Default display names for the provider's genre taxonomy.

Genre identifiers are opaque to the ranking code; this table only exists so
that responses can carry human readable labels.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


DEFAULT_GENRE_NAMES: Mapping[int, str] = MappingProxyType(
    {
        28: "Action",
        12: "Adventure",
        16: "Animation",
        35: "Comedy",
        80: "Crime",
        99: "Documentary",
        18: "Drama",
        10751: "Family",
        14: "Fantasy",
        36: "History",
        27: "Horror",
        10402: "Music",
        9648: "Mystery",
        10749: "Romance",
        878: "Science Fiction",
        53: "Thriller",
        10752: "War",
        37: "Western",
        10759: "Action & Adventure",
        10762: "Kids",
        10763: "News",
        10764: "Reality",
        10765: "Sci-Fi & Fantasy",
        10766: "Soap",
        10767: "Talk",
        10768: "War & Politics",
    }
)


def genre_name(genre_id: int, names: Mapping[int, str] | None = None) -> str:
    """Return the display label for ``genre_id``, falling back to the raw ID."""

    table = DEFAULT_GENRE_NAMES if names is None else names
    return table.get(genre_id) or f"Genre {genre_id}"


def genre_payload(names: Mapping[int, str] | None = None) -> list[dict[str, object]]:
    table = DEFAULT_GENRE_NAMES if names is None else names
    return [{"id": genre_id, "name": name} for genre_id, name in table.items()]
