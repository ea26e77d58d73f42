"""Exception hierarchy shared by the catalog services."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for failures surfaced by the catalog services."""


class ProviderError(CatalogError):
    """The metadata provider answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Provider returned {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class ProviderUnavailable(CatalogError):
    """The metadata provider could not be reached (timeout, DNS, refused)."""


class NotFound(CatalogError):
    """A profile, content record or review does not exist."""


class InvalidRequestError(CatalogError):
    """Input was malformed, e.g. an unknown media kind or a page below 1."""


class Conflict(CatalogError):
    """The requested write clashes with existing state."""
