"""Exception types shared by the catalog services.

Filesystem failures are left as the builtin ``OSError``; format detection
never raises.
"""

from __future__ import annotations

from typing import Optional


class CatalogError(Exception):
    """Base class for catalog/ingestion errors."""


class FetchError(CatalogError):
    """Non-success HTTP status or network failure while downloading."""

    def __init__(
        self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class NotFoundError(CatalogError):
    """Missing local image, item record, or catalog entry."""


class InvalidItemIdError(CatalogError, ValueError):
    """Item id that cannot be used as a file or directory name."""


class DecodeError(CatalogError):
    """Raster bytes could not be decoded; there is no fallback for static images."""


class EncodeError(CatalogError):
    """A format-specific re-encode failed (recovered locally by the ingestor)."""


__all__ = [
    "CatalogError",
    "FetchError",
    "NotFoundError",
    "InvalidItemIdError",
    "DecodeError",
    "EncodeError",
]
