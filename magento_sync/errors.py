"""Exceptions raised by the importer."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for importer errors."""


class GatewayError(SyncError):
    """The Magento API could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PreconditionError(SyncError):
    """Calling code asked for something before the required context exists."""


class CatalogConflictError(SyncError):
    """The catalog store rejected a write, e.g. a duplicate SKU."""
