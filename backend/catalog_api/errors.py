"""Domain errors raised by catalog services and translated by the routers."""
from __future__ import annotations


class CatalogError(RuntimeError):
    """Base class for catalog failures that map onto an HTTP status."""

    status_code = 400


class ValidationError(CatalogError):
    """Raised for malformed or missing input."""

    status_code = 400


class PageRangeError(CatalogError):
    """Raised when a page is out of bounds or a reorder id set does not match it."""

    status_code = 400


class NotFoundError(CatalogError):
    """Raised when a requested catalog entity does not exist."""

    status_code = 404


class OrderIndexMissingError(CatalogError):
    """Raised when page occupants still lack an order index after the repair pass."""

    status_code = 409


class ProviderError(RuntimeError):
    """Raised by metadata provider clients; never surfaced over HTTP.

    ``reason`` is one of ``timeout``, ``not_found`` or ``error``.
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason
