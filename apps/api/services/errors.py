"""Domain error taxonomy shared by catalog services and routers."""

from __future__ import annotations

from typing import Optional


class CatalogError(RuntimeError):
    """Base class for errors surfaced to callers of the catalog core."""

    status_code = 400


class ValidationError(CatalogError):
    """Input rejected before any state was touched."""

    status_code = 422


class NotFoundError(CatalogError):
    """Requested clip, channel or state does not exist."""

    status_code = 404

    def __init__(self, message: str, *, max_seq: Optional[int] = None) -> None:
        super().__init__(message)
        self.max_seq = max_seq


class ConflictError(CatalogError):
    """Operation refused because it would rewrite existing state."""

    status_code = 409


class StoreUnavailableError(CatalogError):
    """Durable store or runtime state backend could not be reached."""

    status_code = 503
