"""Domain error taxonomy.

Services raise these; the API layer turns them into the standard error
envelope (see ``backoffice.main``). Unauthorized / Forbidden are not part of
this service.
"""
from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(AppError):
    status_code = 404


class InvalidInputError(AppError):
    status_code = 400


class InternalError(AppError):
    status_code = 500


class CacheInvalidationError(InternalError):
    """The write committed but the cache could not be invalidated.

    Callers must read this as "data changed, cached reads may be stale for up
    to one TTL", never as an aborted write.
    """


__all__ = [
    "AppError",
    "NotFoundError",
    "InvalidInputError",
    "InternalError",
    "CacheInvalidationError",
]
