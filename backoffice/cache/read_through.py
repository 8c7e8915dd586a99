"""Read-through and invalidation helpers used by the services.

Reads are best effort: a backend failure on ``get``/``set`` is logged and
treated as a miss, so the caller falls through to the database. Invalidation
is not best effort: ``invalidate`` raises ``CacheInvalidationError`` because a
missed invalidation means stale reads for up to one TTL.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from backoffice.cache.base import Cache, CacheError
from backoffice.config import CACHE_SETTINGS
from backoffice.errors import CacheInvalidationError
from backoffice.utils import get_logger

logger = get_logger(__name__)


class ReadThroughCache:
    def __init__(self, cache: Cache, *, ttl_seconds: Optional[int] = None) -> None:
        self.cache = cache
        self.ttl_seconds = int(ttl_seconds if ttl_seconds is not None else CACHE_SETTINGS["default_ttl_seconds"])  # type: ignore[arg-type]

    def load(self, key: str, adapter: TypeAdapter) -> Optional[Any]:
        try:
            raw = self.cache.get(key)
        except CacheError as e:
            logger.warning("Cache read failed, treating as miss", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            value = adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable cache entry", key=key, error=str(e))
            return None
        logger.debug("Cache hit", key=key)
        return value

    def store(self, key: str, adapter: TypeAdapter, value: Any) -> None:
        try:
            self.cache.set(key, adapter.dump_json(value), self.ttl_seconds)
        except CacheError as e:
            logger.warning("Cache write failed", key=key, error=str(e))

    def invalidate(self, prefix: str) -> int:
        try:
            return self.cache.delete_by_pattern(prefix)
        except CacheError as e:
            logger.error("Write committed but cache invalidation failed", prefix=prefix, error=str(e))
            raise CacheInvalidationError(
                f"Data was saved, but cached '{prefix}' entries could not be invalidated; "
                "reads may be stale until they expire",
                details={"prefix": prefix},
            ) from e


__all__ = ["ReadThroughCache"]
