"""Redis-backed read-through cache.

Values are opaque bytes (JSON snapshots produced by the services) stored with
a TTL. Invalidation is by key prefix: ``SCAN MATCH <prefix>*`` followed by
batched ``DEL``. Every ``redis.RedisError`` is re-raised as ``CacheError``;
this class never falls back silently, because a swallowed invalidation error
would hide stale reads.
"""
from __future__ import annotations

from typing import Any, Optional, Union

import redis

from backoffice.cache.base import CacheError
from backoffice.cache.memory_cache import InMemoryCache
from backoffice.config import CACHE_SETTINGS
from backoffice.utils import get_logger

logger = get_logger(__name__)


class RedisCache:
    def __init__(
        self,
        *,
        redis_url: Optional[str] = None,
        health_check_timeout: Optional[float] = None,
        delete_batch_size: Optional[int] = None,
    ) -> None:
        self._redis_url = str(redis_url or CACHE_SETTINGS["redis_url"])
        self._health_check_timeout = float(
            health_check_timeout if health_check_timeout is not None else CACHE_SETTINGS["redis_health_check_timeout"]  # type: ignore[arg-type]
        )
        self._batch_size = int(delete_batch_size or CACHE_SETTINGS["delete_batch_size"])  # type: ignore[arg-type]
        self._client: redis.Redis = redis.from_url(self._redis_url, socket_connect_timeout=self._health_check_timeout)

    def get(self, key: str) -> Optional[bytes]:
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            raise CacheError(f"cache get failed for '{key}': {e}") from e
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=max(1, int(ttl_seconds)))
        except redis.RedisError as e:
            raise CacheError(f"cache set failed for '{key}': {e}") from e

    def delete_by_pattern(self, prefix: str) -> int:
        deleted = 0
        batch: list[Any] = []
        try:
            for key in self._client.scan_iter(match=f"{prefix}*", count=self._batch_size):
                batch.append(key)
                if len(batch) >= self._batch_size:
                    deleted += self._delete(batch)
                    batch = []
            if batch:
                deleted += self._delete(batch)
        except redis.RedisError as e:
            logger.error("Cache invalidation failed", prefix=prefix, deleted=deleted, error=str(e))
            raise CacheError(f"cache invalidation failed for prefix '{prefix}': {e}") from e
        logger.debug("Cache entries invalidated", prefix=prefix, count=deleted)
        return deleted

    def _delete(self, keys: list[Any]) -> int:
        result = self._client.delete(*keys)
        try:
            return int(result)
        except (TypeError, ValueError):
            return len(keys)

    def health_check(self) -> bool:
        try:
            return bool(self._client.ping())
        except (redis.RedisError, ConnectionError) as e:
            logger.warning("Redis cache health check failed", url=self._redis_url, error=str(e))
            return False

    def snapshot(self) -> dict:
        return {"backend": "redis", "redis_url": self._redis_url}


def create_cache() -> Union[RedisCache, InMemoryCache]:
    """Create the cache backend selected by configuration.

    Redis is used when enabled and reachable at startup; otherwise the
    process-local cache. The choice is made once: a Redis outage later on
    surfaces as ``CacheError`` rather than a silent switch of backend.
    """
    if CACHE_SETTINGS.get("use_redis", False):
        try:
            cache = RedisCache()
            if cache.health_check():
                logger.info("Using Redis-backed cache", url=CACHE_SETTINGS["redis_url"])
                return cache
            logger.warning("REDIS CONNECTION FAILED: Redis server is not reachable. Using in-memory cache.")
        except (redis.RedisError, ValueError) as e:
            logger.warning("Error initializing Redis cache, falling back to in-memory cache", error=str(e))

    logger.info("Using in-memory cache")
    return InMemoryCache()


__all__ = ["RedisCache", "create_cache"]
