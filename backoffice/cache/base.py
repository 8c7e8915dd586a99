"""Cache contract shared by the Redis and in-memory backends."""
from __future__ import annotations

from typing import Optional, Protocol


class CacheError(Exception):
    """The underlying store failed; callers decide whether that is fatal."""


class Cache(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...
    def set(self, key: str, value: bytes, ttl_seconds: int) -> None: ...
    def delete_by_pattern(self, prefix: str) -> int: ...
    def health_check(self) -> bool: ...


__all__ = ["Cache", "CacheError"]
