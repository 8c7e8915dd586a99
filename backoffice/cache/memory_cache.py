"""In-memory TTL cache (single-process).

Same contract as ``RedisCache``; used for local development without Redis and
by the test-suite. Expiry is lazy: an entry past its deadline is dropped the
next time it is read or scanned.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from backoffice.utils import get_logger

logger = get_logger(__name__)


class InMemoryCache:
    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, tuple[bytes, float]] = {}  # key -> (value, expires_at)

    def _alive(self, key: str, now: float) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry[1] <= now:
            del self._entries[key]
            return False
        return True

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            if not self._alive(key, self._clock()):
                return None
            return self._entries[key][0]

    def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + max(0, ttl_seconds))

    def delete_by_pattern(self, prefix: str) -> int:
        with self._lock:
            now = self._clock()
            doomed = [k for k in list(self._entries) if k.startswith(prefix) and self._alive(k, now)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Cache entries invalidated", prefix=prefix, count=len(doomed))
        return len(doomed)

    def health_check(self) -> bool:
        return True

    # ----------------------------- test utilities ----------------------------- #
    def purge(self) -> None:
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> dict:
        with self._lock:
            return {"backend": "memory", "keys": len(self._entries)}


__all__ = ["InMemoryCache"]
