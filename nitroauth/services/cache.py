"""
In-process validation cache.

Holds recent validation snapshots per user id for the lightweight
validation path. Losing the cache only costs a directory read, so every
failure here is logged and treated as a miss.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from nitroauth.config import get_settings

logger = logging.getLogger(__name__)


class ValidationCache:
    """TTL cache keyed by user id."""

    def __init__(self, ttl_seconds: int = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> dict[str, Any] | None:
        try:
            async with self._lock:
                item = self._entries.get(user_id)
                if item is None:
                    return None
                expires_at, value = item
                if self._clock() >= expires_at:
                    del self._entries[user_id]
                    return None
                return dict(value)
        except Exception:
            logger.warning(f"Validation cache read failed for {user_id}", exc_info=True)
            return None

    async def set(self, user_id: str, value: dict[str, Any]) -> None:
        try:
            async with self._lock:
                now = self._clock()
                self._drop_expired(now)
                self._entries[user_id] = (now + self.ttl_seconds, dict(value))
        except Exception:
            logger.warning(f"Validation cache write failed for {user_id}", exc_info=True)

    async def delete(self, user_id: str) -> None:
        try:
            async with self._lock:
                self._entries.pop(user_id, None)
        except Exception:
            logger.warning(f"Validation cache invalidation failed for {user_id}", exc_info=True)

    async def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        async with self._lock:
            return self._drop_expired(self._clock())

    def _drop_expired(self, now: float) -> int:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# Global cache instance
_validation_cache: ValidationCache | None = None


def get_validation_cache() -> ValidationCache:
    """Get the process-wide validation cache."""
    global _validation_cache
    if _validation_cache is None:
        _validation_cache = ValidationCache(ttl_seconds=get_settings().VALIDATION_CACHE_TTL)
    return _validation_cache
