"""
In-process TTL cache for provider lookups (geocodes and place searches).

One instance is built at process start and handed to the Geocoder and the
Place Finder. Reads are read-through: a miss runs the loader and stores its
result. Concurrent misses for the same key share one loader call.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

_MISSING = object()


class TTLCache:
    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: Dict[str, Tuple[float, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        # tasks holding or waiting on each key lock
        self._lock_users: Dict[str, int] = {}
        self._next_sweep = self._clock() + ttl_seconds
        self._stats = {"hits": 0, "misses": 0, "loads": 0}

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return default

        expires_at, value = entry
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return default
        return value

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self.purge_expired()
        self._data[key] = (now + self.ttl_seconds, value)

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed"""
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._data.items() if now >= expires_at]
        for key in expired:
            del self._data[key]
        self._next_sweep = now + self.ttl_seconds
        if expired:
            logger.debug("cache_purged", removed=len(expired), size=len(self._data))
        return len(expired)

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        should_cache: Callable[[Any], bool] = lambda value: value is not None,
    ) -> Any:
        """Return the cached value for `key`, loading and storing it on a miss.

        Only values accepted by `should_cache` are stored, so failed lookups
        are retried on the next call instead of being pinned for the TTL.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            self._stats["hits"] += 1
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                # another task may have loaded it while we waited
                value = self.get(key, _MISSING)
                if value is not _MISSING:
                    self._stats["hits"] += 1
                    return value

                self._stats["misses"] += 1
                value = await loader()
                self._stats["loads"] += 1
                if should_cache(value):
                    self.set(key, value)
                else:
                    logger.debug("cache_store_skipped", key=key)
        finally:
            self._release_lock(key)

        return value

    def _release_lock(self, key: str) -> None:
        """Forget the key lock once no task holds or waits on it"""
        users = self._lock_users.get(key, 1) - 1
        if users > 0:
            self._lock_users[key] = users
        else:
            self._lock_users.pop(key, None)
            self._locks.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    @property
    def stats(self) -> Dict[str, int]:
        return {**self._stats, "size": len(self), "locks": len(self._locks)}

    def __len__(self):
        """Live entries; expired ones are purged first"""
        self.purge_expired()
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING
