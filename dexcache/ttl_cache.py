# dexcache/ttl_cache.py
from __future__ import annotations

import math
import time
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional

from cachetools import TTLCache

from . import metrics

log = logging.getLogger(__name__)

DEFAULT_TTL = 300.0  # five minutes

INDEX_KEY = "all-index"


def detail_key(name_or_id: Any) -> str:
    """Cache key for a summary record (by name or id)."""
    return f"detail:{name_or_id}"


def full_detail_key(pokemon_id: int) -> str:
    """Cache key for an enriched detail record."""
    return f"full-detail:{pokemon_id}"


class CacheRecord(NamedTuple):
    """A cached value and the timer reading at which it was stored."""

    value: Any
    stored_at: float


def _is_cacheable(value: Any) -> bool:
    # Empty lists/dicts and None are partial-failure artifacts; never keep them.
    return bool(value)


class TTLStore:
    """Process-local read-through store with per-key single-flight locks.

    Values expire `ttl` seconds after they were stored and are checked at read
    time; nothing sweeps in the background. There is no size bound on values.
    Locks exist only while a fetch for their key is in flight.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            ttl: Time-to-live in seconds for every entry.
            timer: Clock used for both storage and expiry (injectable for tests).
        """
        self._ttl = float(ttl)
        self._timer = timer
        self._data: TTLCache = TTLCache(maxsize=math.inf, ttl=self._ttl, timer=timer)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def _peek(self, key: str) -> Optional[Any]:
        rec: Optional[CacheRecord] = self._data.get(key)
        if rec is None or self._timer() - rec.stored_at >= self._ttl:
            self._data.pop(key, None)
            return None
        return rec.value

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value if still fresh, otherwise None."""
        value = self._peek(key)
        if value is None:
            self._misses += 1
            metrics.record_cache_lookup(key, hit=False)
            return None
        self._hits += 1
        metrics.record_cache_lookup(key, hit=True)
        return value

    def put(self, key: str, value: Any) -> bool:
        """Store `value` under `key` if it is non-empty.

        Returns:
            True if the value was stored, False if it was rejected as empty.
        """
        if not _is_cacheable(value):
            log.debug("cache.put_skipped key=%s reason=empty", key)
            return False
        self._data[key] = CacheRecord(value, self._timer())
        return True

    def is_fresh(self, key: str) -> bool:
        """Whether `key` holds an unexpired value (no hit/miss accounting)."""
        return self._peek(key) is not None

    def lock_for(self, key: str) -> asyncio.Lock:
        """Return the per-key single-flight lock (create if absent)."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        keep: Optional[Callable[[Any], bool]] = None,
    ) -> Any:
        """Read-through lookup that coalesces concurrent misses on one key.

        On a miss, the first caller runs `fetch` while holding the key's lock;
        callers that raced on the same key wait and then read the stored value.
        Errors from `fetch` propagate and leave the key uncached. When `keep`
        is given and returns False for the fetched value, the value is returned
        but not stored. A key's lock is dropped once no caller holds or awaits it.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        lock = self.lock_for(key)
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                # Another coroutine may have filled the key while we waited.
                cached = self._peek(key)
                if cached is not None:
                    log.debug("cache.hit_after_lock key=%s", key)
                    return cached

                value = await fetch()
                if keep is not None and not keep(value):
                    log.info("cache.put_skipped key=%s reason=transient", key)
                    return value
                stored = self.put(key, value)
                log.debug("cache.fill key=%s stored=%s", key, stored)
                return value
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                if self._locks.get(key) is lock:
                    del self._locks[key]

    def clear(self) -> None:
        """Drop every entry (used by tests and operators, never by the data path)."""
        self._data.clear()

    def stats(self) -> Dict[str, Any]:
        """Return simple stats for observability."""
        return {
            "size": len(self._data),
            "ttl_seconds": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
        }
