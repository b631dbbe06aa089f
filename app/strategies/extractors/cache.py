"""In-process memoization of external property extractions.

Results are keyed by (url, css_selector). Concurrent requests for the same
key share one in-flight computation; failures are never stored.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str]


class ExtractionCache:
    """TTL-bounded LRU cache guarded by an asyncio lock."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[CacheKey, tuple[float, str]] = OrderedDict()
        self._in_flight: dict[CacheKey, asyncio.Future[str]] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    async def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], Awaitable[str]],
    ) -> str:
        """Return the cached value for `key`, computing it at most once.

        Args:
            key: The (url, css_selector) pair.
            compute: Coroutine factory producing the value on a miss.

        Returns:
            The cached or freshly computed value.

        Raises:
            Exception: Whatever `compute` raised; the failure is not cached.
        """
        async with self._lock:
            cached = self._lookup(key)
            if cached is not None:
                self.hits += 1
                return cached

            waiter = self._in_flight.get(key)
            if waiter is None:
                self.misses += 1
                waiter = asyncio.get_running_loop().create_future()
                self._in_flight[key] = waiter
                owner = True
            else:
                owner = False

        if not owner:
            try:
                return await asyncio.shield(waiter)
            except asyncio.CancelledError:
                # The owning request was abandoned; compute on our own behalf
                if waiter.cancelled():
                    return await self.get_or_compute(key, compute)
                raise

        try:
            value = await compute()
        except BaseException as e:
            async with self._lock:
                self._in_flight.pop(key, None)
            if not waiter.done():
                if isinstance(e, asyncio.CancelledError):
                    waiter.cancel()
                else:
                    waiter.set_exception(e)
            # Mark retrieved so an unobserved failure does not warn at GC
            if not waiter.cancelled():
                waiter.exception()
            raise

        async with self._lock:
            self._in_flight.pop(key, None)
            self._store(key, value)
        if not waiter.done():
            waiter.set_result(value)
        return value

    def _lookup(self, key: CacheKey) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self._ttl:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def _store(self, key: CacheKey, value: str) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted extraction cache entry for {evicted[0]}")

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
