"""Response cache - TTL + LRU memo with single-flight computation."""

import asyncio
import hashlib
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..models.cache import CacheEntry

logger = logging.getLogger(__name__)


@dataclass
class _Flight:
    task: asyncio.Task
    waiters: int = 0


class ResponseCache:
    """In-process answer cache shared by chat and formatting.

    All mutation happens on the event loop between awaits, so the plain
    OrderedDict needs no lock. Expired entries are removed lazily by get().
    """

    def __init__(
        self,
        ttl_seconds: float = 30 * 60,
        max_entries: Optional[int] = 1024,
        single_flight: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            ttl_seconds: Entry lifetime from put().
            max_entries: LRU bound. None means unbounded.
            single_flight: Share one computation between concurrent callers
                of the same key.
            clock: Monotonic time source in seconds.
        """
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._single_flight = single_flight
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._in_flight: dict[str, _Flight] = {}

    @staticmethod
    def make_key(query: str, mode: Optional[str] = None) -> str:
        """Stable key for query text and operating mode."""
        normalized = " ".join(query.split())
        raw = f"{mode or ''}\x1f{normalized}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.created_at >= self._ttl:
            del self._entries[key]
            logger.debug(f"Cache expired: {key[:12]}")
            return None

        self._entries.move_to_end(key)
        return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        entry.created_at = self._clock()
        self._entries[key] = entry
        self._entries.move_to_end(key)

        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache evicted: {evicted[:12]}")

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[CacheEntry]],
        cacheable: Callable[[CacheEntry], bool] = lambda entry: True,
    ) -> tuple[CacheEntry, bool]:
        """Return a cached entry or compute, store and return a new one.

        Args:
            key: Cache key from make_key().
            compute: Coroutine factory producing the entry on a miss.
            cacheable: Whether a computed entry may be stored.

        Returns:
            (entry, from_cache). Callers that joined another caller's
            computation get from_cache=True.
        """
        entry = self.get(key)
        if entry is not None:
            logger.info(f"Cache hit: {key[:12]}")
            return entry, True

        if not self._single_flight:
            entry = await compute()
            if cacheable(entry):
                self.put(key, entry)
            return entry, False

        flight = self._in_flight.get(key)
        if flight is not None and flight.task.done():
            flight = None
        joined = flight is not None
        if flight is None:
            task = asyncio.ensure_future(self._compute(key, compute, cacheable))
            flight = _Flight(task=task)
            self._in_flight[key] = flight
            task.add_done_callback(lambda _t, f=flight: self._land(key, f))
        else:
            logger.info(f"Joining in-flight computation: {key[:12]}")

        flight.waiters += 1
        try:
            entry = await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                flight.task.cancel()
                # the task may still be unwinding; new callers start afresh
                self._land(key, flight)

        return entry, joined

    async def _compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[CacheEntry]],
        cacheable: Callable[[CacheEntry], bool],
    ) -> CacheEntry:
        entry = await compute()
        if cacheable(entry):
            self.put(key, entry)
        return entry

    def _land(self, key: str, flight: _Flight) -> None:
        if self._in_flight.get(key) is flight:
            del self._in_flight[key]
