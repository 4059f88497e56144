"""In-memory TTL cache for fetched channel collections.

Entries are served while fresh and evicted the moment a read finds them
stale; there is no fallback to stale data. Each key has its own asyncio
lock, so concurrent misses for one key collapse into a single fetch
(single-flight) and entry replacement is never torn. A key's lock lives only
while some caller holds or waits on it.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional, Sequence, Tuple

from chanscope.domain.events.api_events import (
    CacheEntryEvicted, CacheEntryStored, CacheHit, CacheMiss, dispatch_event,
)
from chanscope.domain.interfaces.cache import CollectionCache, FetchFn
from chanscope.domain.models.channel import CacheEntry, Channel
from chanscope.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


class TTLCollectionCache(CollectionCache):
    """Process-wide collection cache keyed by subject FID."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initializes the cache.

        Args:
            ttl_seconds: How long an entry stays fresh after its fetch.
            clock: Time source; injectable for tests.
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._key_locks: Dict[CacheKey, asyncio.Lock] = {}
        self._lock_users: Dict[CacheKey, int] = {}
        logger.info(f"TTLCollectionCache initialized (ttl={ttl_seconds}s)")

    @asynccontextmanager
    async def _locked(self, key: CacheKey) -> AsyncIterator[None]:
        """Holds the per-key lock, dropping it once no caller holds or awaits it."""
        lock = self._key_locks.get(key)
        if lock is None:
            lock = self._key_locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._key_locks[key]

    def _fresh_records(self, key: CacheKey) -> Optional[Tuple[Channel, ...]]:
        """Returns fresh records for `key`, evicting the entry if it went stale."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if entry.is_fresh(now, self.ttl_seconds):
            dispatch_event(CacheHit(key=key, age_seconds=now - entry.fetched_at))
            return entry.records
        del self._entries[key]
        logger.debug(f"Cache entry for key {key} expired after {now - entry.fetched_at:.1f}s. Evicted.")
        dispatch_event(CacheEntryEvicted(key=key, reason="stale"))
        return None

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        """Returns the raw entry for `key` without freshness checks."""
        return self._entries.get(key)

    async def get_or_fetch(self, key: CacheKey, fetch_fn: FetchFn) -> Sequence[Channel]:
        records = self._fresh_records(key)
        if records is not None:
            return records

        async with self._locked(key):
            # Another caller may have filled the entry while we waited.
            records = self._fresh_records(key)
            if records is not None:
                return records

            dispatch_event(CacheMiss(key=key))
            logger.debug(f"Cache miss for key {key}. Fetching.")
            fetched = tuple(await fetch_fn(key))
            self._entries[key] = CacheEntry(key=key, records=fetched, fetched_at=self._clock())
            dispatch_event(CacheEntryStored(key=key, record_count=len(fetched)))
            return fetched

    async def invalidate(self, key: CacheKey) -> bool:
        async with self._locked(key):
            existed = self._entries.pop(key, None) is not None
        if existed:
            dispatch_event(CacheEntryEvicted(key=key, reason="invalidated"))
            logger.info(f"Invalidated cache entry for key {key}")
        return existed

    async def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        dispatch_event(CacheEntryEvicted(key=None, reason="cleared"))
        logger.info(f"Cleared {count} cache entr{'y' if count == 1 else 'ies'}.")

    def __len__(self) -> int:
        return len(self._entries)
