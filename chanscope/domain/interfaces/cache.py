"""Interface for the collection cache.

Defines the contract for serving a subject's fetched collection while it is
fresh and refetching it once it goes stale.
"""

import abc
from typing import Awaitable, Callable, Sequence

from ..models.channel import Channel
from ..models.common import CacheKey

FetchFn = Callable[[CacheKey], Awaitable[Sequence[Channel]]]


class CollectionCache(abc.ABC):
    """Abstract Base Class for time-bounded collection caching."""

    @abc.abstractmethod
    async def get_or_fetch(self, key: CacheKey, fetch_fn: FetchFn) -> Sequence[Channel]:
        """Returns the cached records for `key`, fetching them if absent or stale.

        Args:
            key: The subject key (FID).
            fetch_fn: Coroutine function producing the full record sequence.

        Returns:
            The records, either from a fresh entry or from a new fetch.

        Raises:
            Whatever `fetch_fn` raises. A failed fetch writes nothing.
        """
        pass

    @abc.abstractmethod
    async def invalidate(self, key: CacheKey) -> bool:
        """Evicts the entry for `key`. Returns True if an entry existed."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Evicts every entry."""
        pass
