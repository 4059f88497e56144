"""Application service: the channel aggregator.

Orchestrates the collection cache, the paginated fetcher and the membership
resolver, and returns a decorated, ordered channel listing. This is the one
entry point presentation layers call; every failure it raises is a typed
ChanscopeError.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from chanscope.domain.interfaces.cache import CollectionCache
from chanscope.domain.models.channel import (
    Channel, ChannelMembership, MembershipResult, SortOrder, filter_by_name, sort_channels,
)
from chanscope.domain.models.common import CacheKey, ChannelId, Fid, parse_fid
from chanscope.domain.models.errors import MissingKeyError, NotFoundError
from chanscope.infrastructure.upstream.membership_resolver import MembershipResolver
from chanscope.infrastructure.upstream.paginated_fetcher import PaginatedFetcher

logger = logging.getLogger(__name__)

DEFAULT_MEMBERSHIP_CONCURRENCY = 10


class ChannelService:
    """Aggregates a FID's followed channels with per-channel membership."""

    def __init__(
        self,
        cache: CollectionCache,
        fetcher: PaginatedFetcher,
        resolver: MembershipResolver,
        membership_concurrency: int = DEFAULT_MEMBERSHIP_CONCURRENCY,
    ):
        """Initializes the ChannelService.

        Args:
            cache: Time-bounded cache of fetched collections.
            fetcher: Exhaustive paginator for the collection endpoint.
            resolver: Per-channel membership checker.
            membership_concurrency: Upper bound on membership checks in flight at once.
        """
        if membership_concurrency < 1:
            raise ValueError(f"membership_concurrency must be at least 1, got {membership_concurrency}")
        self.cache = cache
        self.fetcher = fetcher
        self.resolver = resolver
        self.membership_concurrency = membership_concurrency

    @staticmethod
    def require_fid(raw_fid: Any) -> Fid:
        """Validates caller input, raising MissingKeyError when absent or invalid."""
        if raw_fid is None or (isinstance(raw_fid, str) and not raw_fid.strip()):
            raise MissingKeyError("FID is required")
        fid = parse_fid(raw_fid)
        if fid is None:
            raise MissingKeyError(f"FID must be a positive integer, got {raw_fid!r}")
        return fid

    async def _fetch(self, key: CacheKey) -> List[Channel]:
        return await self.fetcher.fetch_all(Fid(key))

    async def _cached_records(self, fid: Fid) -> Sequence[Channel]:
        return await self.cache.get_or_fetch(CacheKey(fid), self._fetch)

    async def list_channels(self, raw_fid: Any, name_filter: Optional[str] = None) -> List[Channel]:
        """Returns the (cached) followed channels for a FID without membership decoration.

        Raises:
            MissingKeyError: If the FID is absent or invalid.
            NotFoundError: If no channels were fetched or none survive the name filter.
            UpstreamError / MalformedResponseError: From the fetch.
        """
        fid = self.require_fid(raw_fid)
        records = await self._cached_records(fid)
        if not records:
            raise NotFoundError(f"No channels found for FID {fid}")
        selected = filter_by_name(records, name_filter)
        if not selected:
            raise NotFoundError(f"No channels matching '{name_filter}' for FID {fid}")
        return selected

    async def _decorate(self, fid: Fid, records: Sequence[Channel]) -> List[ChannelMembership]:
        """Runs the bounded membership fan-out and merges results back by channel id.

        Each distinct channel id is checked once, so a record repeated across
        pages costs a single upstream call.
        """
        semaphore = asyncio.Semaphore(self.membership_concurrency)

        async def check(channel_id: ChannelId) -> MembershipResult:
            async with semaphore:
                return await self.resolver.resolve(fid, channel_id)

        channel_ids = list(dict.fromkeys(record.id for record in records))
        # cancelling gather cancels every pending check
        results = await asyncio.gather(*(check(channel_id) for channel_id in channel_ids))
        membership: Dict[ChannelId, bool] = {result.record_id: result.is_member for result in results}
        return [ChannelMembership(channel=record, is_member=membership[record.id]) for record in records]

    async def list_with_membership(
        self,
        raw_fid: Any,
        sort: SortOrder = SortOrder.MEMBERSHIP_FIRST,
        name_filter: Optional[str] = None,
    ) -> List[ChannelMembership]:
        """Returns the FID's channels decorated with membership, in the requested order.

        Args:
            raw_fid: Subject FID as supplied by the caller.
            sort: Membership-first, follower-count-descending, or upstream order.
            name_filter: Optional case-insensitive substring applied to channel names
                before any membership call is made.

        Raises:
            MissingKeyError, NotFoundError, UpstreamError, MalformedResponseError.
        """
        records = await self.list_channels(raw_fid, name_filter=name_filter)
        fid = self.require_fid(raw_fid)
        decorated = await self._decorate(fid, records)
        members = sum(1 for item in decorated if item.is_member)
        logger.info(f"FID {fid}: member of {members}/{len(decorated)} channels")
        return sort_channels(decorated, sort)

    async def refresh(self, raw_fid: Any) -> bool:
        """Drops the cached collection for a FID. Returns True if one was cached."""
        fid = self.require_fid(raw_fid)
        return await self.cache.invalidate(CacheKey(fid))

    async def clear_cache(self) -> None:
        await self.cache.clear()
