"""Exhaustive cursor pagination over the channel collection endpoint.

Follows the opaque `next.cursor` handle until the server stops sending one,
accumulating records in response order. No de-duplication is done: a record
repeated across pages appears twice. A page ceiling bounds cyclic or
unbounded cursor chains.
"""

import logging
from typing import Any, Dict, List, Optional

from chanscope.domain.events.api_events import PageFetched, dispatch_event
from chanscope.domain.interfaces.channel_source import ChannelSource
from chanscope.domain.models.channel import Channel
from chanscope.domain.models.common import Cursor, Fid
from chanscope.domain.models.errors import MalformedResponseError, PaginationLimitExceeded

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 100
COLLECTION_FIELD = "channels"


def extract_next_cursor(envelope: Dict[str, Any]) -> Optional[Cursor]:
    """Returns the continuation cursor, or None when the server sent none."""
    next_block = envelope.get("next")
    if not isinstance(next_block, dict):
        return None
    cursor = next_block.get("cursor")
    return Cursor(str(cursor)) if cursor else None


def extract_collection(envelope: Dict[str, Any], field_name: str = COLLECTION_FIELD) -> List[Any]:
    """Pulls `result.<field_name>` out of an envelope.

    Raises:
        MalformedResponseError: If the result block or the list is missing.
    """
    result = envelope.get("result")
    if not isinstance(result, dict) or not isinstance(result.get(field_name), list):
        raise MalformedResponseError(
            f"Upstream did not return expected result.{field_name} structure: {envelope!r}"[:500]
        )
    return result[field_name]


class PaginatedFetcher:
    """Fetches every page of a subject's channel collection."""

    def __init__(
        self,
        source: ChannelSource,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_limit: Optional[int] = None,
    ):
        """Initializes the fetcher.

        Args:
            source: Upstream adapter issuing individual page requests.
            max_pages: Ceiling on pages followed before giving up.
            page_limit: Optional page size passed through as `limit`.
        """
        if max_pages < 1:
            raise ValueError(f"max_pages must be at least 1, got {max_pages}")
        self.source = source
        self.max_pages = max_pages
        self.page_limit = page_limit

    async def fetch_all(self, fid: Fid) -> List[Channel]:
        """Returns the merged records from every page, in page order.

        Raises:
            UpstreamError: From the source, on any failed page.
            MalformedResponseError: If any page lacks `result.channels`.
            PaginationLimitExceeded: If a cursor is still present after `max_pages` pages.
        """
        records: List[Channel] = []
        cursor: Optional[Cursor] = None
        page_number = 0

        while True:
            if page_number >= self.max_pages:
                logger.error(f"Pagination for FID {fid} exceeded {self.max_pages} pages; last cursor={cursor!r}")
                raise PaginationLimitExceeded(self.max_pages)

            envelope = await self.source.fetch_channels_page(fid, cursor=cursor, limit=self.page_limit)
            page = [Channel.from_payload(item) for item in extract_collection(envelope)]
            records.extend(page)
            page_number += 1

            cursor = extract_next_cursor(envelope)
            dispatch_event(PageFetched(
                subject_key=fid, page_number=page_number, record_count=len(page), has_next=cursor is not None,
            ))
            if cursor is None:
                break

        logger.info(f"Fetched {len(records)} channels for FID {fid} across {page_number} page(s)")
        return records
