"""Concrete ChannelSource backed by the Warpcast public API.

Builds the query for each endpoint, runs it through the shared RetryPolicy,
and checks that the body is at least a JSON object. Deeper envelope checks
belong to the callers (PaginatedFetcher, MembershipResolver).
"""

import logging
from typing import Any, Dict, Optional

from chanscope.domain.interfaces.channel_source import ChannelSource
from chanscope.domain.models.common import ChannelId, Cursor, Fid
from chanscope.domain.models.errors import MalformedResponseError
from chanscope.infrastructure.http.http_client import AsyncHttpClient
from chanscope.infrastructure.resilience.api_retry import RetryPolicy

logger = logging.getLogger(__name__)

FOLLOWING_CHANNELS_PATH = "/v1/user-following-channels"
CHANNEL_MEMBERS_PATH = "/fc/channel-members"


def _require_object(body: Any, endpoint: str) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise MalformedResponseError(f"{endpoint}: expected a JSON object, got {type(body).__name__}")
    return body


class WarpcastClient(ChannelSource):
    """Warpcast implementation of the ChannelSource interface."""

    def __init__(self, http_client: AsyncHttpClient, retry_policy: RetryPolicy):
        self.http_client = http_client
        self.retry_policy = retry_policy

    async def fetch_channels_page(
        self, fid: Fid, cursor: Optional[Cursor] = None, limit: Optional[int] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"fid": fid}
        if cursor:
            params["cursor"] = cursor
        if limit:
            params["limit"] = limit
        logger.debug(f"Requesting {FOLLOWING_CHANNELS_PATH} with params {params}")

        body = await self.retry_policy.execute(
            lambda: self.http_client.get(FOLLOWING_CHANNELS_PATH, params=params),
            endpoint="user-following-channels",
        )
        return _require_object(body, "user-following-channels")

    async def fetch_channel_members(self, channel_id: ChannelId, fid: Fid) -> Dict[str, Any]:
        params = {"channelId": channel_id, "fid": fid}
        body = await self.retry_policy.execute(
            lambda: self.http_client.get(CHANNEL_MEMBERS_PATH, params=params),
            endpoint="channel-members",
        )
        return _require_object(body, "channel-members")
