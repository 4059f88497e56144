"""Concrete FrameRankingSource backed by the engagement graph API."""

import logging
from typing import Any, List

from chanscope.domain.interfaces.channel_source import FrameRankingSource
from chanscope.domain.models.common import Fid
from chanscope.infrastructure.http.http_client import AsyncHttpClient
from chanscope.infrastructure.resilience.api_retry import RetryPolicy

logger = logging.getLogger(__name__)

ENGAGEMENT_NEIGHBORS_PATH = "/graph/neighbors/engagement/fids"
FRAME_RANKINGS_PATH = "/frames/personalized/rankings/fids"


class GraphClient(FrameRankingSource):
    """Both endpoints take a JSON array of FIDs as the POST body."""

    def __init__(self, http_client: AsyncHttpClient, retry_policy: RetryPolicy):
        self.http_client = http_client
        self.retry_policy = retry_policy

    async def fetch_engaged_fids(self, fid: Fid) -> Any:
        return await self.retry_policy.execute(
            lambda: self.http_client.post(ENGAGEMENT_NEIGHBORS_PATH, json=[int(fid)]),
            endpoint="engagement-neighbors",
        )

    async def fetch_frame_rankings(self, fids: List[Fid]) -> Any:
        payload = [int(f) for f in fids]
        logger.debug(f"Requesting frame rankings for {len(payload)} FIDs")
        return await self.retry_policy.execute(
            lambda: self.http_client.post(FRAME_RANKINGS_PATH, json=payload),
            endpoint="frame-rankings",
        )
