"""Application service: popular frames for a FID.

Looks up the FIDs most engaged with the subject, keeps the top N, and asks
the ranking endpoint for frames personalized to that neighbourhood.
Results are not cached.
"""

import logging
from typing import Any, List, Mapping

from chanscope.domain.interfaces.channel_source import FrameRankingSource
from chanscope.domain.models.channel import PopularFrame
from chanscope.domain.models.common import Fid, parse_fid
from chanscope.domain.models.errors import MalformedResponseError, NotFoundError
from chanscope.core.services.channel_service import ChannelService

logger = logging.getLogger(__name__)

DEFAULT_TOP_FIDS = 20


def _unwrap(payload: Any, endpoint: str) -> List[Any]:
    """Accepts a bare JSON list or a {"result": [...]} envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("result"), list):
        return payload["result"]
    raise MalformedResponseError(f"{endpoint}: expected a list or a result list, got {type(payload).__name__}")


def _engaged_fids(entries: List[Any]) -> List[Fid]:
    fids: List[Fid] = []
    for entry in entries:
        raw = entry.get("fid") if isinstance(entry, Mapping) else entry
        fid = parse_fid(raw)
        if fid is not None:
            fids.append(fid)
    return fids


def _frame_from_entry(entry: Any) -> PopularFrame:
    if isinstance(entry, str):
        return PopularFrame(url=entry)
    if not isinstance(entry, Mapping) or not entry.get("url"):
        raise MalformedResponseError(f"Frame entry missing url: {entry!r}")
    try:
        score = float(entry.get("score") or 0.0)
    except (TypeError, ValueError):
        score = 0.0
    return PopularFrame(url=str(entry["url"]), score=score, name=entry.get("frameName") or entry.get("name"))


class FrameRankingService:
    """Ranks frames for the accounts most engaged with a FID."""

    def __init__(self, source: FrameRankingSource, top_fids: int = DEFAULT_TOP_FIDS):
        """Initializes the service.

        Args:
            source: Upstream adapter for the engagement graph and frame rankings.
            top_fids: How many engaged FIDs to rank frames for when the caller gives no limit.
        """
        self.source = source
        self.top_fids = top_fids

    async def popular_frames(self, raw_fid: Any, top_n: int = 0) -> List[PopularFrame]:
        """Returns ranked frames for the subject's engagement neighbourhood.

        Raises:
            MissingKeyError: If the FID is absent or invalid.
            NotFoundError: If no engaged FIDs or no frames come back.
            UpstreamError / MalformedResponseError: From either upstream call.
        """
        fid = ChannelService.require_fid(raw_fid)
        limit = top_n or self.top_fids

        engaged = _engaged_fids(_unwrap(await self.source.fetch_engaged_fids(fid), "engagement-neighbors"))
        if not engaged:
            raise NotFoundError(f"No engaged FIDs found for FID {fid}")
        top = engaged[:limit]
        logger.debug(f"Top {len(top)} engaged FIDs for {fid}: {top}")

        frames = [_frame_from_entry(e) for e in _unwrap(await self.source.fetch_frame_rankings(top), "frame-rankings")]
        if not frames:
            raise NotFoundError(f"No frames found for FID {fid}")
        logger.info(f"Found {len(frames)} popular frames for FID {fid}")
        return frames
