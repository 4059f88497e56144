"""Per-channel membership checks.

A failed check never propagates: membership that cannot be confirmed is
reported as non-membership. Results are recomputed on every call.
"""

import logging
from typing import Any, Dict

from chanscope.domain.interfaces.channel_source import ChannelSource
from chanscope.domain.models.channel import MembershipResult
from chanscope.domain.models.common import ChannelId, Fid
from chanscope.domain.models.errors import ChanscopeError
from chanscope.infrastructure.upstream.paginated_fetcher import extract_collection

logger = logging.getLogger(__name__)


def _member_fid(entry: Any) -> Any:
    if isinstance(entry, dict):
        return entry.get("fid")
    return entry


def _contains_fid(envelope: Dict[str, Any], fid: Fid) -> bool:
    members = extract_collection(envelope, "members")
    for entry in members:
        try:
            if int(_member_fid(entry)) == int(fid):
                return True
        except (TypeError, ValueError):
            continue
    return False


class MembershipResolver:
    """Answers "is FID a member of channel X" against the members endpoint."""

    def __init__(self, source: ChannelSource):
        self.source = source

    async def is_member(self, fid: Fid, channel_id: ChannelId) -> bool:
        """Returns True iff `fid` appears in the members of `channel_id`.

        Any upstream or shape failure degrades to False. Cancellation is not
        a failure and propagates.
        """
        try:
            envelope = await self.source.fetch_channel_members(channel_id, fid)
            return _contains_fid(envelope, fid)
        except ChanscopeError as e:
            logger.warning(f"Membership check failed for FID {fid} in channel '{channel_id}': {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error checking membership for FID {fid} in '{channel_id}': {e}", exc_info=True)
            return False

    async def resolve(self, fid: Fid, channel_id: ChannelId) -> MembershipResult:
        return MembershipResult(record_id=channel_id, subject_key=fid, is_member=await self.is_member(fid, channel_id))
