"""Domain models for channels, membership and cached collections.

Records are immutable once fetched. A refetch replaces the whole cached
sequence rather than patching individual records.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from chanscope.domain.models.common import CacheKey, ChannelId, Fid
from chanscope.domain.models.errors import MalformedResponseError


def _as_int(value: Any, default: int = 0) -> int:
    """Best-effort integer coercion for optional numeric payload fields."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Channel:
    """Entity representing one channel in a fetched collection."""
    id: ChannelId
    name: str
    description: Optional[str] = None
    follower_count: int = 0
    created_at: int = 0 # Unix timestamp
    lead_fid: Optional[Fid] = None
    moderator_fids: Tuple[Fid, ...] = ()
    image_url: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Channel":
        """Builds a Channel from one upstream collection entry.

        Only `id` is required. A missing `name` falls back to the id; everything
        else is optional and defaults when absent or unparseable.

        Raises:
            MalformedResponseError: If the entry is not an object or lacks an id.
        """
        if not isinstance(payload, Mapping):
            raise MalformedResponseError(f"Channel entry is not an object: {payload!r}")
        channel_id = payload.get("id")
        if not channel_id:
            raise MalformedResponseError(f"Channel entry missing id: {payload!r}")
        name = payload.get("name")

        lead_fid = payload.get("leadFid")
        moderators = payload.get("moderatorFids") or []
        if not isinstance(moderators, (list, tuple)):
            moderators = []

        return cls(
            id=ChannelId(str(channel_id)),
            name=str(name) if name is not None else str(channel_id),
            description=payload.get("description"),
            follower_count=max(0, _as_int(payload.get("followerCount"))),
            created_at=_as_int(payload.get("createdAt")),
            lead_fid=Fid(_as_int(lead_fid)) if lead_fid is not None else None,
            moderator_fids=tuple(Fid(_as_int(m)) for m in moderators),
            image_url=payload.get("imageUrl"),
            url=payload.get("url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializes back to the upstream camelCase shape."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "followerCount": self.follower_count,
            "createdAt": self.created_at,
            "leadFid": self.lead_fid,
            "moderatorFids": list(self.moderator_fids),
            "imageUrl": self.image_url,
            "url": self.url,
        }


@dataclass(frozen=True)
class MembershipResult:
    """Derived fact: whether a subject FID is a member of a channel. Never cached."""
    record_id: ChannelId
    subject_key: Fid
    is_member: bool


@dataclass(frozen=True)
class ChannelMembership:
    """A channel decorated with the subject's membership flag."""
    channel: Channel
    is_member: bool

    def to_dict(self) -> Dict[str, Any]:
        data = self.channel.to_dict()
        data["isMember"] = self.is_member
        return data


@dataclass(frozen=True)
class CacheEntry:
    """A cached collection for one subject key."""
    key: CacheKey
    records: Tuple[Channel, ...]
    fetched_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.fetched_at < ttl_seconds


class SortOrder(str, Enum):
    """Caller-selectable orderings for decorated channel lists."""
    MEMBERSHIP_FIRST = "membership"
    FOLLOWERS_DESC = "followers"
    NONE = "none"


def sort_channels(items: Sequence[ChannelMembership], order: SortOrder) -> List[ChannelMembership]:
    """Returns a new list ordered by `order`. Both orderings are stable."""
    if order is SortOrder.MEMBERSHIP_FIRST:
        return sorted(items, key=lambda item: not item.is_member)
    if order is SortOrder.FOLLOWERS_DESC:
        return sorted(items, key=lambda item: item.channel.follower_count, reverse=True)
    return list(items)


def filter_by_name(records: Sequence[Channel], name_filter: Optional[str]) -> List[Channel]:
    """Keeps records whose name contains `name_filter`, case-insensitively."""
    if not name_filter:
        return list(records)
    needle = name_filter.strip().lower()
    return [record for record in records if needle in record.name.lower()]


@dataclass(frozen=True)
class PopularFrame:
    """A ranked frame from the personalized frames endpoint."""
    url: str
    score: float = 0.0
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "score": self.score, "frameName": self.name}

