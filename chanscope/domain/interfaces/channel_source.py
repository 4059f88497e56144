"""Interface for the upstream channel service.

Hides the wire details of the remote API. Implementations return decoded
JSON bodies and raise the typed errors from `domain.models.errors`.
"""

import abc
from typing import Any, Dict, List, Optional

from ..models.common import ChannelId, Cursor, Fid


class ChannelSource(abc.ABC):
    """Abstract Base Class for the paginated channel and membership endpoints."""

    @abc.abstractmethod
    async def fetch_channels_page(
        self, fid: Fid, cursor: Optional[Cursor] = None, limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """Fetches one page of channels followed by `fid`.

        Returns:
            The decoded envelope, e.g. `{"result": {"channels": [...]}, "next": {"cursor": "..."}}`.

        Raises:
            UpstreamError: On non-2xx responses or exhausted rate-limit retries.
            MalformedResponseError: If the body is not a JSON object.
        """
        pass

    @abc.abstractmethod
    async def fetch_channel_members(self, channel_id: ChannelId, fid: Fid) -> Dict[str, Any]:
        """Fetches the members of `channel_id`, filtered by `fid`.

        Returns:
            The decoded envelope, e.g. `{"result": {"members": [{"fid": 1, ...}]}}`.
        """
        pass


class FrameRankingSource(abc.ABC):
    """Abstract Base Class for the engagement graph and frame ranking endpoints."""

    @abc.abstractmethod
    async def fetch_engaged_fids(self, fid: Fid) -> Any:
        """Returns the raw engagement neighbours payload for `fid`."""
        pass

    @abc.abstractmethod
    async def fetch_frame_rankings(self, fids: List[Fid]) -> Any:
        """Returns the raw personalized frame rankings payload for `fids`."""
        pass
