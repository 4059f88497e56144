"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the application services, and turns every typed failure into a
user-visible message and a process exit code.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

from chanscope.core.services.channel_service import ChannelService
from chanscope.core.services.frame_service import FrameRankingService
from chanscope.domain.interfaces.user_interface import UserInterface
from chanscope.domain.models.channel import SortOrder
from chanscope.domain.models.errors import ChanscopeError, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXIT_OK = 0


class CommandHandler:
    """Handles incoming commands and delegates to the channel and frame services."""

    def __init__(
        self,
        channel_service: ChannelService,
        frame_service: FrameRankingService,
        ui: UserInterface,
        request_timeout: Optional[float] = None,
    ):
        """Initializes the CommandHandler.

        Args:
            channel_service: The channel aggregator.
            frame_service: The popular frames service.
            ui: Where results and errors are shown.
            request_timeout: Optional deadline in seconds for a whole command.
                On expiry every in-flight upstream call is cancelled.
        """
        self.channel_service = channel_service
        self.frame_service = frame_service
        self.ui = ui
        self.request_timeout = request_timeout

    async def _with_deadline(self, awaitable: Awaitable[T]) -> T:
        if not self.request_timeout:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamError(None, f"request timed out after {self.request_timeout}s") from e

    def _report(self, error: ChanscopeError, command: str) -> int:
        logger.error(f"'{command}' failed: {type(error).__name__}: {error}")
        self.ui.display_error(str(error))
        return error.exit_code

    async def handle_channels(
        self,
        fid: Any,
        sort: SortOrder = SortOrder.MEMBERSHIP_FIRST,
        name_filter: Optional[str] = None,
        include_membership: bool = True,
    ) -> int:
        """Handles the 'channels' command. Returns the process exit code."""
        logger.info(f"Handling 'channels' for FID {fid} (sort={sort.value}, filter={name_filter!r}, membership={include_membership})")
        try:
            subject = ChannelService.require_fid(fid)
            self.ui.display_info(f"Fetching channels followed by FID {subject}...")
            if include_membership:
                items = await self._with_deadline(
                    self.channel_service.list_with_membership(subject, sort=sort, name_filter=name_filter)
                )
                self.ui.display_channels(subject, items)
            else:
                channels = await self._with_deadline(
                    self.channel_service.list_channels(subject, name_filter=name_filter)
                )
                self.ui.display_raw_channels(subject, channels)
        except ChanscopeError as e:
            return self._report(e, "channels")
        return EXIT_OK

    async def handle_frames(self, fid: Any, top_n: int = 0) -> int:
        """Handles the 'frames' command. Returns the process exit code."""
        logger.info(f"Handling 'frames' for FID {fid} (top={top_n or 'default'})")
        try:
            subject = ChannelService.require_fid(fid)
            self.ui.display_info(f"Ranking frames for accounts engaged with FID {subject}...")
            frames = await self._with_deadline(self.frame_service.popular_frames(subject, top_n=top_n))
            self.ui.display_frames(subject, frames)
        except ChanscopeError as e:
            return self._report(e, "frames")
        return EXIT_OK

