"""Interface for presenting results to the user.

Defines the contract for displaying channel listings, frame rankings,
errors and informational messages, allowing different UI implementations
(e.g., rich console, plain JSON).
"""

import abc
from typing import Any, Sequence

from chanscope.domain.models.channel import Channel, ChannelMembership, PopularFrame
from chanscope.domain.models.common import Fid


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_channels(self, fid: Fid, items: Sequence[ChannelMembership], **kwargs: Any) -> None:
        """Displays a decorated channel listing.

        Args:
            fid: The subject FID the listing belongs to.
            items: Channels with their membership flag, already ordered.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_raw_channels(self, fid: Fid, channels: Sequence[Channel], **kwargs: Any) -> None:
        """Displays channels without membership decoration."""
        pass

    @abc.abstractmethod
    def display_frames(self, fid: Fid, frames: Sequence[PopularFrame], **kwargs: Any) -> None:
        """Displays ranked popular frames."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
