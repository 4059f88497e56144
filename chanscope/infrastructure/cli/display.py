import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from chanscope.domain.interfaces.user_interface import UserInterface
from chanscope.domain.models.channel import Channel, ChannelMembership, PopularFrame
from chanscope.domain.models.common import Fid

logger = logging.getLogger(__name__)


def _format_created(timestamp: int) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, as_json: bool = False, console: Optional[Console] = None, err_console: Optional[Console] = None):
        """Initializes the rich consoles.

        Args:
            as_json: Emit machine-readable JSON on stdout instead of tables.
            console: Console for results (stdout).
            err_console: Console for errors and info (stderr).
        """
        self.as_json = as_json
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def _emit_json(self, payload: Dict[str, Any]) -> None:
        self.console.print(json.dumps(payload, indent=2), markup=False, highlight=False, soft_wrap=True)

    def display_channels(self, fid: Fid, items: Sequence[ChannelMembership], **kwargs: Any) -> None:
        if self.as_json:
            self._emit_json({"fid": fid, "channels": [item.to_dict() for item in items]})
            return

        members = sum(1 for item in items if item.is_member)
        table = Table(
            title=f"Channels for FID {fid} ({members} member / {len(items)} followed)",
            box=ROUNDED,
            title_style="bold white",
        )
        table.add_column("Member", justify="center")
        table.add_column("Channel", style="bold cyan")
        table.add_column("Name")
        table.add_column("Followers", justify="right")
        table.add_column("Created", style="dim")
        for item in items:
            channel = item.channel
            table.add_row(
                Text("✓", style="bold green") if item.is_member else Text("·", style="dim"),
                f"/{channel.id}",
                channel.name,
                f"{channel.follower_count:,}",
                _format_created(channel.created_at),
            )
        self.console.print(table)

    def display_raw_channels(self, fid: Fid, channels: Sequence[Channel], **kwargs: Any) -> None:
        if self.as_json:
            self._emit_json({"fid": fid, "channels": [channel.to_dict() for channel in channels]})
            return

        table = Table(title=f"Channels followed by FID {fid} ({len(channels)})", box=ROUNDED)
        table.add_column("Channel", style="bold cyan")
        table.add_column("Name")
        table.add_column("Followers", justify="right")
        table.add_column("Description", overflow="fold")
        for channel in channels:
            table.add_row(f"/{channel.id}", channel.name, f"{channel.follower_count:,}", channel.description or "")
        self.console.print(table)

    def display_frames(self, fid: Fid, frames: Sequence[PopularFrame], **kwargs: Any) -> None:
        if self.as_json:
            self._emit_json({"fid": fid, "frames": [frame.to_dict() for frame in frames]})
            return

        table = Table(title=f"Popular frames for FID {fid}", box=SIMPLE)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Frame")
        table.add_column("Score", justify="right")
        for index, frame in enumerate(frames, start=1):
            table.add_row(str(index), frame.name or frame.url, f"{frame.score:.4f}")
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.err_console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        if self.as_json:
            logger.info(info_message)
            return
        self.err_console.print(Text(info_message, style="blue"))
