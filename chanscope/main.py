"""Main entry point for the chanscope application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import typer
from typing_extensions import Annotated

from chanscope.core.command_handler import CommandHandler
from chanscope.core.services.channel_service import ChannelService
from chanscope.core.services.frame_service import FrameRankingService
from chanscope.domain.models.channel import SortOrder
from chanscope.infrastructure.cache.caching_service import TTLCollectionCache
from chanscope.infrastructure.cli.display import ConsoleDisplay
from chanscope.infrastructure.config.settings import (
    get_api_base_url, get_api_token, get_cache_ttl_seconds, get_config, get_frames_top_fids,
    get_graph_base_url, get_http_timeout, get_max_pages, get_membership_concurrency, get_page_limit,
    get_rate_limit, get_request_timeout, get_retry_backoff, load_configuration,
)
from chanscope.infrastructure.http.http_client import AsyncHttpClient
from chanscope.infrastructure.monitoring.logger_setup import resolve_level, setup_logging
from chanscope.infrastructure.resilience.api_retry import RetryPolicy
from chanscope.infrastructure.resilience.rate_limiter import RateLimiter
from chanscope.infrastructure.upstream.graph_client import GraphClient
from chanscope.infrastructure.upstream.membership_resolver import MembershipResolver
from chanscope.infrastructure.upstream.paginated_fetcher import PaginatedFetcher
from chanscope.infrastructure.upstream.warpcast_client import WarpcastClient

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies(
    as_json: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. Configuration must already be loaded.

    Args:
        as_json: Whether the UI should emit JSON instead of tables.
        transport: Optional httpx transport shared by both upstream clients.
    """
    dependencies: Dict[str, Any] = {}

    dependencies['ui'] = ConsoleDisplay(as_json=as_json)

    # 1. Transport and resilience
    headers = {}
    token = get_api_token()
    if token:
        headers['Authorization'] = f"Bearer {token}"
    timeout = get_http_timeout()
    dependencies['warpcast_http'] = AsyncHttpClient(
        base_url=get_api_base_url(), timeout_seconds=timeout, headers=headers, transport=transport,
    )
    dependencies['graph_http'] = AsyncHttpClient(
        base_url=get_graph_base_url(), timeout_seconds=timeout, transport=transport,
    )
    requests_per_minute = get_rate_limit()
    dependencies['rate_limiter'] = RateLimiter(max_requests=requests_per_minute, time_window=60) if requests_per_minute else None
    dependencies['retry_policy'] = RetryPolicy.from_backoff(get_retry_backoff(), rate_limiter=dependencies['rate_limiter'])

    # 2. Upstream adapters and collaborators
    dependencies['channel_source'] = WarpcastClient(dependencies['warpcast_http'], dependencies['retry_policy'])
    dependencies['frame_source'] = GraphClient(dependencies['graph_http'], dependencies['retry_policy'])
    dependencies['fetcher'] = PaginatedFetcher(
        dependencies['channel_source'], max_pages=get_max_pages(), page_limit=get_page_limit(),
    )
    dependencies['resolver'] = MembershipResolver(dependencies['channel_source'])
    dependencies['cache'] = TTLCollectionCache(ttl_seconds=get_cache_ttl_seconds())

    # 3. Core services
    dependencies['channel_service'] = ChannelService(
        cache=dependencies['cache'],
        fetcher=dependencies['fetcher'],
        resolver=dependencies['resolver'],
        membership_concurrency=get_membership_concurrency(),
    )
    dependencies['frame_service'] = FrameRankingService(dependencies['frame_source'], top_fids=get_frames_top_fids())

    # 4. Command handler
    dependencies['command_handler'] = CommandHandler(
        channel_service=dependencies['channel_service'],
        frame_service=dependencies['frame_service'],
        ui=dependencies['ui'],
        request_timeout=get_request_timeout(),
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


async def close_dependencies(dependencies: Dict[str, Any]) -> None:
    """Releases network resources held by the dependency graph."""
    for name in ('warpcast_http', 'graph_http'):
        client = dependencies.get(name)
        if client is not None:
            await client.aclose()


# --- Typer App Definition ---
app = typer.Typer(
    name="chanscope",
    help="chanscope: list the Farcaster channels a FID follows, with membership, plus popular frames.",
    add_completion=False,
)


def run_command(as_json: bool, action: Callable[[CommandHandler], Awaitable[int]]) -> None:
    """Builds dependencies, runs one async command, and exits with its code."""

    async def runner() -> int:
        dependencies = create_dependencies(as_json=as_json)
        try:
            return await action(dependencies['command_handler'])
        finally:
            await close_dependencies(dependencies)

    exit_code = asyncio.run(runner())
    if exit_code:
        raise typer.Exit(code=exit_code)


# --- CLI Commands ---

FidOption = Annotated[Optional[str], typer.Option("--fid", "-f", help="FID of the subject account.")]
JsonOption = Annotated[bool, typer.Option("--json", help="Emit JSON instead of a table.")]


@app.command()
def channels(
    fid: FidOption = None,
    sort: Annotated[SortOrder, typer.Option("--sort", "-s", case_sensitive=False, help="Result ordering.")] = SortOrder.MEMBERSHIP_FIRST,
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Only channels whose name contains this text.")] = None,
    membership: Annotated[bool, typer.Option("--membership/--no-membership", help="Check membership for every channel.")] = True,
    as_json: JsonOption = False,
):
    """List channels followed by a FID, flagging the ones it is a member of."""
    run_command(as_json, lambda handler: handler.handle_channels(
        fid, sort=sort, name_filter=name, include_membership=membership,
    ))


@app.command()
def frames(
    fid: FidOption = None,
    top: Annotated[Optional[int], typer.Option("--top", "-t", min=1, help="How many engaged FIDs to rank frames for.")] = None,
    as_json: JsonOption = False,
):
    """Show popular frames among the accounts most engaged with a FID."""
    run_command(as_json, lambda handler: handler.handle_frames(fid, top_n=top or 0))


@app.callback()
def main_callback(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR.")] = None,
):
    """Load configuration and logging before any command runs."""
    load_configuration()
    setup_logging(
        log_level=resolve_level(log_level or get_config('logging.level')),
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )


def cli_entry_point():
    """Function called by the console script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
