import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from typer.testing import CliRunner

from chanscope.domain.models.channel import Channel
from chanscope.infrastructure.config import settings


def channel_payload(channel_id: str, name: Optional[str] = None, followers: int = 0, **extra: Any) -> Dict[str, Any]:
    """Builds one upstream channel entry in the camelCase wire shape."""
    payload = {
        "id": channel_id,
        "name": name if name is not None else channel_id.title(),
        "followerCount": followers,
        "createdAt": 1700000000,
    }
    payload.update(extra)
    return payload


def make_channel(channel_id: str, name: Optional[str] = None, followers: int = 0) -> Channel:
    return Channel.from_payload(channel_payload(channel_id, name=name, followers=followers))


class FakeWarpcast:
    """Scripted upstream for httpx.MockTransport.

    `pages` maps an incoming cursor (None for the first page) to the page body.
    `members` maps a channel id to the FIDs listed as its members.
    """

    def __init__(self, pages: Dict[Optional[str], Any], members: Optional[Dict[str, List[int]]] = None):
        self.pages = pages
        self.members = members or {}
        self.requests: List[httpx.Request] = []
        self.member_failures: Dict[str, int] = {}
        self.graph: Dict[str, Any] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v1/user-following-channels":
            cursor = request.url.params.get("cursor")
            if cursor not in self.pages:
                return httpx.Response(404, json={"errors": [{"message": "unknown cursor"}]})
            return httpx.Response(200, json=self.pages[cursor])
        if path == "/fc/channel-members":
            channel_id = request.url.params.get("channelId")
            if channel_id in self.member_failures:
                return httpx.Response(self.member_failures[channel_id], json={})
            fids = self.members.get(channel_id, [])
            return httpx.Response(200, json={"result": {"members": [{"fid": f} for f in fids]}})
        if path in self.graph:
            return httpx.Response(200, json=self.graph[path])
        return httpx.Response(404, text="not found")

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def json_bodies(self, path: str) -> List[Any]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]


def page(channels: List[Dict[str, Any]], cursor: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"result": {"channels": channels}}
    if cursor is not None:
        body["next"] = {"cursor": cursor}
    return body


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def no_sleep() -> Callable[[float], Any]:
    """A sleep replacement that records requested delays without waiting."""
    delays: List[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    fake_sleep.delays = delays
    return fake_sleep


@pytest.fixture(autouse=True)
def isolated_configuration(monkeypatch):
    """Keeps tests independent of the developer's environment and config files."""
    for name in ("WARPCAST_API_TOKEN", "CHANSCOPE_WARPCAST_API_TOKEN", "CHANSCOPE_REQUEST_TIMEOUT_SECONDS",
                 "CHANSCOPE_RATE_LIMIT_REQUESTS_PER_MINUTE", "CHANSCOPE_CACHE_TTL_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    settings.reset_configuration()
    settings.clear_test_config()
    yield
    settings.reset_configuration()
    settings.clear_test_config()
