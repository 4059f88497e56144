import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from chanscope.domain.interfaces.channel_source import ChannelSource
from chanscope.domain.models.errors import MalformedResponseError, UpstreamError
from chanscope.infrastructure.upstream.membership_resolver import MembershipResolver


@pytest.fixture
def mock_source():
    source = MagicMock(spec=ChannelSource)
    source.fetch_channel_members = AsyncMock()
    return source


@pytest.mark.asyncio
async def test_member_when_fid_listed(mock_source):
    mock_source.fetch_channel_members.return_value = {"result": {"members": [{"fid": 10}, {"fid": 3}]}}

    assert await MembershipResolver(mock_source).is_member(3, "base") is True
    mock_source.fetch_channel_members.assert_awaited_once_with("base", 3)


@pytest.mark.asyncio
async def test_not_member_when_fid_absent(mock_source):
    mock_source.fetch_channel_members.return_value = {"result": {"members": [{"fid": 10}, {"fid": "bad"}, {}]}}
    assert await MembershipResolver(mock_source).is_member(3, "base") is False


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    UpstreamError(500, "Internal Server Error"),
    UpstreamError(429, "rate limited after 3 attempts"),
    MalformedResponseError("bad shape"),
    RuntimeError("unexpected"),
])
async def test_failures_degrade_to_false(mock_source, error):
    mock_source.fetch_channel_members.side_effect = error
    assert await MembershipResolver(mock_source).is_member(3, "base") is False


@pytest.mark.asyncio
async def test_missing_members_list_degrades_to_false(mock_source):
    mock_source.fetch_channel_members.return_value = {"result": {}}
    assert await MembershipResolver(mock_source).is_member(3, "base") is False


@pytest.mark.asyncio
async def test_cancellation_propagates(mock_source):
    mock_source.fetch_channel_members.side_effect = asyncio.CancelledError()
    with pytest.raises(asyncio.CancelledError):
        await MembershipResolver(mock_source).is_member(3, "base")


@pytest.mark.asyncio
async def test_resolve_returns_membership_result(mock_source):
    mock_source.fetch_channel_members.return_value = {"result": {"members": [{"fid": 3}]}}

    result = await MembershipResolver(mock_source).resolve(3, "base")

    assert result.record_id == "base"
    assert result.subject_key == 3
    assert result.is_member is True
