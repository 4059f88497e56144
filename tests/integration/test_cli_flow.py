import asyncio
import json
from functools import partial

import httpx
import pytest
from typer.testing import CliRunner

from chanscope import main
from chanscope.main import app
from chanscope.infrastructure.config.settings import set_config_for_testing
from chanscope.infrastructure.upstream.graph_client import ENGAGEMENT_NEIGHBORS_PATH, FRAME_RANKINGS_PATH

from conftest import FakeWarpcast, channel_payload, page

# These fixtures are defined in tests/conftest.py:
# runner: CliRunner
# isolated_configuration: resets settings and drops API tokens from the environment


@pytest.fixture
def upstream():
    return FakeWarpcast(
        pages={
            None: page([channel_payload("dev", name="Dev", followers=10)], cursor="p2"),
            "p2": page([channel_payload("memes", name="Memes", followers=900)]),
        },
        members={"memes": [3], "dev": [99]},
    )


@pytest.fixture(autouse=True)
def wired_app(mocker, upstream):
    """Routes every HTTP call of the real dependency graph through the fake upstream.

    Configuration files and logging setup are skipped so tests never touch the
    developer's ~/.chanscope or the root logger.
    """
    mocker.patch("chanscope.main.load_configuration")
    mocker.patch("chanscope.main.setup_logging")
    real_create = main.create_dependencies
    mocker.patch(
        "chanscope.main.create_dependencies",
        side_effect=partial(real_create, transport=httpx.MockTransport(upstream)),
    )
    return upstream


def test_channels_json_flow(runner: CliRunner, upstream: FakeWarpcast):
    """Test the full 'channels' flow: two pages, membership fan-out, membership-first ordering."""
    result = runner.invoke(app, ["channels", "--fid", "3", "--json"])

    assert result.exit_code == 0, f"CLI command failed: {result.output}"
    payload = json.loads(result.stdout)
    assert payload["fid"] == 3
    assert [(c["id"], c["isMember"]) for c in payload["channels"]] == [("memes", True), ("dev", False)]

    assert upstream.paths().count("/v1/user-following-channels") == 2
    assert upstream.paths().count("/fc/channel-members") == 2


def test_channels_sorted_by_followers_with_name_filter(runner: CliRunner, upstream: FakeWarpcast):
    result = runner.invoke(app, ["channels", "-f", "3", "--sort", "followers", "--name", "DE", "--json"])

    assert result.exit_code == 0, result.output
    assert [c["id"] for c in json.loads(result.stdout)["channels"]] == ["dev"]
    member_checks = [r.url.params["channelId"] for r in upstream.requests if r.url.path == "/fc/channel-members"]
    assert member_checks == ["dev"]


def test_channels_without_membership(runner: CliRunner, upstream: FakeWarpcast):
    result = runner.invoke(app, ["channels", "--fid", "3", "--no-membership", "--json"])

    assert result.exit_code == 0, result.output
    assert [c["id"] for c in json.loads(result.stdout)["channels"]] == ["dev", "memes"]
    assert "/fc/channel-members" not in upstream.paths()


def test_channels_table_output(runner: CliRunner):
    result = runner.invoke(app, ["channels", "--fid", "3"])

    assert result.exit_code == 0, result.output
    assert "/memes" in result.stdout
    assert "/dev" in result.stdout


def test_membership_failure_degrades_to_non_member(runner: CliRunner, upstream: FakeWarpcast):
    upstream.member_failures["memes"] = 500

    result = runner.invoke(app, ["channels", "--fid", "3", "--json"])

    assert result.exit_code == 0, result.output
    assert all(c["isMember"] is False for c in json.loads(result.stdout)["channels"])


def test_missing_fid_exits_with_code_2(runner: CliRunner, upstream: FakeWarpcast):
    result = runner.invoke(app, ["channels"])

    assert result.exit_code == 2
    assert upstream.requests == []


def test_empty_collection_exits_with_code_3(runner: CliRunner, upstream: FakeWarpcast):
    upstream.pages = {None: page([])}
    result = runner.invoke(app, ["channels", "--fid", "3"])
    assert result.exit_code == 3


def test_upstream_failure_exits_with_code_4(runner: CliRunner, upstream: FakeWarpcast):
    upstream.pages = {None: page([channel_payload("dev")], cursor="broken")}
    result = runner.invoke(app, ["channels", "--fid", "3"])
    assert result.exit_code == 4


def test_malformed_page_exits_with_code_5(runner: CliRunner, upstream: FakeWarpcast):
    upstream.pages = {None: {"next": {"cursor": "p2"}}}
    result = runner.invoke(app, ["channels", "--fid", "3"])
    assert result.exit_code == 5


def test_page_ceiling_from_configuration(runner: CliRunner, upstream: FakeWarpcast):
    set_config_for_testing({"pagination.max_pages": 1})
    result = runner.invoke(app, ["channels", "--fid", "3"])
    assert result.exit_code == 4
    assert upstream.paths().count("/v1/user-following-channels") == 1


def test_bearer_token_is_sent_when_configured(runner: CliRunner, upstream: FakeWarpcast):
    set_config_for_testing({"warpcast.api_token": "secret-token"})

    result = runner.invoke(app, ["channels", "--fid", "3", "--no-membership", "--json"])

    assert result.exit_code == 0, result.output
    assert all(r.headers["authorization"] == "Bearer secret-token" for r in upstream.requests)


def test_frames_json_flow(runner: CliRunner, upstream: FakeWarpcast):
    upstream.graph[ENGAGEMENT_NEIGHBORS_PATH] = {"result": [{"fid": 5}, {"fid": 6}, {"fid": 7}]}
    upstream.graph[FRAME_RANKINGS_PATH] = {"result": [{"url": "https://frame.one", "score": 0.9, "frameName": "One"}]}

    result = runner.invoke(app, ["frames", "--fid", "3", "--top", "2", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["frames"] == [{"url": "https://frame.one", "score": 0.9, "frameName": "One"}]
    assert upstream.json_bodies(FRAME_RANKINGS_PATH) == [[5, 6]]


def test_retry_backoff_comes_from_configuration():
    set_config_for_testing({"retry.max_attempts": 5, "retry.base_delay_seconds": 0.5})

    dependencies = main.create_dependencies(as_json=True)
    try:
        policy = dependencies['retry_policy']
        assert policy.max_attempts == 5
        assert policy.delay_for(2) == 1.0
        assert dependencies['rate_limiter'] is None
    finally:
        asyncio.run(main.close_dependencies(dependencies))
