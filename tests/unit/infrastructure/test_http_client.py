import httpx
import pytest

from chanscope.infrastructure.http.http_client import AsyncHttpClient, OutcomeKind


def client_for(handler, **kwargs) -> AsyncHttpClient:
    return AsyncHttpClient(base_url="https://api.test", transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_success_returns_decoded_body():
    async with client_for(lambda request: httpx.Response(200, json={"result": {"channels": []}})) as client:
        outcome = await client.get("/v1/user-following-channels", params={"fid": 3})

    assert outcome.ok
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.status == 200
    assert outcome.body == {"result": {"channels": []}}
    assert outcome.url == "https://api.test/v1/user-following-channels?fid=3"


@pytest.mark.asyncio
async def test_429_is_classified_as_rate_limited():
    handler = lambda request: httpx.Response(429, headers={"Retry-After": "2"})
    async with client_for(handler) as client:
        outcome = await client.get("/x")

    assert outcome.kind is OutcomeKind.RATE_LIMITED
    assert outcome.status == 429
    assert outcome.retry_after == 2.0
    assert not outcome.ok


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 404, 500, 503])
async def test_other_non_2xx_is_failure(status):
    async with client_for(lambda request: httpx.Response(status, text="nope")) as client:
        outcome = await client.get("/x")

    assert outcome.kind is OutcomeKind.FAILURE
    assert outcome.status == status


@pytest.mark.asyncio
async def test_invalid_json_is_malformed():
    async with client_for(lambda request: httpx.Response(200, text="<html>")) as client:
        outcome = await client.get("/x")

    assert outcome.kind is OutcomeKind.MALFORMED
    assert outcome.body is None


@pytest.mark.asyncio
async def test_transport_error_is_failure_without_status():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with client_for(handler) as client:
        outcome = await client.get("/x")

    assert outcome.kind is OutcomeKind.FAILURE
    assert outcome.status is None
    assert "ConnectError" in outcome.reason


@pytest.mark.asyncio
async def test_default_and_custom_headers_are_sent():
    seen = {}

    def handler(request):
        seen.update(request.headers)
        return httpx.Response(200, json={})

    async with client_for(handler, headers={"Authorization": "Bearer t0k"}) as client:
        await client.post("/graph", json=[1])

    assert seen["authorization"] == "Bearer t0k"
    assert seen["user-agent"].startswith("chanscope/")
    assert seen["accept"] == "application/json"
