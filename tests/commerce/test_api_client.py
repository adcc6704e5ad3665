import httpx
import pytest

from application.utils.backoff import BackoffPolicy
from infrastructure.external.api_clients import (
    BaseAPIClient,
    NotFoundError,
    ServerError,
    TransportError,
)


def _client(handler, backoff=None) -> BaseAPIClient:
    return BaseAPIClient("https://api.test", backoff=backoff, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_retries_server_errors_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, json={"error": "busy"})
        return httpx.Response(200, json={"ok": True})

    async with _client(handler, BackoffPolicy.no_wait(3)) as client:
        resp = await client.get("/thing")
    assert resp.json() == {"ok": True}
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404, json={"error": {"message": "nope"}})

    with pytest.raises(NotFoundError) as exc_info:
        await _client(handler, BackoffPolicy.no_wait(3)).get("/missing")
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "nope"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_gives_up_after_budget():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(ServerError):
        await _client(handler, BackoffPolicy.no_wait(2)).get("/down")
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_without_backoff_single_attempt_and_transport_error():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(TransportError):
        await _client(handler).get("/slow")
    assert len(calls) == 1


def test_backoff_policy_validates():
    with pytest.raises(ValueError):
        BackoffPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        BackoffPolicy(base_delay=-1)
