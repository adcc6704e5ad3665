import json

import httpx
import pytest

from core.settings import CommerceSettings
from domain.common.exceptions import (
    ChargeNotFoundError,
    ChargeValidationError,
    ConfigurationError,
    UpstreamUnavailableError,
    WebhookSignatureError,
)
from infrastructure.external.commerce import CommerceClient, compute_signature


SECRET = "test-webhook-secret"


def _settings(**overrides) -> CommerceSettings:
    values = {"api_key": "key-123", "webhook_secret": SECRET, "api_url": "https://commerce.test"}
    values.update(overrides)
    return CommerceSettings(**values)


def _client(handler, **kwargs) -> CommerceClient:
    return CommerceClient(_settings(), transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_get_charge_sends_auth_headers(charge_factory):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        return httpx.Response(200, json={"data": charge_factory("abc")})

    client = _client(handler)
    charge = await client.get_charge("abc")
    await client.aclose()

    assert charge.id == "abc"
    assert seen["url"] == "https://commerce.test/charges/abc"
    assert seen["headers"]["X-CC-Api-Key"] == "key-123"
    assert seen["headers"]["X-CC-Version"] == "2018-03-22"


@pytest.mark.asyncio
async def test_get_charge_non_success_is_not_found():
    client = _client(lambda request: httpx.Response(404, json={"error": {"message": "not found"}}))
    with pytest.raises(ChargeNotFoundError):
        await client.get_charge("missing")


@pytest.mark.asyncio
async def test_get_charge_transport_failure_is_upstream_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailableError):
        await _client(handler).get_charge("abc")


@pytest.mark.asyncio
async def test_list_charges_passes_cursor_and_reads_next(charge_factory):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(
            200,
            json={"data": [charge_factory("a"), charge_factory("b")], "pagination": {"cursor_next": "next-1"}},
        )

    page = await _client(handler, page_limit=50).list_charges(cursor="cur-0")

    assert [c.id for c in page.charges] == ["a", "b"]
    assert page.cursor_next == "next-1"
    assert seen == [{"cursor": "cur-0", "limit": "50"}]


@pytest.mark.asyncio
async def test_list_charges_without_next_cursor(charge_factory):
    client = _client(lambda r: httpx.Response(200, json={"data": [], "pagination": {}}))
    page = await client.list_charges()
    assert page.charges == [] and page.cursor_next is None


@pytest.mark.asyncio
async def test_list_charges_skips_malformed_items(charge_factory):
    calls = []

    def handler(request):
        calls.append(request)
        data = [charge_factory("good"), charge_factory("bad", created_at="not-a-date"), {"name": "no id"}]
        return httpx.Response(200, json={"data": data, "pagination": {"cursor_next": "cur-1"}})

    page = await _client(handler).list_charges()

    assert [c.id for c in page.charges] == ["good"]
    assert page.cursor_next == "cur-1"
    assert len(calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 500, 503])
async def test_list_charges_failure_is_upstream_unavailable(status):
    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await _client(lambda r: httpx.Response(status, json={})).list_charges()
    assert exc_info.value.details["status_code"] == status


@pytest.mark.asyncio
async def test_update_metadata_posts_full_bag(charge_factory):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": charge_factory("abc", metadata=seen["body"]["metadata"])})

    charge = await _client(handler).update_metadata("abc", {"order": "42", "refunded": True})

    assert seen["method"] == "POST"
    assert seen["body"] == {"metadata": {"order": "42", "refunded": True}}
    assert charge.metadata["order"] == "42"


@pytest.mark.asyncio
async def test_update_metadata_failure_is_upstream_unavailable():
    with pytest.raises(UpstreamUnavailableError):
        await _client(lambda r: httpx.Response(400, json={})).update_metadata("abc", {})


def test_parse_webhook_verifies_before_parsing():
    client = _client(lambda r: httpx.Response(200))
    body = json.dumps({"event": {"id": "e1", "type": "charge:pending", "data": {"id": "abc"}}}).encode()

    event = client.parse_webhook({"X-CC-Webhook-Signature": compute_signature(SECRET, body)}, body)
    assert event.type == "charge:pending"
    assert event.charge_id == "abc"

    with pytest.raises(WebhookSignatureError) as missing:
        client.parse_webhook({}, body)
    assert missing.value.message == "No signature provided"

    with pytest.raises(WebhookSignatureError) as invalid:
        client.parse_webhook({"x-cc-webhook-signature": "0" * 64}, b"not even json")
    assert invalid.value.message == "Invalid signature"


def test_parse_webhook_malformed_payload_after_valid_signature():
    client = _client(lambda r: httpx.Response(200))
    for body in (b"not json", b"[]", b'{"event": {"data": {}}}'):
        with pytest.raises(ChargeValidationError):
            client.parse_webhook({"x-cc-webhook-signature": compute_signature(SECRET, body)}, body)


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_request():
    calls = []
    client = CommerceClient(_settings(api_key=None), transport=httpx.MockTransport(lambda r: calls.append(r)))

    with pytest.raises(ConfigurationError):
        await client.get_charge("abc")
    with pytest.raises(ConfigurationError):
        await client.update_metadata("abc", {})
    assert calls == []

    body = json.dumps({"event": {"id": "e1", "type": "charge:pending", "data": {"id": "abc"}}}).encode()
    event = client.parse_webhook({"x-cc-webhook-signature": compute_signature(SECRET, body)}, body)
    assert event.charge_id == "abc"


def test_missing_webhook_secret_is_configuration_error():
    client = CommerceClient(_settings(webhook_secret=None))
    with pytest.raises(ConfigurationError):
        client.parse_webhook({"x-cc-webhook-signature": "abc"}, b"{}")
