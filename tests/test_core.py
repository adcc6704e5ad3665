import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.exceptions import business_code_to_http_status, register_exception_handlers
from core.logging_config import redact_secrets
from core.settings import ChainSettings, CommerceSettings
from domain.common.exceptions import (
    ChargeNotFoundError,
    ConfigurationError,
    RefundTransactionError,
    UpstreamUnavailableError,
    WebhookSignatureError,
)
from shared.codes import BusinessCode


@pytest.mark.parametrize(
    "exc,status",
    [
        (WebhookSignatureError(), 401),
        (UpstreamUnavailableError("down"), 502),
        (ChargeNotFoundError("abc"), 404),
        (RefundTransactionError("reverted"), 502),
        (ConfigurationError("missing"), 500),
    ],
)
def test_error_taxonomy_maps_to_http(exc, status):
    assert business_code_to_http_status(exc.code) == status


def test_unknown_codes_default_to_400():
    assert business_code_to_http_status(12345) == 400
    assert business_code_to_http_status(BusinessCode.PARAM_VALIDATION_ERROR) == 400


def test_handlers_render_error_body():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise RefundTransactionError("reverted", tx_hash="0xdead")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("unexpected")

    @app.get("/typed/{n}")
    async def typed(n: int):
        return {"n": n}

    client = TestClient(app, raise_server_exceptions=False)

    body = client.get("/boom").json()
    assert body["error"] == "reverted"
    assert body["type"] == "TransactionError"
    assert body["details"] == {"retryable": True, "tx_hash": "0xdead"}
    assert body["timestamp"].endswith("Z")

    crash = client.get("/crash")
    assert crash.status_code == 500
    assert crash.json()["details"] is None

    invalid = client.get("/typed/x")
    assert invalid.status_code == 422
    assert invalid.json()["type"] == "ValidationError"

    assert client.get("/nowhere").status_code == 404


def test_secrets_are_redacted_from_log_events():
    event = redact_secrets(None, "info", {"event": "x", "private_key": "0xabc", "signature": "", "charge_id": "abc"})
    assert event == {"event": "x", "private_key": "***", "signature": None, "charge_id": "abc"}


def test_private_key_validation_and_normalization():
    key = "ab" * 32
    assert ChainSettings(private_key=key).require_private_key() == "0x" + key
    assert ChainSettings(private_key="0x" + key).require_private_key() == "0x" + key
    with pytest.raises(ConfigurationError) as missing:
        ChainSettings(private_key=None).require_private_key()
    assert missing.value.message == "Merchant configuration error: Missing signing key"
    with pytest.raises(ConfigurationError) as malformed:
        ChainSettings(private_key="0x1234").require_private_key()
    assert malformed.value.message == "Merchant configuration error: Invalid signing key format"


def test_commerce_secrets_required_on_use():
    settings = CommerceSettings()
    with pytest.raises(ConfigurationError):
        settings.require_api_key()
    with pytest.raises(ConfigurationError):
        settings.require_webhook_secret()
    assert CommerceSettings(api_key=" key ").require_api_key() == "key"
