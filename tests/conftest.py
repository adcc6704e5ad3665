"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

# Well-known throwaway key from the eth-account docs; never funded
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_MERCHANT_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

os.environ.setdefault("COMMERCE__API_KEY", "test-api-key")
os.environ.setdefault("COMMERCE__WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("CHAIN__PRIVATE_KEY", TEST_PRIVATE_KEY)
os.environ.setdefault("CHAIN__MERCHANT_ADDRESS", TEST_MERCHANT_ADDRESS)
os.environ.setdefault("CHAIN__RPC_URL", "http://127.0.0.1:8545")
os.environ.setdefault("TRACKER__BACKEND", "memory")

import asyncio
from typing import Any, Optional

import pytest

from application.dtos.payments import Charge, ChargePage, WebhookEvent
from domain.common.exceptions import ChargeNotFoundError, UpstreamUnavailableError

CUSTOMER_ADDRESS = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "ab" * 32


def make_charge(
    charge_id: str = "abc",
    *,
    amount: Optional[str] = "1.5",
    currency: str = "USDC",
    payer: Optional[str] = CUSTOMER_ADDRESS,
    metadata: Optional[dict] = None,
    statuses: tuple = ("NEW", "PENDING"),
    payment_status: str = "CONFIRMED",
    created_at: str = "2024-05-01T12:00:00Z",
    with_payment: bool = True,
) -> dict[str, Any]:
    """Provider-shaped charge JSON."""
    payments = []
    if with_payment:
        payments.append({
            "network": "base",
            "transaction_id": "0xpaid",
            "status": payment_status,
            "value": {
                "local": {"amount": amount, "currency": "USD"},
                "crypto": {"amount": amount, "currency": currency},
            },
            "payer_addresses": [payer] if payer else [],
        })
    return {
        "id": charge_id,
        "code": charge_id.upper(),
        "name": "Sticker pack",
        "created_at": created_at,
        "payments": payments,
        "timeline": [{"time": created_at, "status": s} for s in statuses],
        "metadata": dict(metadata or {}),
    }


class FakeCommerceGateway:
    """In-memory CommerceGateway; records every metadata write."""

    def __init__(self, charges: Optional[list[dict]] = None) -> None:
        self.charges: dict[str, Charge] = {}
        for raw in charges or []:
            self.put(raw)
        self.metadata_updates: list[tuple[str, dict]] = []
        self.fail_updates = False
        self.pages: dict[Optional[str], list[Any]] = {}
        self.list_calls: list[Optional[str]] = []
        self.get_calls = 0
        self.closed = False

    def put(self, raw: dict) -> None:
        charge = Charge.model_validate(raw)
        self.charges[charge.id] = charge

    async def get_charge(self, charge_id: str) -> Charge:
        self.get_calls += 1
        await asyncio.sleep(0)
        if charge_id not in self.charges:
            raise ChargeNotFoundError(charge_id)
        return self.charges[charge_id].model_copy(deep=True)

    async def list_charges(self, cursor: Optional[str] = None) -> ChargePage:
        # Each cursor maps to a queue of outcomes: a ChargePage or an exception to raise
        self.list_calls.append(cursor)
        outcomes = self.pages[cursor]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def update_metadata(self, charge_id: str, metadata: dict) -> Charge:
        await asyncio.sleep(0)
        if self.fail_updates:
            raise UpstreamUnavailableError("Failed to update charge metadata", status_code=503)
        self.metadata_updates.append((charge_id, dict(metadata)))
        if charge_id in self.charges:
            updated = self.charges[charge_id].model_copy(update={"metadata": dict(metadata)})
            self.charges[charge_id] = updated
            return updated
        return Charge(id=charge_id, metadata=dict(metadata))

    def parse_webhook(self, headers: dict, body: bytes) -> WebhookEvent:
        import json
        return WebhookEvent.model_validate(json.loads(body)["event"])

    async def aclose(self) -> None:
        self.closed = True


class FakeTokenGateway:
    def __init__(self, decimals: int = 6, error: Optional[Exception] = None, delay: float = 0.0) -> None:
        self._decimals = decimals
        self.error = error
        self.delay = delay
        self.transfers: list[tuple[str, int]] = []
        self.closed = False

    async def decimals(self) -> int:
        return self._decimals

    async def transfer(self, recipient: str, amount: int) -> str:
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.transfers.append((recipient, amount))
        return TX_HASH

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def charge_factory():
    return make_charge


@pytest.fixture
def fake_commerce(charge_factory):
    return FakeCommerceGateway([charge_factory("abc")])


@pytest.fixture
def fake_chain():
    return FakeTokenGateway()


@pytest.fixture
def make_chain():
    return FakeTokenGateway


@pytest.fixture
def make_commerce():
    return FakeCommerceGateway
