"""
Payment DTOs (Pydantic v2) used at application boundaries.

Charge models mirror the commerce provider's JSON loosely: unknown fields are
kept (``extra="allow"``) so listings pass the provider's data through intact.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from domain.charge import derive_display_status, is_listable


_TRUE_STRINGS = {"true", "1", "yes"}


def metadata_flag(value: Any) -> bool:
    """Provider metadata values may come back as strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


class Money(BaseModel):
    model_config = ConfigDict(extra="allow")

    amount: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class PaymentValue(BaseModel):
    model_config = ConfigDict(extra="allow")

    local: Optional[Money] = None
    crypto: Optional[Money] = None


class ChargePayment(BaseModel):
    model_config = ConfigDict(extra="allow")

    payment_id: Optional[str] = None
    network: Optional[str] = None
    transaction_id: Optional[str] = None
    status: Optional[str] = None
    detected_at: Optional[str] = None
    value: Optional[PaymentValue] = None
    payer_addresses: list[str] = Field(default_factory=list)

    @field_validator("payer_addresses", mode="before")
    @classmethod
    def _normalize_payer_addresses(cls, v: Any) -> Any:
        # The provider sends either a list or a {network: address} object
        if v is None:
            return []
        if isinstance(v, dict):
            return [a for a in v.values() if isinstance(a, str)]
        return v

    @property
    def crypto_amount(self) -> Optional[str]:
        if self.value is None or self.value.crypto is None:
            return None
        return self.value.crypto.amount

    @property
    def crypto_currency(self) -> Optional[str]:
        if self.value is None or self.value.crypto is None:
            return None
        return self.value.crypto.currency


class TimelineEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    time: Optional[str] = None
    status: Optional[str] = None


class Charge(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    payments: list[ChargePayment] = Field(default_factory=list)
    timeline: list[TimelineEntry] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("payments", "timeline", mode="before")
    @classmethod
    def _none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_as_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def current_status(self) -> Optional[str]:
        """The last timeline entry is authoritative."""
        if not self.timeline:
            return None
        return self.timeline[-1].status

    @property
    def first_payment(self) -> Optional[ChargePayment]:
        return self.payments[0] if self.payments else None

    @property
    def is_refunded(self) -> bool:
        return metadata_flag(self.metadata.get("refunded"))

    @property
    def is_refund_requested(self) -> bool:
        return metadata_flag(self.metadata.get("refund_requested"))

    @property
    def is_listable(self) -> bool:
        return is_listable(len(self.payments), self.current_status)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_status(self) -> str:
        payment = self.first_payment
        return derive_display_status(self.current_status, payment.status if payment else None)

    def sort_key(self) -> datetime:
        ts = self.created_at
        if ts is None:
            return datetime.min.replace(tzinfo=timezone.utc)
        if ts.tzinfo is None:
            return ts.replace(tzinfo=timezone.utc)
        return ts

    def paid_by(self, address: str) -> bool:
        needle = address.strip().lower()
        return any(
            needle == payer.lower()
            for payment in self.payments
            for payer in payment.payer_addresses
        )


class ChargePage(BaseModel):
    """One page of the provider's charge list."""
    charges: list[Charge] = Field(default_factory=list)
    cursor_next: Optional[str] = None


class WebhookEvent(BaseModel):
    """Verified, parsed webhook envelope ``{event: {id, type, data}}``."""
    id: Optional[str] = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def charge_id(self) -> Optional[str]:
        value = self.data.get("id")
        return str(value) if value else None

    @property
    def charge_metadata(self) -> dict[str, Any]:
        meta = self.data.get("metadata")
        return dict(meta) if isinstance(meta, dict) else {}


class WebhookHistoryEntry(BaseModel):
    type: str
    charge_id: Optional[str] = Field(default=None, serialization_alias="chargeId")
    timestamp: str


class WebhookAck(BaseModel):
    success: bool = True
    message: str


class WebhookHistory(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recent_events: list[WebhookHistoryEntry] = Field(serialization_alias="recentEvents")
    total_processed: int = Field(serialization_alias="totalProcessed")
    message: str = "This is a diagnostic endpoint to check webhook history"


class PaymentStatusResult(BaseModel):
    status: Literal["success", "waiting"]
    message: str


class ChargeList(BaseModel):
    data: list[Charge]


class RefundCommand(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    charge_id: Optional[str] = Field(default=None, alias="chargeId")


class RefundResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Refund processed successfully"
    transaction_hash: str = Field(alias="transactionHash")


class RefundRequestCommand(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    charge_id: Optional[str] = Field(default=None, alias="chargeId")
    customer_address: Optional[str] = Field(default=None, alias="customerAddress")


class RefundRequestResult(BaseModel):
    success: bool = True
    message: str = "Refund request submitted"
    charge: Charge


class SimulatedPaymentCommand(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    charge_id: Optional[str] = Field(default=None, alias="chargeId")


class SimulatedPaymentResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    charge_id: str = Field(alias="chargeId")
    message: str = "Test payment created. Poll the payment-status endpoint to detect it."


class LastChargeInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_charge_id: Optional[str] = Field(default=None, alias="lastChargeId")
    timestamp: str
    info: str = "This endpoint helps debug whether webhooks are being received"
