"""
Charge domain rules - status vocabularies, display status and metadata merge.

The charge itself is owned by the commerce provider; this module only holds
the rules this service applies to its read copy.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional


class ChargeStatus(str, Enum):
    """Timeline status. The last timeline entry is authoritative."""
    NEW = "NEW"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    UNRESOLVED = "UNRESOLVED"
    RESOLVED = "RESOLVED"
    CANCELED = "CANCELED"


class PaymentStatus(str, Enum):
    """Status of a single payment attempt on a charge."""
    NEW = "NEW"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    DELAYED = "DELAYED"
    REFUND_PENDING = "REFUND_PENDING"
    REFUNDED = "REFUNDED"


class DisplayStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    UNKNOWN = "UNKNOWN"


class MetadataKey(str, Enum):
    """Keys this service writes into the provider's metadata bag."""
    REFUND_ELIGIBLE = "refund_eligible"
    PAYMENT_PENDING_AT = "payment_pending_at"
    REFUNDED = "refunded"
    REFUND_TX = "refund_tx"
    REFUND_DATE = "refund_date"
    REFUND_AMOUNT = "refund_amount"
    REFUND_CURRENCY = "refund_currency"
    REFUND_REQUESTED = "refund_requested"
    REFUND_REQUEST_DATE = "refund_request_date"
    REFUND_REQUESTED_BY = "refund_requested_by"


LISTABLE_CHARGE_STATUSES = frozenset({ChargeStatus.PENDING.value, ChargeStatus.COMPLETED.value})


def _upper(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).upper() or None


def derive_display_status(timeline_status: Optional[str], payment_status: Optional[str]) -> str:
    """Combine the last timeline status and the first payment status.

    Timeline COMPLETED/PENDING win over payment-derived statuses; otherwise the
    raw timeline status is shown, or UNKNOWN when there is none.
    """
    charge_status = _upper(timeline_status)
    pay_status = _upper(payment_status)
    if charge_status == ChargeStatus.COMPLETED.value:
        return DisplayStatus.COMPLETED.value
    if charge_status == ChargeStatus.PENDING.value:
        return DisplayStatus.PENDING.value
    if pay_status == PaymentStatus.CONFIRMED.value:
        return DisplayStatus.PAYMENT_CONFIRMED.value
    if pay_status == PaymentStatus.PENDING.value:
        return DisplayStatus.PAYMENT_PENDING.value
    return charge_status or DisplayStatus.UNKNOWN.value


def is_listable(payment_count: int, timeline_status: Optional[str]) -> bool:
    """A charge is shown to the merchant only with a payment and a live status."""
    if payment_count <= 0:
        return False
    return _upper(timeline_status) in LISTABLE_CHARGE_STATUSES


def merge_metadata(current: Optional[Mapping[str, Any]], updates: Mapping[Any, Any]) -> dict[str, Any]:
    """Return a new metadata bag with every prior key preserved."""
    merged: dict[str, Any] = dict(current or {})
    for key, value in updates.items():
        name = key.value if isinstance(key, MetadataKey) else str(key)
        merged[name] = value
    return merged
