"""
Payment specific codes for the commerce provider and the refund flow.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Provider/Network errors (6xxxx)
    PROVIDER_UNAVAILABLE = 60001
    SIGNATURE_ERROR = 60002
    CHARGE_NOT_FOUND = 60005

    # Refund flow (61xxx)
    REFUND_ALREADY_DONE = 61000
    REFUND_ALREADY_REQUESTED = 61001
    REFUND_NOT_REQUESTED = 61002
    INVALID_PAYMENT = 61003
    INVALID_ADDRESS = 61004
    AMOUNT_CONVERSION_ERROR = 61005

    # Chain (62xxx)
    TRANSACTION_FAILED = 62000

    # Configuration (69xxx)
    CONFIGURATION_ERROR = 69000
