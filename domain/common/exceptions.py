"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class ConfigurationError(BusinessException):
    """Missing or malformed secrets/settings; raised before any network call."""

    def __init__(self, message: str, *, setting: Optional[str] = None):
        super().__init__(
            code=PaymentCode.CONFIGURATION_ERROR,
            message=message,
            error_type="ConfigurationError",
            details={"setting": setting} if setting else None,
        )


class WebhookSignatureError(BusinessException):
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=message,
            error_type="AuthenticationError",
        )


class UpstreamUnavailableError(BusinessException):
    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[dict] = None):
        full_details = {"status_code": status_code} if status_code is not None else {}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PROVIDER_UNAVAILABLE,
            message=message,
            error_type="UpstreamUnavailable",
            details=full_details or None,
        )


class ChargeNotFoundError(BusinessException):
    def __init__(self, charge_id: str, message: str = "Failed to fetch charge"):
        super().__init__(
            code=PaymentCode.CHARGE_NOT_FOUND,
            message=message,
            error_type="NotFound",
            details={"charge_id": charge_id},
        )


class ChargeValidationError(BusinessException):
    """Request-level validation failure. Never retried automatically."""

    def __init__(
        self,
        message: str,
        *,
        code: int = BusinessCode.PARAM_VALIDATION_ERROR,
        error_type: str = "ValidationError",
        field: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            error_type=error_type,
            details=details,
            field=field,
        )


class AlreadyRefundedError(ChargeValidationError):
    def __init__(self, charge_id: str, refund_tx: Optional[str] = None):
        details = {"charge_id": charge_id}
        if refund_tx:
            details["refund_tx"] = refund_tx
        super().__init__(
            "Charge already refunded",
            code=PaymentCode.REFUND_ALREADY_DONE,
            error_type="AlreadyRefunded",
            details=details,
        )


class RefundAlreadyRequestedError(ChargeValidationError):
    def __init__(self, charge_id: str):
        super().__init__(
            "Refund already requested",
            code=PaymentCode.REFUND_ALREADY_REQUESTED,
            error_type="RefundAlreadyRequested",
            details={"charge_id": charge_id},
        )


class RefundNotRequestedError(ChargeValidationError):
    def __init__(self, charge_id: str):
        super().__init__(
            "Refund has not been requested by the customer",
            code=PaymentCode.REFUND_NOT_REQUESTED,
            error_type="RefundNotRequested",
            details={"charge_id": charge_id},
        )


class InvalidPaymentError(ChargeValidationError):
    def __init__(self, charge_id: str, message: str = "Invalid payment data"):
        super().__init__(
            message,
            code=PaymentCode.INVALID_PAYMENT,
            error_type="InvalidPayment",
            details={"charge_id": charge_id},
        )


class InvalidAddressError(ChargeValidationError):
    def __init__(self, address: Optional[str], message: str = "Invalid customer address"):
        super().__init__(
            message,
            code=PaymentCode.INVALID_ADDRESS,
            error_type="InvalidAddress",
            field="address",
            details={"address": address},
        )


class AmountConversionError(ChargeValidationError):
    def __init__(self, amount: object, decimals: int, reason: str):
        super().__init__(
            f"Cannot convert amount {amount!r} with {decimals} decimals: {reason}",
            code=PaymentCode.AMOUNT_CONVERSION_ERROR,
            error_type="ConversionError",
            field="amount",
            details={"amount": str(amount), "decimals": decimals},
        )


class RefundTransactionError(BusinessException):
    """On-chain submission or confirmation failed. Safe to retry: nothing was persisted."""

    def __init__(self, message: str, *, tx_hash: Optional[str] = None, details: Optional[dict] = None):
        full_details = {"retryable": True}
        if tx_hash:
            full_details["tx_hash"] = tx_hash
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.TRANSACTION_FAILED,
            message=message,
            error_type="TransactionError",
            details=full_details,
        )
