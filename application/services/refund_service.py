"""
Refund use-cases.

``refund`` moves funds: it validates the charge, sends the original crypto
amount back as an ERC-20 transfer and records the result in the charge's
provider metadata. ``request_refund`` only flags the charge on behalf of the
customer.

Per charge the flow runs under a keyed lock so two concurrent refunds of the
same charge cannot both pass the already-refunded check. Different charges
never wait on each other.
"""
from __future__ import annotations

from typing import Callable, Literal, Optional

from application.dtos.payments import Charge, ChargePayment, RefundRequestResult, RefundResult
from application.ports.chain import TokenTransferGateway
from application.ports.commerce import CommerceGateway
from application.utils.keyed_lock import KeyedLock
from core.logging_config import get_logger
from core.response import utc_now_iso
from domain.charge import MetadataKey, merge_metadata, to_base_units
from domain.common.exceptions import (
    AlreadyRefundedError,
    ChargeValidationError,
    InvalidAddressError,
    InvalidPaymentError,
    RefundAlreadyRequestedError,
    RefundNotRequestedError,
)


logger = get_logger(__name__)

RecipientSource = Literal["payer", "requester"]


class RefundLedger:
    """In-process record of confirmed refund transfers, keyed by charge id.

    Covers the window where a transfer confirmed but the provider metadata
    write failed; lost on restart.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, charge_id: str) -> Optional[str]:
        return self._entries.get(charge_id)

    def record(self, charge_id: str, tx_hash: str) -> None:
        self._entries[charge_id] = tx_hash

    def __contains__(self, charge_id: object) -> bool:
        return charge_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class RefundService:
    def __init__(
        self,
        gateway: CommerceGateway,
        chain_factory: Callable[[], TokenTransferGateway],
        *,
        is_address: Callable[[str], bool],
        locks: Optional[KeyedLock] = None,
        ledger: Optional[RefundLedger] = None,
        recipient_source: RecipientSource = "payer",
        require_customer_request: bool = False,
    ) -> None:
        self.gateway = gateway
        self.chain_factory = chain_factory
        self.is_address = is_address
        self.locks = locks or KeyedLock()
        self.ledger = ledger if ledger is not None else RefundLedger()
        self.recipient_source = recipient_source
        self.require_customer_request = require_customer_request

    async def refund(self, charge_id: Optional[str]) -> RefundResult:
        charge_id = (charge_id or "").strip()
        if not charge_id:
            raise ChargeValidationError("Missing charge ID", field="chargeId")

        # Builds and validates the signer; a ConfigurationError stops us before any network call
        chain = self.chain_factory()
        try:
            async with self.locks.acquire(charge_id):
                tx_hash = await self._refund_locked(charge_id, chain)
        finally:
            await chain.aclose()
        return RefundResult(transaction_hash=tx_hash)

    async def _refund_locked(self, charge_id: str, chain: TokenTransferGateway) -> str:
        logger.info("refund_started", charge_id=charge_id)
        charge = await self.gateway.get_charge(charge_id)

        known_tx = self.ledger.get(charge_id)
        if charge.is_refunded or known_tx:
            logger.warning("refund_rejected_already_refunded", charge_id=charge_id)
            raise AlreadyRefundedError(charge_id, charge.metadata.get(MetadataKey.REFUND_TX.value) or known_tx)
        if self.require_customer_request and not charge.is_refund_requested:
            raise RefundNotRequestedError(charge_id)

        payment = charge.first_payment
        if payment is None or not payment.crypto_amount:
            raise InvalidPaymentError(charge_id)

        recipient = self._resolve_recipient(charge, payment)
        decimals = await chain.decimals()
        amount = to_base_units(payment.crypto_amount, decimals)
        logger.info(
            "refund_transfer_prepared",
            charge_id=charge_id,
            recipient=recipient,
            amount=payment.crypto_amount,
            currency=payment.crypto_currency,
            base_units=str(amount),
        )

        tx_hash = await chain.transfer(recipient, amount)
        self.ledger.record(charge_id, tx_hash)
        logger.info("refund_transfer_confirmed", charge_id=charge_id, tx_hash=tx_hash)

        metadata = merge_metadata(
            charge.metadata,
            {
                MetadataKey.REFUNDED: True,
                MetadataKey.REFUND_DATE: utc_now_iso(),
                MetadataKey.REFUND_TX: tx_hash,
                MetadataKey.REFUND_AMOUNT: payment.crypto_amount,
                MetadataKey.REFUND_CURRENCY: payment.crypto_currency,
            },
        )
        try:
            await self.gateway.update_metadata(charge_id, metadata)
        except Exception as exc:
            # Funds already moved; report success and leave the ledger entry as the record
            logger.error(
                "refund_metadata_update_failed",
                charge_id=charge_id,
                tx_hash=tx_hash,
                error=str(exc),
            )
        return tx_hash

    def _resolve_recipient(self, charge: Charge, payment: ChargePayment) -> str:
        if self.recipient_source == "requester":
            candidate = charge.metadata.get(MetadataKey.REFUND_REQUESTED_BY.value)
            if not candidate:
                raise InvalidAddressError(None, "No refund requester address found")
        else:
            if not payment.payer_addresses:
                raise InvalidAddressError(None, "No payer address found")
            candidate = payment.payer_addresses[0]
        if not isinstance(candidate, str) or not self.is_address(candidate):
            raise InvalidAddressError(str(candidate))
        return candidate

    async def request_refund(
        self,
        charge_id: Optional[str],
        customer_address: Optional[str],
    ) -> RefundRequestResult:
        charge_id = (charge_id or "").strip()
        customer_address = (customer_address or "").strip()
        if not charge_id or not customer_address:
            raise ChargeValidationError("Missing required fields")
        if not self.is_address(customer_address):
            raise InvalidAddressError(customer_address)

        async with self.locks.acquire(charge_id):
            logger.info("refund_request_started", charge_id=charge_id, customer_address=customer_address)
            charge = await self.gateway.get_charge(charge_id)
            known_tx = self.ledger.get(charge_id)
            if charge.is_refunded or known_tx:
                raise AlreadyRefundedError(charge_id, charge.metadata.get(MetadataKey.REFUND_TX.value) or known_tx)
            if charge.is_refund_requested:
                raise RefundAlreadyRequestedError(charge_id)

            metadata = merge_metadata(
                charge.metadata,
                {
                    MetadataKey.REFUND_REQUESTED: True,
                    MetadataKey.REFUND_REQUEST_DATE: utc_now_iso(),
                    MetadataKey.REFUND_REQUESTED_BY: customer_address,
                },
            )
            updated = await self.gateway.update_metadata(charge_id, metadata)

        logger.info("refund_request_recorded", charge_id=charge_id)
        return RefundRequestResult(charge=updated)
