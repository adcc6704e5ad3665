"""Poll use-case: has the payment for this charge been detected yet?"""
from __future__ import annotations

from application.dtos.payments import PaymentStatusResult
from application.ports.payment_tracker import PaymentTracker
from core.logging_config import get_logger
from domain.common.exceptions import ChargeValidationError


logger = get_logger(__name__)


class PaymentStatusService:
    def __init__(self, tracker: PaymentTracker) -> None:
        self.tracker = tracker

    async def check(self, charge_id: str) -> PaymentStatusResult:
        """Report success once per detected payment.

        Observing success consumes the tracker entry, so concurrent pollers of
        the same charge race and only the first one sees it.
        """
        charge_id = (charge_id or "").strip()
        if not charge_id:
            raise ChargeValidationError("Missing charge ID", field="charge_id")

        if await self.tracker.consume(charge_id):
            logger.info("payment_status_success_delivered", charge_id=charge_id)
            return PaymentStatusResult(status="success", message="Payment has been processed successfully")
        return PaymentStatusResult(status="waiting", message="Payment has not been processed yet")
