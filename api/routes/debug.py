"""
Diagnostic routes, mounted only when ``DEBUG_ENDPOINTS`` is on.
"""
from __future__ import annotations

import time
from typing import Optional

from fastapi import APIRouter, Depends
from starlette.exceptions import HTTPException

from api.dependencies import get_payment_tracker
from application.dtos.payments import LastChargeInfo, SimulatedPaymentCommand, SimulatedPaymentResult
from application.ports.payment_tracker import PaymentTracker
from core.config import settings
from core.logging_config import get_logger
from core.response import utc_now_iso


logger = get_logger(__name__)

CONFETTI_MESSAGE = "Confetti trigger successful! The payment has been marked as pending."


def require_debug_endpoints() -> None:
    if not settings.DEBUG_ENDPOINTS:
        raise HTTPException(status_code=404, detail="Not Found")


router = APIRouter(prefix="/debug", tags=["Debug"], dependencies=[Depends(require_debug_endpoints)])


@router.get("/webhook", summary="Last charge seen by the webhook")
async def last_webhook_charge(tracker: PaymentTracker = Depends(get_payment_tracker)):
    info = LastChargeInfo(last_charge_id=await tracker.last_added(), timestamp=utc_now_iso())
    return info.model_dump(mode="json", by_alias=True)


async def _simulate(payload: Optional[SimulatedPaymentCommand], tracker: PaymentTracker, prefix: str) -> str:
    charge_id = (payload.charge_id if payload else None) or f"{prefix}-{int(time.time() * 1000)}"
    await tracker.add(charge_id)
    logger.info("simulated_payment_added", charge_id=charge_id)
    return charge_id


@router.post("/test-payment", summary="Simulate a detected payment")
async def simulate_payment(
    payload: Optional[SimulatedPaymentCommand] = None,
    tracker: PaymentTracker = Depends(get_payment_tracker),
):
    charge_id = await _simulate(payload, tracker, "test-payment")
    return SimulatedPaymentResult(charge_id=charge_id).model_dump(mode="json", by_alias=True)


@router.post("/trigger-confetti", summary="Simulate a charge:pending event for the storefront celebration")
async def trigger_confetti(
    payload: Optional[SimulatedPaymentCommand] = None,
    tracker: PaymentTracker = Depends(get_payment_tracker),
):
    charge_id = await _simulate(payload, tracker, "test-charge")
    result = SimulatedPaymentResult(charge_id=charge_id, message=CONFETTI_MESSAGE)
    return result.model_dump(mode="json", by_alias=True)
