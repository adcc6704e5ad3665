"""
Refund routes.

``/refund`` moves funds back to the customer; ``/refund/request`` only flags
the charge so the merchant can act on it.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_refund_service
from application.dtos.payments import RefundCommand, RefundRequestCommand
from application.services.refund_service import RefundService


router = APIRouter(prefix="/refund", tags=["Refunds"])


@router.post("", summary="Refund a charge on-chain")
async def refund_charge(
    payload: RefundCommand,
    service: RefundService = Depends(get_refund_service),
):
    result = await service.refund(payload.charge_id)
    return result.model_dump(mode="json", by_alias=True)


@router.post("/request", summary="Customer refund request")
async def request_refund(
    payload: RefundRequestCommand,
    service: RefundService = Depends(get_refund_service),
):
    result = await service.request_refund(payload.charge_id, payload.customer_address)
    return result.model_dump(mode="json", by_alias=True)
