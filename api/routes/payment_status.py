"""Polling endpoint for the checkout page."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_payment_status_service
from application.dtos.payments import PaymentStatusResult
from application.services.payment_status_service import PaymentStatusService


router = APIRouter(prefix="/payment-status", tags=["Payments"])


@router.get("/{charge_id}", response_model=PaymentStatusResult, summary="Poll payment detection")
async def payment_status(
    charge_id: str,
    service: PaymentStatusService = Depends(get_payment_status_service),
):
    return await service.check(charge_id)
