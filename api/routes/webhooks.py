"""
Commerce webhook routes.

The raw body is handed to the service untouched: the signature covers the
exact bytes the provider sent.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_webhook_history, get_webhook_service
from application.dtos.payments import WebhookAck
from application.services.webhook_service import WebhookService, summarize_history


router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/commerce", response_model=WebhookAck, summary="Receive commerce webhook")
async def receive_commerce_webhook(
    request: Request,
    service: WebhookService = Depends(get_webhook_service),
):
    raw_body = await request.body()
    headers = {k: v for k, v in request.headers.items()}
    return await service.handle_webhook(headers, raw_body)


@router.get("/commerce", summary="Recent webhook events")
async def recent_commerce_webhooks(history=Depends(get_webhook_history)):
    return summarize_history(history).model_dump(mode="json", by_alias=True)
