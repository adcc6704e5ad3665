"""
Webhook use-case: verify, remember, mark the charge as paid for pollers and
flag it refund-eligible at the provider.
"""
from __future__ import annotations

from collections import deque
from typing import Any, Optional

from application.dtos.payments import WebhookAck, WebhookEvent, WebhookHistory, WebhookHistoryEntry
from application.ports.commerce import CommerceGateway
from application.ports.payment_tracker import PaymentTracker
from core.logging_config import get_logger
from core.response import utc_now_iso
from domain.charge import MetadataKey, merge_metadata


logger = get_logger(__name__)

CHARGE_PENDING_EVENT = "charge:pending"
WEBHOOK_HISTORY_SIZE = 10


def new_webhook_history() -> deque:
    return deque(maxlen=WEBHOOK_HISTORY_SIZE)


def summarize_history(history: deque) -> WebhookHistory:
    events = list(history)
    return WebhookHistory(recent_events=events, total_processed=len(events))


class WebhookService:
    def __init__(
        self,
        gateway: CommerceGateway,
        tracker: PaymentTracker,
        history: Optional[deque] = None,
    ) -> None:
        self.gateway = gateway
        self.tracker = tracker
        self.history = history if history is not None else new_webhook_history()

    async def handle_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookAck:
        # Signature is verified before the body is parsed
        event = self.gateway.parse_webhook(headers, body)
        self._remember(event)
        logger.info(
            "webhook_event_received",
            event_type=event.type,
            event_id=event.id,
            charge_id=event.charge_id,
        )

        if event.type == CHARGE_PENDING_EVENT:
            await self._on_charge_pending(event)

        return WebhookAck(message=f"Webhook processed successfully: {event.type}")

    async def _on_charge_pending(self, event: WebhookEvent) -> None:
        charge_id = event.charge_id
        if not charge_id:
            logger.warning("webhook_charge_id_missing", event_type=event.type, event_id=event.id)
            return

        # Tracker first: a failed metadata update must not hide the payment from pollers
        await self.tracker.add(charge_id)
        logger.info("webhook_payment_marked_pending", charge_id=charge_id)

        metadata = merge_metadata(
            event.charge_metadata,
            {
                MetadataKey.REFUND_ELIGIBLE: True,
                MetadataKey.PAYMENT_PENDING_AT: utc_now_iso(),
            },
        )
        try:
            await self.gateway.update_metadata(charge_id, metadata)
        except Exception as exc:
            # Acknowledge anyway so the provider does not start a retry storm
            logger.error("webhook_metadata_update_failed", charge_id=charge_id, error=str(exc))
            return
        logger.info("webhook_metadata_updated", charge_id=charge_id)

    def _remember(self, event: WebhookEvent) -> None:
        self.history.appendleft(
            WebhookHistoryEntry(type=event.type, charge_id=event.charge_id, timestamp=utc_now_iso())
        )

    def recent_events(self) -> WebhookHistory:
        return summarize_history(self.history)
