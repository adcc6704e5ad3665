"""
Commerce provider REST adapter implementing ``CommerceGateway``.

Wraps the hosted charges API:

- ``GET  /charges/{id}``          charge detail
- ``GET  /charges?cursor=...``    one page of the charge list
- ``POST /charges/{id}``          metadata update (``{"metadata": {...}}``)

Every response body is enveloped as ``{"data": ...}``.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from application.dtos.payments import Charge, ChargePage, WebhookEvent
from application.utils.backoff import BackoffPolicy
from core.logging_config import get_logger
from core.settings import CommerceSettings, PaymentTimeouts
from domain.common.exceptions import (
    ChargeNotFoundError,
    ChargeValidationError,
    UpstreamUnavailableError,
    WebhookSignatureError,
)
from infrastructure.external.api_clients.base import APIError, BaseAPIClient, TransportError
from .signature import signature_from_headers, verify_signature


logger = get_logger(__name__)


def _timeout(t: PaymentTimeouts) -> httpx.Timeout:
    return httpx.Timeout(timeout=t.total, connect=t.connect, read=t.read, write=t.write)


class CommerceClient(BaseAPIClient):
    """Adapter for the commerce provider.

    Retries are left to callers (``backoff=None`` by default); the listing
    collector applies its own policy per page.
    """

    def __init__(
        self,
        settings: CommerceSettings,
        *,
        timeouts: Optional[PaymentTimeouts] = None,
        backoff: Optional[BackoffPolicy] = None,
        page_limit: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=settings.api_url,
            timeout=_timeout(timeouts or PaymentTimeouts()),
            backoff=backoff,
            headers={"X-CC-Version": settings.api_version},
            transport=transport,
        )
        self._settings = settings
        self._page_limit = page_limit

    async def _request(self, method, endpoint, **kwargs):
        # The API key is only needed once a request goes out; webhook verification works without it
        headers = {"X-CC-Api-Key": self._settings.require_api_key(), **(kwargs.pop("headers", None) or {})}
        return await super()._request(method, endpoint, headers=headers, **kwargs)

    async def get_charge(self, charge_id: str) -> Charge:
        try:
            resp = await self.get(f"/charges/{charge_id}")
        except TransportError as exc:
            raise UpstreamUnavailableError("Failed to fetch charge", details={"charge_id": charge_id}) from exc
        except APIError as exc:
            logger.warning("charge_fetch_failed", charge_id=charge_id, status_code=exc.status_code)
            raise ChargeNotFoundError(charge_id) from exc
        return self._parse_charge(resp.json(), charge_id)

    async def list_charges(self, cursor: Optional[str] = None) -> ChargePage:
        params: dict[str, Any] = {}
        if cursor:
            params["cursor"] = cursor
        if self._page_limit:
            params["limit"] = self._page_limit
        try:
            resp = await self.get("/charges", params=params or None)
        except APIError as exc:
            raise UpstreamUnavailableError("Failed to fetch charges", status_code=exc.status_code) from exc

        payload = resp.json()
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise UpstreamUnavailableError("Malformed charge list response", status_code=resp.status_code)
        charges = []
        for index, item in enumerate(payload["data"]):
            try:
                charges.append(Charge.model_validate(item))
            except ValidationError as exc:
                # One bad record must not hide the rest of the page
                logger.warning(
                    "charge_list_item_skipped",
                    index=index,
                    charge_id=item.get("id") if isinstance(item, dict) else None,
                    errors=exc.error_count(),
                )
        pagination = payload.get("pagination") or {}
        return ChargePage(charges=charges, cursor_next=pagination.get("cursor_next") or None)

    async def update_metadata(self, charge_id: str, metadata: dict[str, Any]) -> Charge:
        try:
            resp = await self.post(f"/charges/{charge_id}", json_data={"metadata": metadata})
        except APIError as exc:
            raise UpstreamUnavailableError(
                "Failed to update charge metadata",
                status_code=exc.status_code,
                details={"charge_id": charge_id},
            ) from exc
        return self._parse_charge(resp.json(), charge_id)

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookEvent:
        signature = signature_from_headers(headers)
        if not signature:
            raise WebhookSignatureError("No signature provided")
        secret = self._settings.require_webhook_secret()
        if not verify_signature(secret, body, signature):
            logger.warning("webhook_signature_invalid")
            raise WebhookSignatureError("Invalid signature")

        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ChargeValidationError("Malformed webhook payload") from exc
        event = payload.get("event") if isinstance(payload, dict) else None
        if not isinstance(event, dict):
            raise ChargeValidationError("Malformed webhook payload", field="event")
        try:
            return WebhookEvent.model_validate(event)
        except ValidationError as exc:
            raise ChargeValidationError("Malformed webhook event", field="event") from exc

    @staticmethod
    def _parse_charge(payload: Any, charge_id: str) -> Charge:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise UpstreamUnavailableError("Malformed charge response", details={"charge_id": charge_id})
        try:
            return Charge.model_validate(data)
        except ValidationError as exc:
            raise UpstreamUnavailableError("Malformed charge response", details={"charge_id": charge_id}) from exc
