"""
Commerce provider port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from application.dtos.payments import Charge, ChargePage, WebhookEvent


@runtime_checkable
class CommerceGateway(Protocol):
    """Gateway protocol for the hosted crypto commerce provider.

    ``get_charge`` raises ChargeNotFoundError when the provider answers with a
    non-success status; transport failures surface as UpstreamUnavailableError.
    Listing and metadata failures are UpstreamUnavailableError so callers can
    apply their own retry policy; a malformed item in a listing page is
    skipped rather than failing the page.
    """

    async def get_charge(self, charge_id: str) -> Charge: ...

    async def list_charges(self, cursor: Optional[str] = None) -> ChargePage: ...

    async def update_metadata(self, charge_id: str, metadata: dict[str, Any]) -> Charge: ...

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookEvent: ...

    async def aclose(self) -> None: ...
