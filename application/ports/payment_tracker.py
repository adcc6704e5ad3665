"""
Pending-payment tracker port.

Holds charge ids whose payment was detected by a webhook but not yet observed
by a polling client. ``consume`` is an atomic check-and-remove: after an
``add`` exactly one caller sees True.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class PaymentTracker(Protocol):
    async def add(self, charge_id: str) -> None: ...

    async def consume(self, charge_id: str) -> bool: ...

    async def contains(self, charge_id: str) -> bool: ...

    async def last_added(self) -> Optional[str]: ...

    async def aclose(self) -> None: ...
