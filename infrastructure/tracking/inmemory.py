"""In-memory implementation of PaymentTracker.

Single-process only. Useful for local dev and tests.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from application.ports.payment_tracker import PaymentTracker


class InMemoryPaymentTracker(PaymentTracker):
    def __init__(self) -> None:
        self._pending: set[str] = set()
        self._last: Optional[str] = None
        self._lock = asyncio.Lock()

    async def add(self, charge_id: str) -> None:  # type: ignore[override]
        async with self._lock:
            self._pending.add(charge_id)
            self._last = charge_id

    async def consume(self, charge_id: str) -> bool:  # type: ignore[override]
        async with self._lock:
            if charge_id not in self._pending:
                return False
            self._pending.discard(charge_id)
            if self._last == charge_id:
                self._last = None
            return True

    async def contains(self, charge_id: str) -> bool:  # type: ignore[override]
        async with self._lock:
            return charge_id in self._pending

    async def last_added(self) -> Optional[str]:  # type: ignore[override]
        return self._last

    async def aclose(self) -> None:  # type: ignore[override]
        async with self._lock:
            self._pending.clear()
            self._last = None
