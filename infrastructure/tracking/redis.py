"""Redis实现的待确认支付集合，多实例部署时共享状态"""
from __future__ import annotations

from typing import Optional

from redis import asyncio as aioredis

from application.ports.payment_tracker import PaymentTracker


class RedisPaymentTracker(PaymentTracker):
    """SADD/SREM 基于集合；``SREM`` 返回 1 的调用方即唯一的消费者。"""

    def __init__(self, client: aioredis.Redis, key: str = "payments:pending", namespace: str = "") -> None:
        self._client = client
        namespace = namespace.strip(":")
        self._key = f"{namespace}:{key}" if namespace else key
        self._last_key = f"{self._key}:last"

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisPaymentTracker":
        client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, **kwargs)

    async def add(self, charge_id: str) -> None:  # type: ignore[override]
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.sadd(self._key, charge_id)
            pipe.set(self._last_key, charge_id)
            await pipe.execute()

    async def consume(self, charge_id: str) -> bool:  # type: ignore[override]
        removed = await self._client.srem(self._key, charge_id)
        if not removed:
            return False
        if await self._client.get(self._last_key) == charge_id:
            await self._client.delete(self._last_key)
        return True

    async def contains(self, charge_id: str) -> bool:  # type: ignore[override]
        return bool(await self._client.sismember(self._key, charge_id))

    async def last_added(self) -> Optional[str]:  # type: ignore[override]
        return await self._client.get(self._last_key)

    async def aclose(self) -> None:  # type: ignore[override]
        await self._client.aclose()
