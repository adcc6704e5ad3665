"""
Token transfer port: the on-chain side of the refund flow.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenTransferGateway(Protocol):
    """Signs and submits ERC-20 transfers from the merchant wallet.

    ``transfer`` returns the hash of a transaction whose receipt reported
    success; any other outcome raises RefundTransactionError.
    """

    async def decimals(self) -> int: ...

    async def transfer(self, recipient: str, amount: int) -> str: ...

    async def aclose(self) -> None: ...
