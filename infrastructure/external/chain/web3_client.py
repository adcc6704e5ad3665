"""
ERC-20 transfer adapter on top of web3.py's async API.

The merchant wallet signs locally (eth-account); the RPC node only sees the
raw signed transaction.
"""
from __future__ import annotations

from typing import Any, Optional

from aiohttp import ClientTimeout
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

from core.logging_config import get_logger
from core.settings import ChainSettings
from domain.common.exceptions import ConfigurationError, RefundTransactionError


logger = get_logger(__name__)

# Minimal ERC-20 ABI: only what the refund flow calls
ERC20_ABI: list[dict[str, Any]] = [
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
]

TRANSFER_FAILED_MESSAGE = (
    "Failed to process refund transaction. Please check merchant wallet balance and network status."
)


def is_address(value: Any) -> bool:
    """Syntactic check for a 20-byte hex account address (checksum enforced if mixed case)."""
    return isinstance(value, str) and Web3.is_address(value)


class Web3TokenClient:
    """Implements ``TokenTransferGateway`` for one ERC-20 contract.

    Construction validates every chain setting, so a misconfigured signer
    fails before the refund flow touches the network.
    """

    def __init__(self, settings: ChainSettings, *, w3: Optional[AsyncWeb3] = None) -> None:
        private_key = settings.require_private_key()
        token_address = settings.require_token_address()
        merchant_address = settings.require_merchant_address()
        try:
            self._account = Account.from_key(private_key)
        except Exception as exc:  # eth-keys raises its own ValidationError
            raise ConfigurationError(
                "Merchant configuration error: Invalid signing key",
                setting="CHAIN__PRIVATE_KEY",
            ) from exc
        if self._account.address.lower() != merchant_address.lower():
            raise ConfigurationError(
                "Merchant configuration error: Signing key does not match merchant address",
                setting="CHAIN__MERCHANT_ADDRESS",
            )

        if w3 is None:
            provider = AsyncHTTPProvider(
                settings.require_rpc_url(),
                request_kwargs={"timeout": ClientTimeout(total=settings.rpc_timeout)},
            )
            w3 = AsyncWeb3(provider)
        self._w3 = w3
        self._token = w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)
        self._chain_id = settings.chain_id
        self._confirmation_timeout = settings.confirmation_timeout
        self._decimals: Optional[int] = None

    @property
    def address(self) -> str:
        return self._account.address

    async def decimals(self) -> int:
        if self._decimals is None:
            try:
                self._decimals = int(await self._token.functions.decimals().call())
            except Exception as exc:
                logger.error("token_decimals_read_failed", error=str(exc))
                raise RefundTransactionError("Failed to read token decimals") from exc
        return self._decimals

    async def transfer(self, recipient: str, amount: int) -> str:
        """Sign, send and wait for the receipt; returns the confirmed tx hash."""
        to = Web3.to_checksum_address(recipient)
        sender = self._account.address
        try:
            nonce = await self._w3.eth.get_transaction_count(sender, "pending")
            params: dict[str, Any] = {"from": sender, "nonce": nonce}
            if self._chain_id is not None:
                params["chainId"] = self._chain_id
            tx = await self._token.functions.transfer(to, amount).build_transaction(params)
            signed = self._account.sign_transaction(tx)
            raw_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as exc:
            logger.error("refund_transaction_submit_failed", recipient=to, error=str(exc))
            raise RefundTransactionError(TRANSFER_FAILED_MESSAGE) from exc

        tx_hash = Web3.to_hex(raw_hash)
        logger.info("refund_transaction_submitted", tx_hash=tx_hash, recipient=to, amount=str(amount))

        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                raw_hash, timeout=self._confirmation_timeout
            )
        except TimeExhausted as exc:
            # The transaction may still be mined later; the hash is reported for reconciliation
            logger.error("refund_transaction_confirmation_timeout", tx_hash=tx_hash)
            raise RefundTransactionError(
                "Timed out waiting for refund transaction confirmation",
                tx_hash=tx_hash,
                details={"retryable": False},
            ) from exc
        except Exception as exc:
            logger.error("refund_transaction_receipt_failed", tx_hash=tx_hash, error=str(exc))
            raise RefundTransactionError(TRANSFER_FAILED_MESSAGE, tx_hash=tx_hash) from exc

        if receipt.get("status") != 1:
            logger.error("refund_transaction_reverted", tx_hash=tx_hash)
            raise RefundTransactionError("Refund transaction reverted", tx_hash=tx_hash)
        return Web3.to_hex(receipt["transactionHash"])

    async def aclose(self) -> None:
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if callable(disconnect):
            await disconnect()
