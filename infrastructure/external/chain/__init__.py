"""
On-chain adapter for refund transfers.
"""
from typing import Optional

from core.settings import PaymentSettings, payment_settings
from .web3_client import ERC20_ABI, Web3TokenClient, is_address


def build_token_client(settings: Optional[PaymentSettings] = None) -> Web3TokenClient:
    """Raises ConfigurationError for a missing or malformed signer."""
    return Web3TokenClient((settings or payment_settings).chain)


__all__ = ["ERC20_ABI", "Web3TokenClient", "build_token_client", "is_address"]
