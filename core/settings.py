"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Secrets are optional here so the process can boot without them; the
``require_*`` helpers validate on first use and raise ConfigurationError
before any network call is made.
"""
from __future__ import annotations

import re
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, SecretStr

from domain.common.exceptions import ConfigurationError


_PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

BASE_USDC_CONTRACT = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


class PaymentTimeouts(BaseModel):
    connect: float = 3.0
    read: float = 10.0
    write: float = 10.0
    total: float = 15.0


class PaymentRetry(BaseModel):
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 4.0
    jitter: float = 0.25


class ListingSettings(BaseModel):
    max_pages: int = 100
    page_limit: Optional[int] = None


class RefundSettings(BaseModel):
    # payer: first payer address of the payment; requester: metadata.refund_requested_by
    recipient_source: Literal["payer", "requester"] = "payer"
    require_customer_request: bool = False


class CommerceSettings(BaseModel):
    api_key: Optional[SecretStr] = None
    webhook_secret: Optional[SecretStr] = None
    api_url: str = "https://api.commerce.coinbase.com"
    api_version: str = "2018-03-22"

    def require_api_key(self) -> str:
        key = self.api_key.get_secret_value() if self.api_key else ""
        if not key.strip():
            raise ConfigurationError("Commerce API key is not configured", setting="COMMERCE__API_KEY")
        return key.strip()

    def require_webhook_secret(self) -> str:
        secret = self.webhook_secret.get_secret_value() if self.webhook_secret else ""
        if not secret:
            raise ConfigurationError("Webhook secret is not configured", setting="COMMERCE__WEBHOOK_SECRET")
        return secret


class ChainSettings(BaseModel):
    rpc_url: Optional[str] = "https://mainnet.base.org"
    private_key: Optional[SecretStr] = None
    merchant_address: Optional[str] = None
    token_address: str = BASE_USDC_CONTRACT
    chain_id: Optional[int] = None
    confirmation_timeout: float = 120.0
    rpc_timeout: float = 30.0

    def require_private_key(self) -> str:
        key = self.private_key.get_secret_value().strip() if self.private_key else ""
        if not key:
            raise ConfigurationError(
                "Merchant configuration error: Missing signing key",
                setting="CHAIN__PRIVATE_KEY",
            )
        if not _PRIVATE_KEY_RE.match(key):
            raise ConfigurationError(
                "Merchant configuration error: Invalid signing key format",
                setting="CHAIN__PRIVATE_KEY",
            )
        return key if key.startswith("0x") else f"0x{key}"

    def require_rpc_url(self) -> str:
        if not (self.rpc_url or "").strip():
            raise ConfigurationError("Chain RPC URL is not configured", setting="CHAIN__RPC_URL")
        return self.rpc_url.strip()

    def require_token_address(self) -> str:
        if not _ADDRESS_RE.match(self.token_address or ""):
            raise ConfigurationError("Token contract address is malformed", setting="CHAIN__TOKEN_ADDRESS")
        return self.token_address

    def require_merchant_address(self) -> str:
        if not _ADDRESS_RE.match(self.merchant_address or ""):
            raise ConfigurationError(
                "Merchant public address is missing or malformed",
                setting="CHAIN__MERCHANT_ADDRESS",
            )
        return self.merchant_address


class PaymentSettings(BaseSettings):
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    listing: ListingSettings = Field(default_factory=ListingSettings)
    refund: RefundSettings = Field(default_factory=RefundSettings)

    commerce: CommerceSettings = Field(default_factory=CommerceSettings)
    chain: ChainSettings = Field(default_factory=ChainSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
