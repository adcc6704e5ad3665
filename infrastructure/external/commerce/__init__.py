"""
Commerce provider adapter.
"""
from typing import Optional

from core.settings import PaymentSettings, payment_settings
from .client import CommerceClient
from .signature import SIGNATURE_HEADER, compute_signature, verify_signature


def get_commerce_client(settings: Optional[PaymentSettings] = None) -> CommerceClient:
    """Build a client from settings; requests raise ConfigurationError without an API key."""
    s = settings or payment_settings
    return CommerceClient(
        s.commerce,
        timeouts=s.timeouts,
        page_limit=s.listing.page_limit,
    )


__all__ = [
    "CommerceClient",
    "SIGNATURE_HEADER",
    "compute_signature",
    "get_commerce_client",
    "verify_signature",
]
