"""
Webhook signature helpers.

The provider signs the raw request body with HMAC-SHA256 keyed by the shared
webhook secret and sends the hex digest in ``X-CC-Webhook-Signature``.
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Any, Mapping, Optional

SIGNATURE_HEADER = "x-cc-webhook-signature"


def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Constant-time comparison of the expected hex digest with ``signature``."""
    if not signature:
        return False
    try:
        provided = signature.encode("ascii")
    except UnicodeEncodeError:
        return False
    expected = compute_signature(secret, body).encode("ascii")
    return hmac.compare_digest(expected, provided)


def signature_from_headers(headers: Mapping[str, Any]) -> Optional[str]:
    """Case-insensitive header lookup."""
    for key, value in headers.items():
        if str(key).lower() == SIGNATURE_HEADER:
            return str(value) if value is not None else None
    return None
