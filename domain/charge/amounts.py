"""
Token amount conversion between human-readable strings and base units.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

from domain.common.exceptions import AmountConversionError


def to_base_units(amount: object, decimals: int) -> int:
    """Scale a decimal amount string by ``10**decimals`` exactly.

    Rejects non-numeric, non-finite, non-positive values and values with more
    fractional digits than the token supports (no silent rounding).
    """
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise AmountConversionError(amount, decimals if isinstance(decimals, int) else -1, "invalid decimals")
    if amount is None or isinstance(amount, (bool, float)):
        raise AmountConversionError(amount, decimals, "amount must be a decimal string")
    text = str(amount).strip()
    if not text:
        raise AmountConversionError(amount, decimals, "empty amount")
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise AmountConversionError(amount, decimals, "not a number") from exc
    if not value.is_finite():
        raise AmountConversionError(amount, decimals, "not a finite number")
    if value <= 0:
        raise AmountConversionError(amount, decimals, "amount must be positive")

    digits = len(value.as_tuple().digits)
    with localcontext() as ctx:
        # Enough precision that scaling never rounds
        ctx.prec = max(ctx.prec, digits + decimals + 2)
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise AmountConversionError(amount, decimals, "too many decimal places")
    return int(scaled)
