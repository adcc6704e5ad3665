from .entity import (
    ChargeStatus,
    PaymentStatus,
    DisplayStatus,
    MetadataKey,
    LISTABLE_CHARGE_STATUSES,
    derive_display_status,
    is_listable,
    merge_metadata,
)
from .amounts import to_base_units

__all__ = [
    "ChargeStatus",
    "PaymentStatus",
    "DisplayStatus",
    "MetadataKey",
    "LISTABLE_CHARGE_STATUSES",
    "derive_display_status",
    "is_listable",
    "merge_metadata",
    "to_base_units",
]
