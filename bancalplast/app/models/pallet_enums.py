"""
Pallet enumerations.
"""

import enum


class PalletStatus(str, enum.Enum):
    """
    Production-side completion state.

    Either value can be set at any time; there is no enforced order.
    """
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"


class ShippingType(str, enum.Enum):
    """Shipping channel, fixed when the pallet is created."""
    TRUCK = "TRUCK"
    COURIER = "COURIER"  # Requires box dimensions
