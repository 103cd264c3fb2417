"""
Trip enumerations.
"""

import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration. OPEN -> SHIPPED is one-way."""
    OPEN = "OPEN"  # Still accepting pallets
    SHIPPED = "SHIPPED"  # At least one pallet of the trip was sent
