"""
Pallet database model.

Production registers pallets; the office schedules them into trips and marks
them sent.
"""

import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from bancalplast.app.db.session import Base
from bancalplast.app.models.pallet_enums import PalletStatus, ShippingType


class Pallet(Base):
    """
    Pallet model.

    `dimensions` holds the encoded "LxPxH" string for courier pallets and is
    NULL for truck pallets. Deleting a trip removes its pallets through an
    explicit delete, not a database cascade.
    """
    __tablename__ = "pallets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Identification
    client = Column(String(200), nullable=False, index=True)
    pallet_no = Column(String(100), nullable=False)

    bobbins_count = Column(Integer, nullable=False, default=0)

    # Status
    status = Column(Enum(PalletStatus), default=PalletStatus.IN_PROGRESS, nullable=False, index=True)
    shipping_type = Column(Enum(ShippingType), nullable=False, index=True)

    dimensions = Column(String(100), nullable=True)

    # Scheduling
    trip_id = Column(String(36), ForeignKey("trips.id"), nullable=True, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Pallet(id={self.id}, no='{self.pallet_no}', client='{self.client}', status='{self.status.value}')>"
