"""
Trip database model.

A trip is a shipment batch keyed by a single calendar date.
"""

import uuid

from sqlalchemy import Column, String, Date, DateTime, Enum
from sqlalchemy.sql import func
from bancalplast.app.db.session import Base
from bancalplast.app.models.trip_enums import TripStatus


class Trip(Base):
    """
    Trip model.

    Created on demand by the trip resolver. At most one OPEN trip per date is
    an application-level rule only; the table does not enforce it.
    """
    __tablename__ = "trips"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    trip_date = Column(Date, nullable=False, index=True)

    # Status
    status = Column(Enum(TripStatus), default=TripStatus.OPEN, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    shipped_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Trip(id={self.id}, trip_date={self.trip_date}, status='{self.status.value}')>"
