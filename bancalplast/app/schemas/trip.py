"""
Trip and office Pydantic schemas.

Schemas for trip scheduling, shipping and history cleanup.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from bancalplast.app.domain.pallets.grouping import TripGroup
from bancalplast.app.models.trip_enums import TripStatus


class TripRecord(BaseModel):
    """Schema for trip response."""
    id: str
    trip_date: date
    status: TripStatus
    shipped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TripListResponse(BaseModel):
    trips: List[TripRecord]
    total: int


class TripCreate(BaseModel):
    """Get-or-create the open trip of a date."""
    trip_date: str = Field(..., description="YYYY-MM-DD")


class TripResolveResponse(BaseModel):
    trip_id: str
    trip_date: date


class PalletSelection(BaseModel):
    """A set of selected pallets."""
    pallet_ids: List[str] = Field(..., min_length=1)


class AssignToTrip(PalletSelection):
    trip_id: str = Field(..., min_length=1)


class AssignResult(BaseModel):
    trip_id: str
    assigned_pallet_ids: List[str]
    skipped_pallet_ids: List[str] = []


class SendOutcome(BaseModel):
    """
    Result of marking pallets sent.

    The pallet update and the trip update are separate store calls; when the
    second one fails the pallets stay sent and trip_error says why the trips
    were not marked shipped.
    """
    sent_pallet_ids: List[str]
    skipped_pallet_ids: List[str] = []
    shipped_trip_ids: List[str] = []
    trip_error: Optional[str] = None

    @property
    def partial(self) -> bool:
        return self.trip_error is not None


class DeleteResult(BaseModel):
    deleted_pallets: int


class TripDeleteOutcome(BaseModel):
    """Result of deleting a trip together with its pallets."""
    trip_id: str
    deleted_pallets: int
    trip_deleted: bool
    trip_error: Optional[str] = None


class GroupedPalletsResponse(BaseModel):
    """Pallets grouped by trip date, no-trip group first."""
    groups: List[TripGroup]
    total_pallets: int
    total_bobbins: int


class ShippedHistoryResponse(GroupedPalletsResponse):
    """Sent pallets by trip date, plus every shipped trip (including emptied ones)."""
    trips: List[TripRecord]
