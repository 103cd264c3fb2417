"""
Pallet Pydantic schemas.

Defines request and response models for the production endpoints and the
PalletRecord view model shared by services and the grouping engine.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from bancalplast.app.db.store import extract_trip_date
from bancalplast.app.domain.pallets.dimensions import decode_dimensions, pretty_dimensions
from bancalplast.app.models.pallet_enums import PalletStatus, ShippingType


class PalletRecord(BaseModel):
    """A pallet row with its trip date resolved."""
    id: str
    client: str
    pallet_no: str
    bobbins_count: int = 0
    status: PalletStatus
    shipping_type: ShippingType
    dimensions: Optional[str] = None
    dimensions_display: str = "—"
    trip_id: Optional[str] = None
    trip_date: Optional[date] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PalletRecord":
        data = dict(row)
        embedded = data.pop("trips", None)
        if "trip_date" not in data:
            data["trip_date"] = extract_trip_date(embedded)
        data["dimensions_display"] = pretty_dimensions(data.get("dimensions"))
        return cls(**data)


class TruckPalletCreate(BaseModel):
    """Schema for registering a truck pallet."""
    client: str = Field(..., max_length=200, description="Customer name")
    pallet_no: str = Field(..., max_length=100, description="Pallet label")
    bobbins_count: int = Field(default=0, ge=0)
    status: PalletStatus = PalletStatus.IN_PROGRESS
    trip_date: Optional[str] = Field(None, description="Optional trip date, YYYY-MM-DD")


class CourierPalletCreate(BaseModel):
    """Schema for registering a courier pallet with L x P x H."""
    client: str = Field(..., max_length=200, description="Customer name")
    pallet_no: str = Field(..., max_length=100, description="Pallet label")
    bobbins_count: int = Field(default=0, ge=0)
    status: PalletStatus = PalletStatus.IN_PROGRESS
    length: str = Field("", description="L")
    depth: str = Field("", description="P")
    height: str = Field("", description="H")


class PalletUpdate(BaseModel):
    """Schema for editing a pallet from the detail view."""
    bobbins_count: Optional[int] = Field(None, ge=0)
    status: Optional[PalletStatus] = None
    length: Optional[str] = None
    depth: Optional[str] = None
    height: Optional[str] = None
    trip_date: Optional[str] = Field(None, description="Reschedule to the open trip of this date")


class PalletStatusUpdate(BaseModel):
    status: PalletStatus


class PalletDetailResponse(BaseModel):
    """Pallet detail with its dimensions split for editing."""
    pallet: PalletRecord
    length: str
    depth: str
    height: str

    @classmethod
    def from_record(cls, record: PalletRecord) -> "PalletDetailResponse":
        dims = decode_dimensions(record.dimensions)
        return cls(pallet=record, length=dims.l, depth=dims.p, height=dims.h)


class PalletListResponse(BaseModel):
    pallets: List[PalletRecord]
    total: int

