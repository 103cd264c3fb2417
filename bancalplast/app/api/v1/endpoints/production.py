"""
Production API Endpoints.

Production staff register truck and courier pallets, keep their status up to
date and edit them until they are sent.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import Optional

from bancalplast.app.core.dependencies import get_store, refresh_trigger
from bancalplast.app.db.store import RecordStore
from bancalplast.app.models.enums import RefreshTrigger
from bancalplast.app.models.pallet_enums import ShippingType
from bancalplast.app.schemas.pallet import (
    CourierPalletCreate,
    PalletDetailResponse,
    PalletListResponse,
    PalletRecord,
    PalletStatusUpdate,
    PalletUpdate,
    TruckPalletCreate,
)
from bancalplast.app.services.pallet_service import PalletService

router = APIRouter(prefix="/production", tags=["Production"])


@router.get("/pallets", response_model=PalletListResponse)
async def list_unsent_pallets(
    shipping_type: ShippingType = Query(..., description="TRUCK or COURIER"),
    q: Optional[str] = Query(None, description="Search client, pallet number or dimensions"),
    trigger: RefreshTrigger = Depends(refresh_trigger),
    store: RecordStore = Depends(get_store)
):
    """
    List unsent pallets of one shipping type, newest first.
    """
    pallets = await PalletService.list_unsent(store, shipping_type, q)
    return PalletListResponse(pallets=pallets, total=len(pallets))


@router.post("/truck-pallets", response_model=PalletRecord, status_code=status.HTTP_201_CREATED)
async def create_truck_pallet(
    pallet_data: TruckPalletCreate,
    store: RecordStore = Depends(get_store)
):
    """
    Register a truck pallet.

    An optional trip date schedules the pallet into the open trip of that day.
    """
    return await PalletService.create_truck_pallet(store, pallet_data)


@router.post("/courier-pallets", response_model=PalletRecord, status_code=status.HTTP_201_CREATED)
async def create_courier_pallet(
    pallet_data: CourierPalletCreate,
    store: RecordStore = Depends(get_store)
):
    """
    Register a courier pallet. Length, depth and height are all required.
    """
    return await PalletService.create_courier_pallet(store, pallet_data)


@router.get("/pallets/{pallet_id}", response_model=PalletDetailResponse)
async def get_pallet(
    pallet_id: str = Path(..., description="Pallet ID"),
    store: RecordStore = Depends(get_store)
):
    record = await PalletService.get_pallet(store, pallet_id)
    return PalletDetailResponse.from_record(record)


@router.patch("/pallets/{pallet_id}", response_model=PalletDetailResponse)
async def update_pallet(
    pallet_data: PalletUpdate,
    pallet_id: str = Path(..., description="Pallet ID"),
    store: RecordStore = Depends(get_store)
):
    """
    Edit bobbins, status, dimensions (courier only) or trip date of an unsent pallet.
    """
    record = await PalletService.update_pallet(store, pallet_id, pallet_data)
    return PalletDetailResponse.from_record(record)


@router.patch("/pallets/{pallet_id}/status", response_model=PalletRecord)
async def set_pallet_status(
    status_data: PalletStatusUpdate,
    pallet_id: str = Path(..., description="Pallet ID"),
    store: RecordStore = Depends(get_store)
):
    """Quick toggle between IN_PROGRESS and READY."""
    return await PalletService.set_status(store, pallet_id, status_data.status)
