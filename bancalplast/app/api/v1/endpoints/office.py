"""
Office API Endpoints.

The office groups ready pallets into trips, marks them sent and purges the
shipped history.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import JSONResponse
from typing import Optional

from bancalplast.app.core.dependencies import get_store, refresh_trigger
from bancalplast.app.db.store import RecordStore
from bancalplast.app.models.enums import RefreshTrigger
from bancalplast.app.models.trip_enums import TripStatus
from bancalplast.app.schemas.trip import (
    AssignResult,
    AssignToTrip,
    DeleteResult,
    GroupedPalletsResponse,
    PalletSelection,
    SendOutcome,
    ShippedHistoryResponse,
    TripCreate,
    TripDeleteOutcome,
    TripListResponse,
    TripResolveResponse,
)
from bancalplast.app.services.shipping_service import ShippingService

router = APIRouter(prefix="/office", tags=["Office"])


@router.get("/ready-pallets", response_model=GroupedPalletsResponse)
async def list_ready_pallets(
    q: Optional[str] = Query(None, description="Search client, pallet number or dimensions"),
    trigger: RefreshTrigger = Depends(refresh_trigger),
    store: RecordStore = Depends(get_store)
):
    """
    Ready, unsent pallets grouped by trip date.

    Pallets without a trip come first, then trips by ascending date.
    """
    return await ShippingService.list_ready(store, q)


@router.get("/trips/open", response_model=TripListResponse)
async def list_open_trips(store: RecordStore = Depends(get_store)):
    trips = await ShippingService.list_trips(store, TripStatus.OPEN)
    return TripListResponse(trips=trips, total=len(trips))


@router.post("/trips", response_model=TripResolveResponse, status_code=status.HTTP_200_OK)
async def open_trip(
    trip_data: TripCreate,
    store: RecordStore = Depends(get_store)
):
    """
    Get or create the open trip for a date.

    Calling it again for the same date returns the same trip.
    """
    return await ShippingService.open_trip(store, trip_data.trip_date)


@router.post("/pallets/assign", response_model=AssignResult)
async def assign_pallets(
    body: AssignToTrip,
    store: RecordStore = Depends(get_store)
):
    return await ShippingService.assign_to_trip(store, body.pallet_ids, body.trip_id)


@router.post(
    "/pallets/send",
    response_model=SendOutcome,
    responses={207: {"model": SendOutcome, "description": "Pallets sent, trips not updated"}},
)
async def send_pallets(
    body: PalletSelection,
    store: RecordStore = Depends(get_store)
):
    """
    Mark the selected pallets sent and their trips shipped.

    Returns 207 when the pallets were sent but the trip update failed.
    """
    outcome = await ShippingService.mark_sent(store, body.pallet_ids)
    if outcome.partial:
        return JSONResponse(status_code=status.HTTP_207_MULTI_STATUS, content=outcome.model_dump())
    return outcome


@router.post("/pallets/delete", response_model=DeleteResult)
async def delete_pallets(
    body: PalletSelection,
    store: RecordStore = Depends(get_store)
):
    deleted = await ShippingService.delete_pallets(store, body.pallet_ids)
    return DeleteResult(deleted_pallets=deleted)


@router.get("/shipped", response_model=ShippedHistoryResponse)
async def list_shipped(
    q: Optional[str] = Query(None, description="Search client, pallet number or dimensions"),
    trigger: RefreshTrigger = Depends(refresh_trigger),
    store: RecordStore = Depends(get_store)
):
    """Sent pallets grouped by trip date, plus the shipped trips."""
    return await ShippingService.list_shipped(store, q)


@router.delete(
    "/trips/{trip_id}",
    response_model=TripDeleteOutcome,
    responses={207: {"model": TripDeleteOutcome, "description": "Pallets deleted, trip kept"}},
)
async def delete_trip(
    trip_id: str = Path(..., description="Trip ID"),
    store: RecordStore = Depends(get_store)
):
    """
    Permanently delete a trip and all pallets assigned to it.
    """
    outcome = await ShippingService.delete_trip(store, trip_id)
    if not outcome.trip_deleted:
        return JSONResponse(status_code=status.HTTP_207_MULTI_STATUS, content=outcome.model_dump())
    return outcome
