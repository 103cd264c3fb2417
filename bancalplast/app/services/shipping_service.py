"""
Office-side shipping operations.

Scheduling ready pallets into trips, marking them sent, and purging shipped
history. Multi-step operations are not transactional; their outcome types
report each step separately.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Union

from bancalplast.app.core.exceptions import ResourceNotFoundError, StoreError, ValidationError
from bancalplast.app.db.store import RecordStore, eq, in_, is_null, not_null
from bancalplast.app.domain.pallets.grouping import group_by_trip_then_client, matches_query
from bancalplast.app.domain.trips.trip_resolver import TripResolver, parse_trip_date
from bancalplast.app.models.pallet_enums import PalletStatus
from bancalplast.app.models.trip_enums import TripStatus
from bancalplast.app.schemas.pallet import PalletRecord
from bancalplast.app.schemas.trip import (
    AssignResult,
    GroupedPalletsResponse,
    SendOutcome,
    ShippedHistoryResponse,
    TripDeleteOutcome,
    TripRecord,
    TripResolveResponse,
)
from bancalplast.app.services.pallet_service import PALLET_COLUMNS, TRIP_DATE

logger = logging.getLogger("bancalplast.shipping")

TRIP_COLUMNS = ["id", "trip_date", "status", "shipped_at", "created_at"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _schedulable(pallet_ids: List[str]) -> list:
    """Filters for pallets the office may schedule or send: READY and unsent."""
    return [in_("id", pallet_ids), eq("status", PalletStatus.READY.value), is_null("sent_at")]


def _skipped(requested: List[str], changed: List[str]) -> List[str]:
    return sorted(set(requested) - set(changed))


def _grouped(records: List[PalletRecord], query: Optional[str]) -> GroupedPalletsResponse:
    visible = [r for r in records if matches_query(r, query)]
    groups = group_by_trip_then_client(visible)
    return GroupedPalletsResponse(
        groups=groups,
        total_pallets=sum(g.total_pallets for g in groups),
        total_bobbins=sum(g.total_bobbins for g in groups),
    )


class ShippingService:

    @staticmethod
    async def list_ready(store: RecordStore, query: Optional[str] = None) -> GroupedPalletsResponse:
        """READY pallets not yet sent, grouped by trip date."""
        rows = await store.find(
            "pallets",
            [eq("status", PalletStatus.READY.value), is_null("sent_at")],
            columns=PALLET_COLUMNS,
            order_by="created_at",
            descending=True,
            embed=TRIP_DATE,
        )
        return _grouped([PalletRecord.from_row(row) for row in rows], query)

    @staticmethod
    async def list_trips(store: RecordStore, status: TripStatus) -> List[TripRecord]:
        """Trips of one status, ascending by date."""
        rows = await store.find(
            "trips",
            [eq("status", TripStatus(status).value)],
            columns=TRIP_COLUMNS,
            order_by="trip_date",
        )
        return [TripRecord(**row) for row in rows]

    @staticmethod
    async def open_trip(store: RecordStore, trip_date: Union[str, date]) -> TripResolveResponse:
        day = parse_trip_date(trip_date)
        trip_id = await TripResolver.resolve(store, day)
        return TripResolveResponse(trip_id=trip_id, trip_date=day)

    @staticmethod
    async def get_trip(store: RecordStore, trip_id: str) -> TripRecord:
        rows = await store.find("trips", [eq("id", trip_id)], columns=TRIP_COLUMNS, limit=1)
        if not rows:
            raise ResourceNotFoundError("Trip", trip_id)
        return TripRecord(**rows[0])

    @staticmethod
    async def assign_to_trip(store: RecordStore, pallet_ids: List[str], trip_id: str) -> AssignResult:
        """
        Put READY, unsent pallets into an open trip.

        Pallets still in progress or already sent are left alone and listed
        in skipped_pallet_ids.
        """
        trip = await ShippingService.get_trip(store, trip_id)
        if trip.status != TripStatus.OPEN:
            raise ValidationError("Trip has already been shipped", field="trip_id", value=trip_id)

        rows = await store.update(
            "pallets",
            {"trip_id": trip_id},
            _schedulable(pallet_ids),
            columns=["id"],
        )
        assigned = sorted(row["id"] for row in rows)
        skipped = _skipped(pallet_ids, assigned)
        logger.info("Assigned %d pallets to trip %s, skipped %s", len(assigned), trip_id, skipped)
        return AssignResult(trip_id=trip_id, assigned_pallet_ids=assigned, skipped_pallet_ids=skipped)

    @staticmethod
    async def mark_sent(store: RecordStore, pallet_ids: List[str]) -> SendOutcome:
        """
        Mark READY pallets sent and their open trips shipped.

        Pallets already sent keep their original timestamp; they and pallets
        still in progress are reported in skipped_pallet_ids. If the trip
        update fails after the pallet update succeeded, the pallets stay sent
        and the outcome carries trip_error.

        Raises:
            StoreError: if the pallet update itself fails (nothing changed).
        """
        sent_at = _now()
        rows = await store.update(
            "pallets",
            {"sent_at": sent_at},
            _schedulable(pallet_ids),
            columns=["id", "trip_id"],
        )
        sent_ids = sorted(row["id"] for row in rows)
        skipped = _skipped(pallet_ids, sent_ids)
        trip_ids = sorted({row["trip_id"] for row in rows if row.get("trip_id")})

        if not trip_ids:
            return SendOutcome(sent_pallet_ids=sent_ids, skipped_pallet_ids=skipped)

        try:
            shipped = await store.update(
                "trips",
                {"status": TripStatus.SHIPPED.value, "shipped_at": sent_at},
                [in_("id", trip_ids), eq("status", TripStatus.OPEN.value)],
                columns=["id"],
            )
        except StoreError as exc:
            logger.error(
                "Pallets %s sent but trips %s not marked shipped: %r", sent_ids, trip_ids, exc.cause
            )
            return SendOutcome(sent_pallet_ids=sent_ids, skipped_pallet_ids=skipped, trip_error=exc.message)

        shipped_ids = sorted(row["id"] for row in shipped)
        logger.info("Sent %d pallets, shipped trips %s", len(sent_ids), shipped_ids)
        return SendOutcome(sent_pallet_ids=sent_ids, skipped_pallet_ids=skipped, shipped_trip_ids=shipped_ids)

    @staticmethod
    async def delete_pallets(store: RecordStore, pallet_ids: List[str]) -> int:
        deleted = await store.delete("pallets", [in_("id", pallet_ids)])
        logger.info("Deleted %s pallets", deleted)
        return deleted

    @staticmethod
    async def list_shipped(store: RecordStore, query: Optional[str] = None) -> ShippedHistoryResponse:
        """Sent pallets grouped by trip date, with the list of shipped trips."""
        rows = await store.find(
            "pallets",
            [not_null("sent_at")],
            columns=PALLET_COLUMNS,
            order_by="client",
            embed=TRIP_DATE,
        )
        grouped = _grouped([PalletRecord.from_row(row) for row in rows], query)
        trips = await ShippingService.list_trips(store, TripStatus.SHIPPED)
        return ShippedHistoryResponse(
            groups=grouped.groups,
            total_pallets=grouped.total_pallets,
            total_bobbins=grouped.total_bobbins,
            trips=trips,
        )

    @staticmethod
    async def delete_trip(store: RecordStore, trip_id: str) -> TripDeleteOutcome:
        """
        Delete a trip and every pallet that references it.

        Pallets go first; if that fails nothing was removed. If the trip
        delete then fails, the outcome reports the pallets already gone.
        """
        await ShippingService.get_trip(store, trip_id)

        deleted = await store.delete("pallets", [eq("trip_id", trip_id)])
        try:
            await store.delete("trips", [eq("id", trip_id)])
        except StoreError as exc:
            logger.error("Deleted %s pallets of trip %s but not the trip: %r", deleted, trip_id, exc.cause)
            return TripDeleteOutcome(
                trip_id=trip_id, deleted_pallets=deleted, trip_deleted=False, trip_error=exc.message
            )

        logger.info("Deleted trip %s with %s pallets", trip_id, deleted)
        return TripDeleteOutcome(trip_id=trip_id, deleted_pallets=deleted, trip_deleted=True)
