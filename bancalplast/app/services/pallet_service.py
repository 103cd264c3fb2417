"""
Production-side pallet operations.

Registering truck and courier pallets, the production lists, the detail edit
and the quick status toggle. The courier dimensions rule is checked here for
every insert and update.
"""

import logging
from typing import List, Optional

from bancalplast.app.core.exceptions import ResourceNotFoundError, ValidationError
from bancalplast.app.db.store import Embed, RecordStore, eq, is_null
from bancalplast.app.domain.pallets.dimensions import decode_dimensions, encode_dimensions, is_valid_dimensions
from bancalplast.app.domain.pallets.grouping import matches_query
from bancalplast.app.domain.trips.trip_resolver import TripResolver, parse_trip_date
from bancalplast.app.models.pallet_enums import PalletStatus, ShippingType
from bancalplast.app.schemas.pallet import CourierPalletCreate, PalletRecord, PalletUpdate, TruckPalletCreate

logger = logging.getLogger("bancalplast.pallets")

PALLET_COLUMNS = [
    "id", "client", "pallet_no", "bobbins_count", "status", "shipping_type",
    "dimensions", "trip_id", "sent_at", "created_at",
]
TRIP_DATE = Embed("trips", ["trip_date"])


def require_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    return text


def check_dimensions(shipping_type: ShippingType, dimensions: Optional[str]) -> None:
    """
    Courier pallets need well-formed dimensions, truck pallets none.

    Raises:
        ValidationError: when the pair violates the rule.
    """
    if ShippingType(shipping_type) == ShippingType.COURIER:
        if not is_valid_dimensions(dimensions):
            raise ValidationError(
                "Courier pallets need all three dimensions (L x P x H)",
                field="dimensions",
                value=dimensions,
            )
    elif dimensions is not None:
        raise ValidationError("Truck pallets do not carry dimensions", field="dimensions", value=dimensions)


class PalletService:

    @staticmethod
    async def get_pallet(store: RecordStore, pallet_id: str) -> PalletRecord:
        rows = await store.find(
            "pallets", [eq("id", pallet_id)], columns=PALLET_COLUMNS, limit=1, embed=TRIP_DATE
        )
        if not rows:
            raise ResourceNotFoundError("Pallet", pallet_id)
        return PalletRecord.from_row(rows[0])

    @staticmethod
    async def list_unsent(
        store: RecordStore,
        shipping_type: ShippingType,
        query: Optional[str] = None,
    ) -> List[PalletRecord]:
        """Unsent pallets of one shipping type, newest first."""
        rows = await store.find(
            "pallets",
            [eq("shipping_type", ShippingType(shipping_type).value), is_null("sent_at")],
            columns=PALLET_COLUMNS,
            order_by="created_at",
            descending=True,
            embed=TRIP_DATE,
        )
        records = [PalletRecord.from_row(row) for row in rows]
        return [r for r in records if matches_query(r, query)]

    @staticmethod
    async def _insert(store: RecordStore, record: dict, trip_date: Optional[str]) -> PalletRecord:
        check_dimensions(record["shipping_type"], record.get("dimensions"))
        row = await store.insert("pallets", record, columns=PALLET_COLUMNS)
        row["trip_date"] = trip_date
        logger.info("Registered %s pallet %s for %s", record["shipping_type"], record["pallet_no"], record["client"])
        return PalletRecord.from_row(row)

    @staticmethod
    async def create_truck_pallet(store: RecordStore, data: TruckPalletCreate) -> PalletRecord:
        """
        Register a truck pallet.

        When a trip date is given the pallet goes straight into the open trip
        of that date, created on demand.
        """
        client = require_text(data.client, "client")
        pallet_no = require_text(data.pallet_no, "pallet_no")

        trip_id = None
        trip_date = None
        if data.trip_date and data.trip_date.strip():
            trip_date = parse_trip_date(data.trip_date)
            trip_id = await TripResolver.resolve(store, trip_date)

        record = {
            "client": client,
            "pallet_no": pallet_no,
            "bobbins_count": data.bobbins_count,
            "status": PalletStatus(data.status).value,
            "shipping_type": ShippingType.TRUCK.value,
            "dimensions": None,
            "trip_id": trip_id,
        }
        return await PalletService._insert(store, record, trip_date)

    @staticmethod
    async def create_courier_pallet(store: RecordStore, data: CourierPalletCreate) -> PalletRecord:
        """Register a courier pallet; all three dimensions are mandatory."""
        client = require_text(data.client, "client")
        pallet_no = require_text(data.pallet_no, "pallet_no")

        dimensions = encode_dimensions(data.length, data.depth, data.height)
        if dimensions is None:
            raise ValidationError("Enter all three dimensions: L x P x H", field="dimensions")

        record = {
            "client": client,
            "pallet_no": pallet_no,
            "bobbins_count": data.bobbins_count,
            "status": PalletStatus(data.status).value,
            "shipping_type": ShippingType.COURIER.value,
            "dimensions": dimensions,
            "trip_id": None,
        }
        return await PalletService._insert(store, record, None)

    @staticmethod
    async def _update_unsent(store: RecordStore, pallet_id: str, patch: dict) -> PalletRecord:
        rows = await store.update(
            "pallets", patch, [eq("id", pallet_id), is_null("sent_at")], columns=["id"]
        )
        if not rows:
            # Distinguish a missing pallet from one that has already left
            await PalletService.get_pallet(store, pallet_id)
            raise ValidationError("Pallet has already been sent", field="sent_at")
        return await PalletService.get_pallet(store, pallet_id)

    @staticmethod
    async def update_pallet(store: RecordStore, pallet_id: str, data: PalletUpdate) -> PalletRecord:
        """
        Apply a detail-view edit to an unsent pallet.

        Every check runs before the trip date is resolved, so a rejected edit
        never leaves a new trip behind.
        """
        current = await PalletService.get_pallet(store, pallet_id)
        if current.sent_at is not None:
            raise ValidationError("Pallet has already been sent", field="sent_at")
        changes = data.model_dump(exclude_unset=True)

        patch = {}
        if changes.get("bobbins_count") is not None:
            patch["bobbins_count"] = changes["bobbins_count"]
        if changes.get("status") is not None:
            patch["status"] = PalletStatus(changes["status"]).value

        dim_fields = {"length", "depth", "height"} & changes.keys()
        if dim_fields:
            if current.shipping_type != ShippingType.COURIER:
                raise ValidationError("Truck pallets do not carry dimensions", field="dimensions")
            old = decode_dimensions(current.dimensions)
            dimensions = encode_dimensions(
                changes.get("length", old.l) or "",
                changes.get("depth", old.p) or "",
                changes.get("height", old.h) or "",
            )
            if dimensions is None:
                raise ValidationError("Enter all three dimensions: L x P x H", field="dimensions")
            patch["dimensions"] = dimensions

        check_dimensions(current.shipping_type, patch.get("dimensions", current.dimensions))

        if changes.get("trip_date"):
            patch["trip_id"] = await TripResolver.resolve(store, parse_trip_date(changes["trip_date"]))

        if not patch:
            return current
        return await PalletService._update_unsent(store, pallet_id, patch)

    @staticmethod
    async def set_status(store: RecordStore, pallet_id: str, status: PalletStatus) -> PalletRecord:
        """Quick toggle between IN_PROGRESS and READY."""
        return await PalletService._update_unsent(store, pallet_id, {"status": PalletStatus(status).value})
