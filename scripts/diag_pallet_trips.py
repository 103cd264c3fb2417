"""
Pallet/trip diagnostic.

Prints the 20 most recent pallets with the date of the trip each one points
to, so orphaned trip references and unscheduled pallets are easy to spot.

Usage (from the repository root):
    python -m scripts.diag_pallet_trips
"""

import asyncio
import sys

from dotenv import load_dotenv

# Credentials live in .env.local next to the app; load before settings are read
load_dotenv(".env.local")

from bancalplast.app.core.config import settings  # noqa: E402
from bancalplast.app.core.exceptions import ConfigurationError, StoreError  # noqa: E402
from bancalplast.app.db.store import build_store, in_  # noqa: E402

PALLET_COLUMNS = ["id", "client", "pallet_no", "shipping_type", "status", "trip_id", "sent_at", "created_at"]


async def main():
    try:
        store = build_store(settings.store_config())
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(1)

    try:
        try:
            rows = await store.find("pallets", columns=PALLET_COLUMNS, order_by="created_at", descending=True, limit=20)
        except StoreError as e:
            print(f"❌ Pallets query failed: {e.cause}")
            sys.exit(1)

        with_trip = sum(1 for r in rows if r["trip_id"])
        print("\n--- Last 20 pallets ---")
        print(f"with trip_id: {with_trip}  without trip_id: {len(rows) - with_trip}")

        trip_ids = sorted({r["trip_id"] for r in rows if r["trip_id"]})
        trip_dates = {}
        if trip_ids:
            try:
                trips = await store.find("trips", [in_("id", trip_ids)], columns=["id", "trip_date", "status"])
            except StoreError as e:
                print(f"❌ Trips query failed: {e.cause}")
                sys.exit(1)
            trip_dates = {t["id"]: t["trip_date"] for t in trips}

        for r in rows:
            if not r["trip_id"]:
                trip_date = "— (no trip_id)"
            else:
                trip_date = trip_dates.get(r["trip_id"], "?? (trip_id not found)")
            print(f"{r['pallet_no']} | {r['client']} | {r['shipping_type']} | trip_date: {trip_date}")
    finally:
        await store.aclose()


if __name__ == "__main__":
    asyncio.run(main())
