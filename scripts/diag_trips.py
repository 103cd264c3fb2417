"""
Trip table diagnostic.

Checks that the configured store accepts reads and writes on `trips`:
select, insert a test trip, read it back, delete it.

Usage (from the repository root):
    python -m scripts.diag_trips
"""

import asyncio
import os
import sys

from dotenv import load_dotenv

# Credentials live in .env.local next to the app; load before settings are read
load_dotenv(".env.local")

from bancalplast.app.core.config import settings  # noqa: E402
from bancalplast.app.core.exceptions import ConfigurationError, StoreError  # noqa: E402
from bancalplast.app.db.store import build_store, eq  # noqa: E402

TEST_DATE = "2099-12-31"
TRIP_COLUMNS = ["id", "trip_date", "status"]


def fail(msg, cause=None):
    print(f"❌ {msg}")
    if cause is not None:
        print(cause)
    sys.exit(1)


async def check_trips():
    print(f"\nENV STORE_URL present: {bool(os.getenv('STORE_URL'))}")
    print(f"ENV STORE_KEY present: {bool(os.getenv('STORE_KEY'))}")
    try:
        store = build_store(settings.store_config())
    except ConfigurationError as e:
        fail(str(e))

    try:
        print("\n1) SELECT trips (limit 3) ...")
        try:
            rows = await store.find(
                "trips", columns=TRIP_COLUMNS + ["shipped_at", "created_at"],
                order_by="created_at", descending=True, limit=3,
            )
        except StoreError as e:
            fail("SELECT trips error:", e.cause)
        print(f"✅ SELECT trips ok. Rows: {len(rows)}")
        for row in rows:
            print(row)

        print(f"\n2) INSERT test trip (trip_date = {TEST_DATE}) ...")
        try:
            created = await store.insert("trips", {"trip_date": TEST_DATE, "status": "OPEN"}, columns=TRIP_COLUMNS)
        except StoreError as e:
            fail("INSERT trips error:", e.cause)
        print(f"✅ INSERT ok: {created}")

        print("\n3) SELECT test trip ...")
        try:
            found = await store.find("trips", [eq("id", created["id"])], columns=TRIP_COLUMNS, limit=1)
        except StoreError as e:
            fail("SELECT test trip error:", e.cause)
        if not found:
            fail(f"Test trip {created['id']} not found after insert")
        print(f"✅ SELECT test trip ok: {found[0]}")

        print("\n4) DELETE test trip ...")
        try:
            await store.delete("trips", [eq("id", created["id"])])
            print("✅ DELETE ok")
        except StoreError as e:
            print("⚠️ DELETE test trip error (test row left behind):")
            print(e.cause)

        print("\nDiagnostics complete ✅")
    finally:
        await store.aclose()


if __name__ == "__main__":
    asyncio.run(check_trips())
