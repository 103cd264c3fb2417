"""
Tests for get-or-create trip resolution.
"""

import asyncio
from datetime import date

import pytest

from bancalplast.app.core.exceptions import StoreError, ValidationError
from bancalplast.app.db.store import RecordStore, eq
from bancalplast.app.domain.trips.trip_resolver import TripResolver, parse_trip_date


async def open_trips(store, day):
    return await store.find("trips", [eq("trip_date", day), eq("status", "OPEN")])


@pytest.mark.asyncio
async def test_resolve_creates_open_trip(store):
    trip_id = await TripResolver.resolve(store, "2026-03-10")

    rows = await open_trips(store, "2026-03-10")
    assert [r["id"] for r in rows] == [trip_id]
    assert rows[0]["trip_date"] == "2026-03-10"
    assert rows[0]["shipped_at"] is None


@pytest.mark.asyncio
async def test_resolve_is_idempotent(store):
    first = await TripResolver.resolve(store, "2026-03-10")
    second = await TripResolver.resolve(store, "2026-03-10")

    assert first == second
    assert len(await store.find("trips", [eq("trip_date", "2026-03-10")])) == 1


@pytest.mark.asyncio
async def test_resolve_accepts_date_objects(store):
    first = await TripResolver.resolve(store, date(2026, 3, 10))
    second = await TripResolver.resolve(store, "2026-03-10")
    assert first == second


@pytest.mark.asyncio
async def test_resolve_skips_shipped_trip(store):
    shipped = await store.insert("trips", {"trip_date": "2026-03-10", "status": "SHIPPED"})

    trip_id = await TripResolver.resolve(store, "2026-03-10")

    assert trip_id != shipped["id"]
    assert len(await open_trips(store, "2026-03-10")) == 1


@pytest.mark.asyncio
async def test_different_dates_get_different_trips(store):
    assert await TripResolver.resolve(store, "2026-03-10") != await TripResolver.resolve(store, "2026-03-11")


@pytest.mark.parametrize("value", ["", "10/03/2026", "2026-3-10", "2026-02-30", "tomorrow", None, 20260310])
def test_malformed_date_rejected(value):
    with pytest.raises(ValidationError) as exc_info:
        parse_trip_date(value)
    assert repr(value) in exc_info.value.message


@pytest.mark.asyncio
async def test_malformed_date_touches_no_store(store):
    with pytest.raises(ValidationError):
        await TripResolver.resolve(store, "2026/03/10")
    assert await store.find("trips") == []


class GatedStore(RecordStore):
    """Lets every lookup finish before any insert runs."""

    def __init__(self, inner, callers):
        self.inner = inner
        self.callers = callers
        self.looked_up = 0
        self.all_looked_up = asyncio.Event()
        self.insert_lock = asyncio.Lock()

    async def find(self, table, filters=(), **kwargs):
        rows = await self.inner.find(table, filters, **kwargs)
        self.looked_up += 1
        if self.looked_up >= self.callers:
            self.all_looked_up.set()
        await self.all_looked_up.wait()
        return rows

    async def insert(self, table, record, **kwargs):
        async with self.insert_lock:
            return await self.inner.insert(table, record, **kwargs)

    async def update(self, table, patch, filters, **kwargs):
        return await self.inner.update(table, patch, filters, **kwargs)

    async def delete(self, table, filters):
        return await self.inner.delete(table, filters)


@pytest.mark.asyncio
async def test_concurrent_resolution_can_duplicate_open_trips(store):
    """Lookup and insert are not atomic: racing callers both create a trip."""
    gated = GatedStore(store, callers=2)

    first, second = await asyncio.gather(
        TripResolver.resolve(gated, "2026-03-10"),
        TripResolver.resolve(gated, "2026-03-10"),
    )

    assert first != second
    assert len(await open_trips(store, "2026-03-10")) == 2


@pytest.mark.asyncio
async def test_store_errors_propagate_without_retry(mocker):
    failing = mocker.AsyncMock(spec=RecordStore)
    failing.find.side_effect = StoreError("find", "trips", "connection refused")

    with pytest.raises(StoreError):
        await TripResolver.resolve(failing, "2026-03-10")

    assert failing.find.await_count == 1
    failing.insert.assert_not_awaited()
