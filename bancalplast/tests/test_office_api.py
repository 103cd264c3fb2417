"""
Integration tests for the office endpoints.

Tests grouping of ready pallets, trip assignment, sending (including the
partial failure report) and the shipped history cleanup.
"""

import pytest

from bancalplast.app.core.exceptions import StoreError
from bancalplast.app.db.store import eq

# Note: Client and DB setup are in conftest.py


@pytest.fixture
def open_trip(client):
    async def _open(trip_date):
        response = await client.post("/v1/office/trips", json={"trip_date": trip_date})
        assert response.status_code == 200
        return response.json()["trip_id"]
    return _open


@pytest.mark.asyncio
async def test_open_trip_is_get_or_create(client, open_trip, store):
    first = await open_trip("2026-06-01")
    second = await open_trip("2026-06-01")

    assert first == second
    response = await client.get("/v1/office/trips/open")
    assert response.json()["total"] == 1
    assert response.json()["trips"][0]["trip_date"] == "2026-06-01"


@pytest.mark.asyncio
async def test_open_trip_rejects_bad_date(client):
    response = await client.post("/v1/office/trips", json={"trip_date": "2026-13-01"})
    assert response.status_code == 422
    assert response.json()["details"]["field"] == "trip_date"


@pytest.mark.asyncio
async def test_open_trips_sorted_ascending(client, open_trip):
    await open_trip("2026-06-10")
    await open_trip("2026-06-01")

    response = await client.get("/v1/office/trips/open")

    assert [t["trip_date"] for t in response.json()["trips"]] == ["2026-06-01", "2026-06-10"]


@pytest.mark.asyncio
async def test_ready_pallets_grouped_by_trip(client, open_trip, make_pallet):
    later = await open_trip("2026-02-01")
    earlier = await open_trip("2026-01-15")
    await make_pallet(client="B", pallet_no="1", bobbins_count=5, trip_id=earlier)
    await make_pallet(client="A", pallet_no="2", bobbins_count=2, trip_id=earlier)
    await make_pallet(client="A", pallet_no="1", bobbins_count=3, trip_id=earlier)
    await make_pallet(client="Z", pallet_no="9", bobbins_count=1, trip_id=later)
    await make_pallet(client="C", pallet_no="1", bobbins_count=4)
    await make_pallet(client="X", pallet_no="1", status="IN_PROGRESS")
    await make_pallet(client="Y", pallet_no="1", sent_at="2026-01-01T09:00:00+00:00")

    response = await client.get("/v1/office/ready-pallets", params={"trigger": "visible"})

    assert response.status_code == 200
    data = response.json()
    assert [g["key"] for g in data["groups"]] == ["NONE", "2026-01-15", "2026-02-01"]
    assert data["total_pallets"] == 5
    assert data["total_bobbins"] == 15

    jan = data["groups"][1]
    assert [(p["client"], p["pallet_no"]) for p in jan["pallets"]] == [("A", "1"), ("A", "2"), ("B", "1")]
    assert jan["total_pallets"] == 3
    assert jan["total_bobbins"] == 10
    assert jan["clients"] == [
        {"client": "A", "pallets": 2, "bobbins": 5},
        {"client": "B", "pallets": 1, "bobbins": 5},
    ]
    assert jan["trip_ids"] == [earlier]


@pytest.mark.asyncio
async def test_ready_pallets_search(client, make_pallet):
    await make_pallet(client="Rossi", pallet_no="1")
    await make_pallet(client="Verdi", pallet_no="2")

    response = await client.get("/v1/office/ready-pallets", params={"q": "ROSSI"})

    assert response.json()["total_pallets"] == 1


@pytest.mark.asyncio
async def test_assign_pallets_to_trip(client, open_trip, make_pallet):
    trip_id = await open_trip("2026-03-01")
    one = await make_pallet(pallet_no="1")
    two = await make_pallet(pallet_no="2")

    response = await client.post("/v1/office/pallets/assign", json={
        "pallet_ids": [one["id"], two["id"]], "trip_id": trip_id,
    })

    assert response.status_code == 200
    assert response.json()["assigned_pallet_ids"] == sorted([one["id"], two["id"]])
    groups = (await client.get("/v1/office/ready-pallets")).json()["groups"]
    assert [g["key"] for g in groups] == ["2026-03-01"]


@pytest.mark.asyncio
async def test_assign_to_missing_trip(client, make_pallet):
    row = await make_pallet()
    response = await client.post("/v1/office/pallets/assign", json={"pallet_ids": [row["id"]], "trip_id": "nope"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_requires_selection(client, open_trip):
    trip_id = await open_trip("2026-03-01")
    response = await client.post("/v1/office/pallets/assign", json={"pallet_ids": [], "trip_id": trip_id})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_send_marks_pallets_and_trip(client, open_trip, make_pallet, store):
    trip_id = await open_trip("2026-03-01")
    on_trip = await make_pallet(pallet_no="1", trip_id=trip_id)
    loose = await make_pallet(pallet_no="2")

    response = await client.post("/v1/office/pallets/send", json={"pallet_ids": [on_trip["id"], loose["id"]]})

    assert response.status_code == 200
    outcome = response.json()
    assert outcome["sent_pallet_ids"] == sorted([on_trip["id"], loose["id"]])
    assert outcome["shipped_trip_ids"] == [trip_id]
    assert outcome["trip_error"] is None

    (trip,) = await store.find("trips", [eq("id", trip_id)])
    assert trip["status"] == "SHIPPED"
    assert trip["shipped_at"] is not None

    ready = (await client.get("/v1/office/ready-pallets")).json()
    assert ready["total_pallets"] == 0
    open_trips = (await client.get("/v1/office/trips/open")).json()
    assert open_trips["total"] == 0


@pytest.mark.asyncio
async def test_send_does_not_restamp_sent_pallets(client, make_pallet, store):
    row = await make_pallet(sent_at="2026-01-01T09:00:00+00:00")

    response = await client.post("/v1/office/pallets/send", json={"pallet_ids": [row["id"]]})

    assert response.json()["sent_pallet_ids"] == []
    assert response.json()["skipped_pallet_ids"] == [row["id"]]
    (stored,) = await store.find("pallets", [eq("id", row["id"])])
    assert stored["sent_at"].startswith("2026-01-01T09:00:00")


@pytest.mark.asyncio
async def test_send_reports_trip_update_failure(client, open_trip, make_pallet, store, mocker):
    trip_id = await open_trip("2026-03-01")
    row = await make_pallet(trip_id=trip_id)

    real_update = store.update

    async def update(table, patch, filters, **kwargs):
        if table == "trips":
            raise StoreError("update", "trips", "connection reset")
        return await real_update(table, patch, filters, **kwargs)

    mocker.patch.object(store, "update", side_effect=update)

    response = await client.post("/v1/office/pallets/send", json={"pallet_ids": [row["id"]]})

    assert response.status_code == 207
    outcome = response.json()
    assert outcome["sent_pallet_ids"] == [row["id"]]
    assert outcome["shipped_trip_ids"] == []
    assert "trips" in outcome["trip_error"]

    (trip,) = await store.find("trips", [eq("id", trip_id)])
    assert trip["status"] == "OPEN"
    (pallet,) = await store.find("pallets", [eq("id", row["id"])])
    assert pallet["sent_at"] is not None


@pytest.mark.asyncio
async def test_store_failure_is_generic_502(client, store, mocker):
    mocker.patch.object(store, "find", side_effect=StoreError("find", "pallets", "boom"))

    response = await client.get("/v1/office/ready-pallets")

    assert response.status_code == 502
    assert response.json()["error_code"] == "ERR_STORE_001"
    assert "boom" not in response.text


@pytest.mark.asyncio
async def test_delete_selected_pallets(client, make_pallet, store):
    one = await make_pallet(pallet_no="1")
    two = await make_pallet(pallet_no="2")

    response = await client.post("/v1/office/pallets/delete", json={"pallet_ids": [one["id"]]})

    assert response.json()["deleted_pallets"] == 1
    assert [r["id"] for r in await store.find("pallets")] == [two["id"]]


@pytest.mark.asyncio
async def test_shipped_history(client, open_trip, make_pallet):
    trip_id = await open_trip("2026-03-01")
    b = await make_pallet(client="B", pallet_no="1", bobbins_count=2, trip_id=trip_id)
    a = await make_pallet(client="A", pallet_no="1", bobbins_count=1, trip_id=trip_id)
    await make_pallet(client="C", pallet_no="1", sent_at="2026-02-01T08:00:00+00:00")
    await make_pallet(client="D", pallet_no="1")
    await client.post("/v1/office/pallets/send", json={"pallet_ids": [a["id"], b["id"]]})

    response = await client.get("/v1/office/shipped", params={"trigger": "user"})

    assert response.status_code == 200
    data = response.json()
    assert [g["key"] for g in data["groups"]] == ["NONE", "2026-03-01"]
    assert [p["client"] for p in data["groups"][1]["pallets"]] == ["A", "B"]
    assert data["total_pallets"] == 3
    assert [t["id"] for t in data["trips"]] == [trip_id]
    assert data["trips"][0]["status"] == "SHIPPED"


@pytest.mark.asyncio
async def test_delete_trip_removes_its_pallets(client, open_trip, make_pallet, store):
    trip_id = await open_trip("2026-03-01")
    other_trip = await open_trip("2026-03-02")
    await make_pallet(pallet_no="1", trip_id=trip_id, sent_at="2026-03-01T08:00:00+00:00")
    await make_pallet(pallet_no="2", trip_id=trip_id)
    keep = await make_pallet(pallet_no="3", trip_id=other_trip)

    response = await client.delete(f"/v1/office/trips/{trip_id}")

    assert response.status_code == 200
    assert response.json() == {
        "trip_id": trip_id, "deleted_pallets": 2, "trip_deleted": True, "trip_error": None,
    }
    assert [r["id"] for r in await store.find("pallets")] == [keep["id"]]
    assert [r["id"] for r in await store.find("trips")] == [other_trip]


@pytest.mark.asyncio
async def test_delete_missing_trip(client):
    response = await client.delete("/v1/office/trips/missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_trip_reports_partial_failure(client, open_trip, make_pallet, store, mocker):
    trip_id = await open_trip("2026-03-01")
    await make_pallet(trip_id=trip_id)

    real_delete = store.delete

    async def delete(table, filters):
        if table == "trips":
            raise StoreError("delete", "trips", "timeout")
        return await real_delete(table, filters)

    mocker.patch.object(store, "delete", side_effect=delete)

    response = await client.delete(f"/v1/office/trips/{trip_id}")

    assert response.status_code == 207
    assert response.json()["deleted_pallets"] == 1
    assert response.json()["trip_deleted"] is False
    assert len(await store.find("trips")) == 1


@pytest.mark.asyncio
async def test_send_skips_pallets_in_progress(client, make_pallet, store):
    ready = await make_pallet(pallet_no="1")
    working = await make_pallet(pallet_no="2", status="IN_PROGRESS")

    response = await client.post("/v1/office/pallets/send", json={"pallet_ids": [ready["id"], working["id"]]})

    assert response.status_code == 200
    assert response.json()["sent_pallet_ids"] == [ready["id"]]
    assert response.json()["skipped_pallet_ids"] == [working["id"]]
    (stored,) = await store.find("pallets", [eq("id", working["id"])])
    assert stored["sent_at"] is None


@pytest.mark.asyncio
async def test_assign_skips_pallets_in_progress(client, open_trip, make_pallet, store):
    trip_id = await open_trip("2026-03-01")
    working = await make_pallet(status="IN_PROGRESS")

    response = await client.post("/v1/office/pallets/assign", json={"pallet_ids": [working["id"]], "trip_id": trip_id})

    assert response.status_code == 200
    assert response.json()["assigned_pallet_ids"] == []
    assert response.json()["skipped_pallet_ids"] == [working["id"]]
    (stored,) = await store.find("pallets", [eq("id", working["id"])])
    assert stored["trip_id"] is None


@pytest.mark.asyncio
async def test_send_reports_only_trips_it_shipped(client, open_trip, make_pallet, store):
    shipped = await store.insert("trips", {"trip_date": "2026-02-20", "status": "SHIPPED"})
    open_id = await open_trip("2026-03-01")
    late = await make_pallet(pallet_no="1", trip_id=shipped["id"])
    fresh = await make_pallet(pallet_no="2", trip_id=open_id)

    response = await client.post("/v1/office/pallets/send", json={"pallet_ids": [late["id"], fresh["id"]]})

    assert response.status_code == 200
    assert response.json()["shipped_trip_ids"] == [open_id]
