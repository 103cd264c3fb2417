"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from bancalplast.app.main import app
from bancalplast.app.core.dependencies import get_store
from bancalplast.app.db.session import create_session_factory, create_tables
from bancalplast.app.db.store import SqlRecordStore

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", set_sqlite_pragma)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return SqlRecordStore(create_session_factory(engine))


@pytest.fixture
def override_store(store):
    """Route the API to the test store."""
    async def override_get_store():
        return store

    app.dependency_overrides[get_store] = override_get_store
    yield store
    app.dependency_overrides = {}


@pytest.fixture
async def client(override_store):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_pallet(store):
    """Insert a pallet row directly, bypassing the API."""
    async def _make(client="Rossi", pallet_no="1", bobbins_count=0, status="READY",
                    shipping_type="TRUCK", dimensions=None, trip_id=None, sent_at=None):
        return await store.insert("pallets", {
            "client": client,
            "pallet_no": pallet_no,
            "bobbins_count": bobbins_count,
            "status": status,
            "shipping_type": shipping_type,
            "dimensions": dimensions,
            "trip_id": trip_id,
            "sent_at": sent_at,
        })
    return _make
