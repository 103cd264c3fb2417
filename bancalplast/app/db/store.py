"""
Record store adapters.

The services talk to persistence only through RecordStore: find / insert /
update / delete on a named table with simple predicates, plus optional
embedding of a many-to-one relation. Rows come back as plain dicts with
JSON-compatible values (ISO strings for dates and timestamps) whichever
backend is in use.

Two backends are provided:

* SqlRecordStore: SQLAlchemy async engine (PostgreSQL via asyncpg, SQLite via
  aiosqlite).
* RestRecordStore: httpx client for a PostgREST-compatible HTTP endpoint.
"""

import abc
import enum
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence

import httpx
from sqlalchemy import Date, DateTime, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from bancalplast.app.core.config import StoreConfig
from bancalplast.app.core.exceptions import StoreError
from bancalplast.app.db.session import Base, create_engine_for, create_session_factory
from bancalplast.app.models import pallet as _pallet_model  # noqa: F401
from bancalplast.app.models import trip as _trip_model  # noqa: F401

logger = logging.getLogger("bancalplast.store")

Row = Dict[str, Any]


class Filter(NamedTuple):
    """A single column predicate."""
    column: str
    op: str  # eq | in | is_null | not_null
    value: Any = None


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, "in", list(values))


def is_null(column: str) -> Filter:
    return Filter(column, "is_null")


def not_null(column: str) -> Filter:
    return Filter(column, "not_null")


class Embed(NamedTuple):
    """Related table to embed into each row, keyed by the table name."""
    table: str
    columns: Sequence[str]


# (table, embedded table) -> (local foreign key, remote key)
RELATIONS = {
    ("pallets", "trips"): ("trip_id", "id"),
}


def extract_related(value: Any) -> Optional[Row]:
    """
    Normalize an embedded many-to-one relation.

    Depending on the backend and call shape the related record arrives as a
    dict, a list with zero or one dict, or None.
    """
    if not value:
        return None
    if isinstance(value, list):
        return value[0] if value else None
    return value


def extract_trip_date(value: Any) -> Optional[str]:
    """Trip date of an embedded `trips` relation, or None."""
    related = extract_related(value)
    if not related:
        return None
    trip_date = related.get("trip_date")
    if isinstance(trip_date, date):
        return trip_date.isoformat()
    return trip_date or None


class RecordStore(abc.ABC):
    """Query interface consumed by the services."""

    @abc.abstractmethod
    async def find(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        *,
        columns: Optional[Sequence[str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        embed: Optional[Embed] = None,
    ) -> List[Row]:
        """Return the rows matching all filters."""

    @abc.abstractmethod
    async def insert(self, table: str, record: Row, *, columns: Optional[Sequence[str]] = None) -> Row:
        """Insert one record and return the stored row."""

    @abc.abstractmethod
    async def update(
        self,
        table: str,
        patch: Row,
        filters: Sequence[Filter],
        *,
        columns: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        """Apply patch to the matching rows and return them."""

    @abc.abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> int:
        """Delete the matching rows and return how many were removed."""

    async def aclose(self) -> None:
        """Release connections held by the store."""


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class SqlRecordStore(RecordStore):
    """RecordStore over a SQLAlchemy async engine. Each call is its own transaction."""

    def __init__(self, session_factory: async_sessionmaker, engine: Optional[AsyncEngine] = None):
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_config(cls, config: StoreConfig) -> "SqlRecordStore":
        engine = create_engine_for(config.url, echo=config.echo)
        return cls(create_session_factory(engine), engine=engine)

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    def _table(self, name: str):
        try:
            return Base.metadata.tables[name]
        except KeyError as exc:
            raise StoreError("resolve", name, exc) from exc

    @staticmethod
    def _coerce(column, value: Any) -> Any:
        if isinstance(value, str):
            if isinstance(column.type, DateTime):
                return datetime.fromisoformat(value)
            if isinstance(column.type, Date):
                return date.fromisoformat(value)
        return value

    def _values(self, table, record: Row) -> Row:
        return {key: self._coerce(table.c[key], value) for key, value in record.items()}

    def _where(self, table, filters: Sequence[Filter]) -> list:
        clauses = []
        for f in filters:
            column = table.c[f.column]
            if f.op == "eq":
                clauses.append(column == self._coerce(column, f.value))
            elif f.op == "in":
                clauses.append(column.in_([self._coerce(column, v) for v in f.value]))
            elif f.op == "is_null":
                clauses.append(column.is_(None))
            elif f.op == "not_null":
                clauses.append(column.is_not(None))
            else:
                raise ValueError(f"Unsupported filter operator: {f.op}")
        return clauses

    def _selected(self, table, columns: Optional[Sequence[str]], extra: Sequence[str] = ()):
        if not columns:
            return list(table.c)
        names = list(columns) + [c for c in extra if c not in columns]
        return [table.c[name] for name in names]

    async def _execute(self, operation: str, table: str, stmt, returns_rows: bool = True):
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = [dict(m) for m in result.mappings().all()] if returns_rows else result.rowcount
                await session.commit()
                return rows
        except SQLAlchemyError as exc:
            raise StoreError(operation, table, exc) from exc

    async def find(self, table, filters=(), *, columns=None, order_by=None, descending=False, limit=None, embed=None):
        try:
            t = self._table(table)
            extra = ()
            if embed is not None:
                local_key, _ = RELATIONS[(table, embed.table)]
                extra = (local_key,)
            stmt = select(*self._selected(t, columns, extra)).where(*self._where(t, filters))
            if order_by:
                column = t.c[order_by]
                stmt = stmt.order_by(column.desc() if descending else column.asc())
            if limit is not None:
                stmt = stmt.limit(limit)
        except (KeyError, ValueError) as exc:
            raise StoreError("find", table, exc) from exc

        rows = await self._execute("find", table, stmt)
        if embed is not None:
            await self._embed(table, rows, embed)
        return [{k: _plain(v) for k, v in row.items()} for row in rows]

    async def _embed(self, table: str, rows: List[Row], embed: Embed) -> None:
        local_key, remote_key = RELATIONS[(table, embed.table)]
        keys = {row[local_key] for row in rows if row.get(local_key) is not None}
        related: Dict[Any, Row] = {}
        if keys:
            remote = self._table(embed.table)
            stmt = select(*self._selected(remote, embed.columns, (remote_key,))).where(
                remote.c[remote_key].in_(keys)
            )
            for rel in await self._execute("find", embed.table, stmt):
                key = rel[remote_key]
                related[key] = {c: _plain(rel[c]) for c in embed.columns}
        for row in rows:
            row[embed.table] = related.get(row.get(local_key))

    async def insert(self, table, record, *, columns=None):
        try:
            t = self._table(table)
            stmt = insert(t).values(**self._values(t, record)).returning(*self._selected(t, columns))
        except (KeyError, ValueError) as exc:
            raise StoreError("insert", table, exc) from exc
        rows = await self._execute("insert", table, stmt)
        return {k: _plain(v) for k, v in rows[0].items()}

    async def update(self, table, patch, filters, *, columns=None):
        try:
            t = self._table(table)
            stmt = (
                update(t)
                .where(*self._where(t, filters))
                .values(**self._values(t, patch))
                .returning(*self._selected(t, columns))
            )
        except (KeyError, ValueError) as exc:
            raise StoreError("update", table, exc) from exc
        rows = await self._execute("update", table, stmt)
        return [{k: _plain(v) for k, v in row.items()} for row in rows]

    async def delete(self, table, filters):
        try:
            t = self._table(table)
            stmt = delete(t).where(*self._where(t, filters))
        except (KeyError, ValueError) as exc:
            raise StoreError("delete", table, exc) from exc
        return await self._execute("delete", table, stmt, returns_rows=False)

    async def aclose(self):
        if self._engine is not None:
            await self._engine.dispose()


class RestRecordStore(RecordStore):
    """
    RecordStore over a PostgREST-compatible HTTP API.

    The access key is sent both as `apikey` and as a bearer token, which is
    what hosted PostgREST gateways expect for anonymous clients.
    """

    def __init__(self, base_url: str, key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: StoreConfig) -> "RestRecordStore":
        return cls(config.url, config.key)

    @staticmethod
    def _filter_params(filters: Sequence[Filter]) -> List[tuple]:
        params = []
        for f in filters:
            if f.op == "eq":
                params.append((f.column, f"eq.{_plain(f.value)}"))
            elif f.op == "in":
                values = ",".join(str(_plain(v)) for v in f.value)
                params.append((f.column, f"in.({values})"))
            elif f.op == "is_null":
                params.append((f.column, "is.null"))
            elif f.op == "not_null":
                params.append((f.column, "not.is.null"))
            else:
                raise StoreError("filter", f.column, f"unsupported operator {f.op}")
        return params

    @staticmethod
    def _select(columns: Optional[Sequence[str]], embed: Optional[Embed] = None) -> str:
        parts = list(columns) if columns else ["*"]
        if embed is not None:
            parts.append(f"{embed.table}({','.join(embed.columns)})")
        return ",".join(parts)

    async def _request(self, operation: str, table: str, method: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, f"/{table}", **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(operation, table, exc) from exc
        if response.is_error:
            raise StoreError(operation, table, f"{response.status_code}: {response.text}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(operation, table, exc) from exc

    async def find(self, table, filters=(), *, columns=None, order_by=None, descending=False, limit=None, embed=None):
        params = [("select", self._select(columns, embed))] + self._filter_params(filters)
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))
        return await self._request("find", table, "GET", params=params) or []

    async def insert(self, table, record, *, columns=None):
        rows = await self._request(
            "insert", table, "POST",
            params=[("select", self._select(columns))],
            json={k: _plain(v) for k, v in record.items()},
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise StoreError("insert", table, "no row returned")
        return rows[0]

    async def update(self, table, patch, filters, *, columns=None):
        params = [("select", self._select(columns))] + self._filter_params(filters)
        rows = await self._request(
            "update", table, "PATCH",
            params=params,
            json={k: _plain(v) for k, v in patch.items()},
            headers={"Prefer": "return=representation"},
        )
        return rows or []

    async def delete(self, table, filters):
        rows = await self._request(
            "delete", table, "DELETE",
            params=[("select", "id")] + self._filter_params(filters),
            headers={"Prefer": "return=representation"},
        )
        return len(rows or [])

    async def aclose(self):
        await self._client.aclose()


def build_store(config: StoreConfig) -> RecordStore:
    """Pick the backend from the configured URL."""
    if config.is_rest:
        logger.info("Using REST record store at %s", config.url)
        return RestRecordStore.from_config(config)
    logger.info("Using SQL record store")
    return SqlRecordStore.from_config(config)
