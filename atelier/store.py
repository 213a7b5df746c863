"""
DuckDB row store for sales, clients, instruments and connections.

The store only reads and writes rows in the shape the pipeline expects;
enrichment and aggregation happen in Python on the fetched collections.
Blocking DuckDB calls run in a worker thread and a lock serializes access,
since a DuckDB connection must not be used from two threads at once.
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import duckdb

from atelier.config import config
from atelier.exceptions import StoreError
from atelier.filter_state import SalesFilters
from atelier.models import ClientInstrument, Client, Instrument, Sale
from atelier.observability import get_logger

logger = get_logger(__name__)

# Columns the store can ORDER BY; client_name is sorted after enrichment
_SQL_SORT_COLUMNS = {
    "sale_date": "sale_date",
    "sale_price": "sale_price",
}

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS clients (
        id VARCHAR PRIMARY KEY,
        first_name VARCHAR,
        last_name VARCHAR,
        email VARCHAR,
        contact_number VARCHAR,
        tags VARCHAR[],
        interest VARCHAR,
        note VARCHAR,
        client_number VARCHAR,
        created_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS instruments (
        id VARCHAR PRIMARY KEY,
        maker VARCHAR,
        type VARCHAR,
        subtype VARCHAR,
        serial_number VARCHAR,
        year INTEGER,
        price DOUBLE,
        status VARCHAR,
        created_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sales_history (
        id VARCHAR PRIMARY KEY,
        client_id VARCHAR,
        instrument_id VARCHAR,
        sale_price DOUBLE NOT NULL,
        sale_date DATE NOT NULL,
        notes VARCHAR,
        created_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS client_instruments (
        id VARCHAR PRIMARY KEY,
        client_id VARCHAR NOT NULL,
        instrument_id VARCHAR NOT NULL,
        relationship_type VARCHAR NOT NULL,
        notes VARCHAR,
        display_order INTEGER,
        created_at TIMESTAMP
    )
    """,
]

_CLIENT_COLUMNS = (
    "id", "first_name", "last_name", "email", "contact_number", "tags",
    "interest", "note", "client_number", "created_at",
)
_INSTRUMENT_COLUMNS = (
    "id", "maker", "type", "subtype", "serial_number", "year", "price",
    "status", "created_at",
)
_SALE_COLUMNS = (
    "id", "client_id", "instrument_id", "sale_price", "sale_date", "notes", "created_at",
)
_CONNECTION_COLUMNS = (
    "id", "client_id", "instrument_id", "relationship_type", "notes",
    "display_order", "created_at",
)


def build_sales_query(
    filters: SalesFilters,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[str, List[Any]]:
    """
    SQL and parameters for the sales rows matching `filters`.

    Search is not applied here: it matches client and instrument fields
    and runs after enrichment.
    """
    where_clauses = []
    params: List[Any] = []

    if filters.from_date:
        where_clauses.append("sale_date >= ?")
        params.append(date.fromisoformat(filters.from_date))

    if filters.to_date:
        where_clauses.append("sale_date <= ?")
        params.append(date.fromisoformat(filters.to_date))

    if filters.has_client is True:
        where_clauses.append("client_id IS NOT NULL")
    elif filters.has_client is False:
        where_clauses.append("client_id IS NULL")

    if filters.instrument_id:
        where_clauses.append("instrument_id = ?")
        params.append(filters.instrument_id)

    column = _SQL_SORT_COLUMNS.get(filters.sort_column, _SQL_SORT_COLUMNS["sale_date"])
    direction = "ASC" if filters.sort_direction == "asc" else "DESC"

    sql = f"SELECT {', '.join(_SALE_COLUMNS)} FROM sales_history"
    if where_clauses:
        sql += " WHERE " + " AND ".join(where_clauses)
    sql += f" ORDER BY {column} {direction}, id {direction}"

    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])

    return sql, params


class SalesStore:
    """
    Async-compatible DuckDB store.

    Usage:
        store = SalesStore(Path(":memory:"))
        await store.connect()
        sales = await store.get_sales(SalesFilters(from_date="2026-01-01"))
    """

    def __init__(self, db_path: Path = None):
        self.db_path = Path(db_path) if db_path is not None else config.store.db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = asyncio.Lock()
        self._total_queries = 0

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    async def connect(self) -> None:
        """Open the database and create tables if needed."""
        async with self._lock:
            if self._connection is not None:
                return
            if not self.in_memory:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(str(self.db_path))
            for statement in _SCHEMA:
                self._connection.execute(statement)
            logger.info(f"DuckDB connected: {self.db_path}")

    async def close(self) -> None:
        async with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                logger.info("DuckDB connection closed")

    def get_connection_info(self) -> Dict[str, Any]:
        """Connection info for the health endpoint."""
        return {
            "status": "active" if self._connection else "not_initialized",
            "total_queries": self._total_queries,
            "db_path": str(self.db_path),
        }

    @asynccontextmanager
    async def connection(self):
        """Serialized access to the connection, opening it on first use."""
        if self._connection is None:
            await self.connect()
        async with self._lock:
            yield self._connection

    # ─── Query helpers ───────────────────────────────────────────────────────

    async def _fetch_rows(self, table: str, query: str, params: list = None) -> List[Dict[str, Any]]:
        async with self.connection() as conn:
            self._total_queries += 1

            def _run():
                result = conn.execute(query, params or [])
                columns = [description[0] for description in result.description]
                return [dict(zip(columns, row)) for row in result.fetchall()]

            try:
                return await asyncio.to_thread(_run)
            except duckdb.Error as e:
                logger.error(f"Query on {table} failed: {e}")
                raise StoreError("Query failed", str(e), table=table) from e

    async def _fetch_value(self, table: str, query: str, params: list = None) -> Any:
        async with self.connection() as conn:
            self._total_queries += 1

            def _run():
                row = conn.execute(query, params or []).fetchone()
                return row[0] if row else None

            try:
                return await asyncio.to_thread(_run)
            except duckdb.Error as e:
                logger.error(f"Query on {table} failed: {e}")
                raise StoreError("Query failed", str(e), table=table) from e

    async def _insert(self, table: str, columns: Tuple[str, ...], rows: Iterable[Dict[str, Any]]) -> int:
        values = [[row.get(column) for column in columns] for row in rows]
        if not values:
            return 0

        placeholders = ", ".join("?" for _ in columns)
        query = f"INSERT OR REPLACE INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        async with self.connection() as conn:
            self._total_queries += 1
            try:
                await asyncio.to_thread(conn.executemany, query, values)
            except duckdb.Error as e:
                logger.error(f"Insert into {table} failed: {e}")
                raise StoreError("Insert failed", str(e), table=table) from e

        logger.debug(f"Upserted {len(values)} rows into {table}")
        return len(values)

    # ─── Reads ───────────────────────────────────────────────────────────────

    async def get_sales(
        self,
        filters: Optional[SalesFilters] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Sale]:
        """Sales matching the date and client filters, in store sort order."""
        query, params = build_sales_query(filters or SalesFilters(), limit, offset)
        rows = await self._fetch_rows("sales_history", query, params)
        return [Sale.from_row(row) for row in rows]

    async def get_clients(self) -> List[Client]:
        rows = await self._fetch_rows(
            "clients",
            f"SELECT {', '.join(_CLIENT_COLUMNS)} FROM clients ORDER BY last_name, first_name, id",
        )
        return [Client.from_row(row) for row in rows]

    async def get_instruments(self) -> List[Instrument]:
        rows = await self._fetch_rows(
            "instruments",
            f"SELECT {', '.join(_INSTRUMENT_COLUMNS)} FROM instruments ORDER BY maker, type, id",
        )
        return [Instrument.from_row(row) for row in rows]

    async def get_connections(self) -> List[ClientInstrument]:
        rows = await self._fetch_rows(
            "client_instruments",
            f"SELECT {', '.join(_CONNECTION_COLUMNS)} FROM client_instruments "
            "ORDER BY display_order NULLS LAST, created_at, id",
        )
        return [ClientInstrument.from_row(row) for row in rows]

    async def get_instrument_serials(self) -> List[str]:
        rows = await self._fetch_rows(
            "instruments",
            "SELECT serial_number FROM instruments WHERE serial_number IS NOT NULL",
        )
        return [row["serial_number"] for row in rows]

    async def get_client_numbers(self) -> List[str]:
        rows = await self._fetch_rows(
            "clients",
            "SELECT client_number FROM clients WHERE client_number IS NOT NULL",
        )
        return [row["client_number"] for row in rows]

    async def count_sales(self) -> int:
        return int(await self._fetch_value("sales_history", "SELECT COUNT(*) FROM sales_history") or 0)

    # ─── Writes ──────────────────────────────────────────────────────────────

    async def upsert_clients(self, rows: Iterable[Dict[str, Any]]) -> int:
        return await self._insert("clients", _CLIENT_COLUMNS, rows)

    async def upsert_instruments(self, rows: Iterable[Dict[str, Any]]) -> int:
        return await self._insert("instruments", _INSTRUMENT_COLUMNS, rows)

    async def upsert_sales(self, rows: Iterable[Dict[str, Any]]) -> int:
        return await self._insert("sales_history", _SALE_COLUMNS, rows)

    async def upsert_connections(self, rows: Iterable[Dict[str, Any]]) -> int:
        return await self._insert("client_instruments", _CONNECTION_COLUMNS, rows)


# ─── Singleton ────────────────────────────────────────────────────────────────

_store_instance: Optional[SalesStore] = None


async def get_store() -> SalesStore:
    """Shared store instance, connected on first use."""
    global _store_instance
    if _store_instance is None:
        _store_instance = SalesStore()
        await _store_instance.connect()
    return _store_instance


async def close_store() -> None:
    """Close the shared store instance."""
    global _store_instance
    if _store_instance:
        await _store_instance.close()
        _store_instance = None
