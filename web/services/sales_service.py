"""
Sales service: loads rows from the store and runs them through the
enrichment, chart and insight functions for the API routes.
"""
import asyncio
import time
import weakref
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from atelier.charts import SalesCharts, build_sales_charts, filter_by_date_range
from atelier.enrichment import (
    SalesEnricher,
    apply_local_sort,
    filter_sales_by_search,
)
from atelier.filter_state import SalesFilters
from atelier.grouping import relationship_type_counts, sort_connections_for_all_tab
from atelier.identifiers import (
    IdentifierCheck,
    generate_client_number,
    generate_instrument_serial,
    validate_unique_number,
)
from atelier.insights import (
    calculate_totals,
    check_data_quality,
    compare_periods,
    export_sales_csv,
    previous_period,
    sales_alerts,
    sales_trend,
    summarize_by_client,
)
from atelier.filters import format_period_info
from atelier.models import Client, ClientInstrument, EnrichedSale, Instrument, TypeCount
from atelier.observability import get_logger, timed
from atelier.store import SalesStore

logger = get_logger(__name__)


# ─── Reference Cache ─────────────────────────────────────────────────────────
# Clients and instruments change rarely. Keeping the same list objects between
# requests lets the enricher reuse its lookups.
CACHE_TTL_SECONDS = 300

# Weakly keyed by store object; an entry dies with its store
_reference_cache: "weakref.WeakKeyDictionary[SalesStore, Tuple[List[Client], List[Instrument], float]]" = (
    weakref.WeakKeyDictionary()
)
_cache_lock = asyncio.Lock()

_enricher = SalesEnricher()


async def get_reference_data(store: SalesStore) -> Tuple[List[Client], List[Instrument]]:
    """Clients and instruments for `store`, cached for CACHE_TTL_SECONDS."""
    async with _cache_lock:
        cached = _reference_cache.get(store)
        if cached and time.time() - cached[2] < CACHE_TTL_SECONDS:
            return cached[0], cached[1]

    clients = await store.get_clients()
    instruments = await store.get_instruments()

    async with _cache_lock:
        _reference_cache[store] = (clients, instruments, time.time())
    return clients, instruments


def invalidate_reference_cache() -> None:
    """Drop cached clients and instruments (after writes or in tests)."""
    _reference_cache.clear()


# ─── Sales ───────────────────────────────────────────────────────────────────

def _filter_dates(filters: SalesFilters) -> Tuple[Optional[date], Optional[date]]:
    start = date.fromisoformat(filters.from_date) if filters.from_date else None
    end = date.fromisoformat(filters.to_date) if filters.to_date else None
    return start, end


def _echo_query(filters: SalesFilters) -> Dict[str, str]:
    query = {k: v for k, v in filters.to_query().items() if v is not None}
    if filters.instrument_id:
        query["instrumentId"] = filters.instrument_id
    return query


@timed("load_sales")
async def load_sales(store: SalesStore, filters: SalesFilters) -> List[EnrichedSale]:
    """
    Filtered, enriched and sorted sales.

    Date and client filters and sortable columns are applied by the store;
    text search and the client-name sort need the joined records and run
    here.
    """
    sales = await store.get_sales(filters)
    clients, instruments = await get_reference_data(store)

    enriched = _enricher.enrich(sales, clients, instruments)
    matched = filter_sales_by_search(enriched, filters.search)
    return list(apply_local_sort(matched, filters.sort_column, filters.sort_direction))


async def get_sales_page(
    store: SalesStore,
    filters: SalesFilters,
    limit: int,
    offset: int = 0,
) -> Dict[str, Any]:
    """One page of sales plus paging info."""
    sales = await load_sales(store, filters)
    page = sales[offset:offset + limit]

    return {
        "items": [sale.to_dict() for sale in page],
        "total": len(sales),
        "limit": limit,
        "offset": offset,
        "hasMore": offset + len(page) < len(sales),
        "query": _echo_query(filters),
    }


async def get_sales_summary(
    store: SalesStore,
    filters: SalesFilters,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Totals, data-quality flags, period label and insights.

    With both dates set, the sales are loaded from the start of the previous
    equal-length window so the comparison comes from the same query.
    """
    start, end = _filter_dates(filters)
    window = previous_period(start, end) if start and end else None

    if window:
        extended = await load_sales(store, replace(filters, from_date=window[0].isoformat()))
        sales = filter_by_date_range(extended, start, end)
        comparison = compare_periods(extended, start, end)
    else:
        sales = await load_sales(store, filters)
        comparison = None

    trend = sales_trend(sales)
    return {
        "totals": calculate_totals(sales).to_dict(),
        "dataQuality": check_data_quality(sales).to_dict(),
        "period": format_period_info(filters.from_date, filters.to_date),
        "isFiltered": filters.is_filtered,
        "alerts": [alert.to_dict() for alert in sales_alerts(sales, today)],
        "comparison": comparison.to_dict() if comparison else None,
        "trend": trend.to_dict() if trend else None,
    }


async def get_client_summary(store: SalesStore, filters: SalesFilters) -> Dict[str, Any]:
    """Spend per client for the sales that have one."""
    sales = await load_sales(store, replace(filters, has_client=True))
    summaries = summarize_by_client(sales)
    return {
        "data": [summary.to_dict() for summary in summaries],
        "count": len(summaries),
        "totalSales": len(sales),
    }


async def get_sales_charts(
    store: SalesStore,
    filters: SalesFilters,
    start: Optional[date] = None,
    end: Optional[date] = None,
    fill_gaps: bool = False,
) -> SalesCharts:
    """All chart views for the filtered sales."""
    sales = await load_sales(store, filters)
    return build_sales_charts(sales, start, end, fill_gaps=fill_gaps)


async def export_sales(store: SalesStore, filters: SalesFilters) -> str:
    """Filtered sales as CSV text."""
    sales = await load_sales(store, filters)
    logger.info(f"Exporting {len(sales)} sales to CSV")
    return export_sales_csv(sales)


# ─── Connections ─────────────────────────────────────────────────────────────

async def load_connections(store: SalesStore) -> List[ClientInstrument]:
    """Connections with their client and instrument attached."""
    connections = await store.get_connections()
    clients, instruments = await get_reference_data(store)
    client_lookup, instrument_lookup = _enricher.lookups(clients, instruments)

    for connection in connections:
        connection.client = client_lookup.get(connection.client_id)
        connection.instrument = instrument_lookup.get(connection.instrument_id)
    return connections


async def get_connection_counts(
    store: SalesStore,
    include_unlisted: bool = False,
) -> List[TypeCount]:
    connections = await store.get_connections()
    return relationship_type_counts(connections, include_unlisted=include_unlisted)


async def get_connections(
    store: SalesStore,
    relationship_type: Optional[str] = None,
) -> List[ClientInstrument]:
    """
    Connections for one relationship tab.

    Without a type, every connection in "All" tab order; with a type, that
    type's connections in store order.
    """
    connections = await load_connections(store)
    if relationship_type:
        return [c for c in connections if c.relationship_type == relationship_type]
    return sort_connections_for_all_tab(connections)


def connection_to_dict(connection: ClientInstrument) -> Dict[str, Any]:
    return {
        "id": connection.id,
        "client_id": connection.client_id,
        "instrument_id": connection.instrument_id,
        "relationship_type": connection.relationship_type,
        "notes": connection.notes,
        "client": connection.client.to_dict() if connection.client else None,
        "instrument": connection.instrument.to_dict() if connection.instrument else None,
    }


# ─── Identifiers ─────────────────────────────────────────────────────────────

async def _existing_identifiers(store: SalesStore, kind: str) -> List[str]:
    if kind == "client":
        return await store.get_client_numbers()
    return await store.get_instrument_serials()


async def next_identifier(
    store: SalesStore,
    kind: str,
    instrument_type: Optional[str] = None,
) -> str:
    existing = await _existing_identifiers(store, kind)
    if kind == "client":
        return generate_client_number(existing)
    return generate_instrument_serial(instrument_type, existing)


async def check_identifier(
    store: SalesStore,
    kind: str,
    number: Optional[str],
    current: Optional[str] = None,
) -> IdentifierCheck:
    existing = await _existing_identifiers(store, kind)
    return validate_unique_number(number, existing, current)
