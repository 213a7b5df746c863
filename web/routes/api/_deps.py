"""Shared dependencies for API route modules."""
import time
from typing import Optional

from fastapi import HTTPException, Query

from atelier.exceptions import ValidationError
from atelier.filter_state import SalesFilters
from atelier.observability import get_logger
from atelier.store import SalesStore, get_store
from atelier.validators import (
    validate_gap_fill_range,
    validate_has_client,
    validate_identifier_kind,
    validate_instrument_id,
    validate_limit,
    validate_optional_date_range,
    validate_preset,
    validate_sort_column,
    validate_sort_direction,
)

# Track startup time for uptime calculation
START_TIME = time.time()


async def store_dependency() -> SalesStore:
    """Store used by the routes; tests override this dependency."""
    return await get_store()


def sales_filters(
    from_date: Optional[str] = Query(None, alias="from", description="Start date (YYYY-MM-DD)"),
    to_date: Optional[str] = Query(None, alias="to", description="End date (YYYY-MM-DD)"),
    search: Optional[str] = Query(None, description="Text search over client and instrument"),
    has_client: Optional[str] = Query(None, alias="hasClient", description="true or false"),
    sort_column: Optional[str] = Query(None, alias="sortColumn", description="sale_date, sale_price or client_name"),
    sort_direction: Optional[str] = Query(None, alias="sortDirection", description="asc or desc"),
    instrument_id: Optional[str] = Query(None, alias="instrumentId", description="Only this instrument's sales"),
) -> SalesFilters:
    """Validated sales filters from the query string."""
    try:
        validate_optional_date_range(from_date, to_date)
        params = {
            "from": from_date or "",
            "to": to_date or "",
            "search": (search or "").strip(),
            "sortColumn": validate_sort_column(sort_column),
            "sortDirection": validate_sort_direction(sort_direction),
        }
        filters = SalesFilters.from_query(params)
        filters.has_client = validate_has_client(has_client)
        filters.instrument_id = validate_instrument_id(instrument_id, field="instrumentId")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return filters


__all__ = [
    "START_TIME",
    "ValidationError",
    "get_logger",
    "sales_filters",
    "store_dependency",
    "validate_gap_fill_range",
    "validate_identifier_kind",
    "validate_limit",
    "validate_preset",
]
