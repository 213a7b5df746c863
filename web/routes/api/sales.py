"""Sales list, summary, charts, CSV export and date preset endpoints."""
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from atelier.config import config
from atelier.filter_state import SalesFilters
from atelier.filters import date_range_from_preset, get_preset_label
from atelier.store import SalesStore
from web.services import sales_service
from web.schemas import (
    ClientSpendListResponse,
    SalesChartsResponse,
    SalesPageResponse,
    SalesSummaryResponse,
)
from ._deps import (
    get_logger,
    sales_filters,
    store_dependency,
    validate_gap_fill_range,
    validate_limit,
    validate_preset,
    ValidationError,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("/sales", response_model=SalesPageResponse)
async def list_sales(
    filters: SalesFilters = Depends(sales_filters),
    limit: int = Query(config.store.page_limit, description="Page size"),
    offset: int = Query(0, ge=0, description="Rows to skip"),
    store: SalesStore = Depends(store_dependency),
):
    """Enriched sales matching the filters, sorted and paged."""
    try:
        limit = validate_limit(limit)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return await sales_service.get_sales_page(store, filters, limit, offset)


@router.get("/sales/summary", response_model=SalesSummaryResponse)
async def sales_summary(
    filters: SalesFilters = Depends(sales_filters),
    store: SalesStore = Depends(store_dependency),
):
    """Totals, refund rate, data-quality flags, alerts and period comparison."""
    return await sales_service.get_sales_summary(store, filters)


@router.get("/sales/summary-by-client", response_model=ClientSpendListResponse)
async def sales_summary_by_client(
    filters: SalesFilters = Depends(sales_filters),
    store: SalesStore = Depends(store_dependency),
):
    """Spend, purchase count and first/last purchase per client."""
    return await sales_service.get_client_summary(store, filters)


@router.get("/sales/charts", response_model=SalesChartsResponse)
async def sales_charts(
    filters: SalesFilters = Depends(sales_filters),
    fill_gaps: bool = Query(False, alias="fillGaps", description="Zero-fill days without sales"),
    store: SalesStore = Depends(store_dependency),
):
    """Daily, weekday, monthly, instrument type and maker views."""
    start = date.fromisoformat(filters.from_date) if filters.from_date else None
    end = date.fromisoformat(filters.to_date) if filters.to_date else None

    if fill_gaps:
        try:
            validate_gap_fill_range(start, end)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

    charts = await sales_service.get_sales_charts(store, filters, start, end, fill_gaps)
    return charts.to_dict()


@router.get("/sales/export")
async def export_sales(
    filters: SalesFilters = Depends(sales_filters),
    store: SalesStore = Depends(store_dependency),
):
    """Filtered sales as a CSV download."""
    body = await sales_service.export_sales(store, filters)
    filename = f"sales_{date.today().isoformat()}.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/presets/{preset}")
async def resolve_preset(preset: str):
    """Date range a preset button applies."""
    try:
        validate_preset(preset)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    date_range = date_range_from_preset(preset)
    return {
        "preset": preset,
        "label": get_preset_label(preset),
        "from": date_range.start_str,
        "to": date_range.end_str,
    }
