"""Health check endpoint."""
import time

from fastapi import APIRouter, Depends

from atelier.exceptions import StoreError
from atelier.observability import get_correlation_id, Timer
from atelier.store import SalesStore
from web.config import VERSION
from web.schemas import HealthResponse
from ._deps import get_logger, store_dependency, START_TIME

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check(store: SalesStore = Depends(store_dependency)):
    """Health check endpoint for Docker/load balancer monitoring."""
    uptime_seconds = int(time.time() - START_TIME)

    try:
        with Timer("health_check_db") as timer:
            sales_count = await store.count_sales()
        store_stats = {
            **store.get_connection_info(),
            "status": "connected",
            "latency_ms": round(timer.elapsed_ms, 2),
            "sales": sales_count,
        }
    except StoreError as e:
        logger.warning(f"Health check query failed: {e}")
        store_stats = {"status": f"error: {e}"}

    return {
        "status": "healthy" if store_stats["status"] == "connected" else "degraded",
        "version": VERSION,
        "uptime_seconds": uptime_seconds,
        "correlation_id": get_correlation_id(),
        "store": store_stats,
    }
