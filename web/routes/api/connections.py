"""Client/instrument connection endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from atelier.config import config
from atelier.store import SalesStore
from web.services import sales_service
from web.schemas import ConnectionCountsResponse, ConnectionsResponse
from ._deps import get_logger, store_dependency

router = APIRouter()
logger = get_logger(__name__)


@router.get("/connections", response_model=ConnectionsResponse)
async def list_connections(
    relationship_type: Optional[str] = Query(None, alias="type", description="Interested, Booked, Sold or Owned"),
    store: SalesStore = Depends(store_dependency),
):
    """Connections for one relationship tab, or all of them."""
    if relationship_type and relationship_type not in config.connections.relationship_types:
        raise HTTPException(
            status_code=400,
            detail=f"type: Must be one of: {', '.join(config.connections.relationship_types)}",
        )

    connections = await sales_service.get_connections(store, relationship_type)
    return {
        "items": [sales_service.connection_to_dict(c) for c in connections],
        "total": len(connections),
    }


@router.get("/connections/counts", response_model=ConnectionCountsResponse)
async def connection_counts(
    include_unlisted: bool = Query(False, alias="includeUnlisted", description="Also count unknown relationship types"),
    store: SalesStore = Depends(store_dependency),
):
    """Connection counts per relationship type in tab order."""
    counts = await sales_service.get_connection_counts(store, include_unlisted)
    return {
        "counts": [count.to_dict() for count in counts],
        "total": sum(count.count for count in counts),
    }
