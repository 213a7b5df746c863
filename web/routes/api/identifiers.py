"""Serial number and client number endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from atelier.store import SalesStore
from web.services import sales_service
from web.schemas import (
    IdentifierCheckResponse,
    IdentifierValidateRequest,
    NextIdentifierResponse,
)
from ._deps import get_logger, store_dependency, validate_identifier_kind, ValidationError

router = APIRouter()
logger = get_logger(__name__)


@router.get("/identifiers/next", response_model=NextIdentifierResponse)
async def next_identifier(
    kind: str = Query("instrument", description="instrument or client"),
    instrument_type: Optional[str] = Query(None, alias="type", description="Instrument type, e.g. Violin"),
    store: SalesStore = Depends(store_dependency),
):
    """Next free identifier for the requested sequence."""
    try:
        kind = validate_identifier_kind(kind)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    identifier = await sales_service.next_identifier(store, kind, instrument_type)
    return {"kind": kind, "identifier": identifier}


@router.post("/identifiers/validate", response_model=IdentifierCheckResponse)
async def validate_identifier(
    payload: IdentifierValidateRequest,
    store: SalesStore = Depends(store_dependency),
):
    """Check a user-entered identifier for format and uniqueness."""
    try:
        kind = validate_identifier_kind(payload.kind)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    check = await sales_service.check_identifier(store, kind, payload.number, payload.current)
    return check.to_dict()
