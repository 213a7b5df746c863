"""
API routes split by domain.

Each sub-module defines its own APIRouter which is composed
into the top-level router exposed by this package.
"""
from fastapi import APIRouter

from .health import router as health_router
from .sales import router as sales_router
from .connections import router as connections_router
from .identifiers import router as identifiers_router

router = APIRouter(tags=["api"])

router.include_router(health_router)
router.include_router(sales_router)
router.include_router(connections_router)
router.include_router(identifiers_router)
