"""
FastAPI web application for the Atelier sales dashboard.
"""
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from atelier.config import validate_config, ConfigurationError
from atelier.exceptions import StoreError
from atelier.observability import setup_logging, get_logger, get_correlation_id
from atelier.store import close_store
from web.config import VERSION, WEB_HOST, WEB_PORT
from web.middleware import RequestLoggingMiddleware, RequestTimeoutMiddleware
from web.routes import api

# Configure structured logging
# Use JSON format in production (LOG_FORMAT=json), human-readable otherwise
log_format = os.getenv("LOG_FORMAT", "text")
log_level = os.getenv("LOG_LEVEL", "INFO")
setup_logging(level=log_level, json_format=(log_format == "json"))
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Atelier dashboard starting...")

    # Fail fast with clear errors
    try:
        validate_config(require_store=True)
        logger.info("Configuration validated")
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}")
        raise SystemExit(1)

    yield

    await close_store()
    logger.info("Atelier dashboard stopped")


app = FastAPI(
    title="Atelier Dashboard",
    description="Sales, clients and instruments for a string instrument workshop",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store error on {request.url.path}: {exc}", extra={"table": exc.table})
    return JSONResponse(
        status_code=503,
        content={
            "error": "Store unavailable",
            "detail": exc.message,
            "correlation_id": get_correlation_id(),
        }
    )


# Add request logging middleware (adds correlation IDs and timing)
app.add_middleware(RequestLoggingMiddleware)

# Must be AFTER logging so correlation_id is set when timeout fires
app.add_middleware(RequestTimeoutMiddleware)

# Add Gzip compression (min 500 bytes to compress)
app.add_middleware(GZipMiddleware, minimum_size=500)

app.include_router(api.router, prefix="/api")


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("web.main:app", host=WEB_HOST, port=WEB_PORT)


if __name__ == "__main__":
    run()
