"""
FastAPI Application Entry Point.

This is the main application file for the Bancalplast pallet tracker.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bancalplast.app.core.config import settings
from bancalplast.app.api.v1.router import router as api_v1_router
from bancalplast.app.core.observability import ObservabilityMiddleware, configure_logging
from bancalplast.app.db.session import create_tables
from bancalplast.app.db.store import SqlRecordStore, build_store
from bancalplast.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

logger = logging.getLogger("bancalplast")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Builds the record store from settings (missing credentials abort startup).
    2. Creates tables when the store is a SQL database.
    3. Closes the store on shutdown.
    """
    configure_logging(settings.log_level)
    if getattr(app.state, "store", None) is None:
        app.state.store = build_store(settings.store_config())
    store = app.state.store
    if isinstance(store, SqlRecordStore) and store.engine is not None:
        await create_tables(store.engine)
    logger.info("%s started", settings.app_name)
    yield
    await store.aclose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Pallet and shipment tracking for production and office staff",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
