# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the CoursePulse API.
The record store is injected by the caller; without one the application
runs over an empty in-memory store.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from coursepulse import __version__
from coursepulse.api.routes import health
from coursepulse.api.v1 import router as v1_router
from coursepulse.core.config import Settings, get_settings
from coursepulse.domains.reporting import (
    ConfigurationError,
    ReportCancelledError,
    ReportService,
)
from coursepulse.infrastructure.store import InMemoryRecordStore, RecordStore, StoreError
from coursepulse.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging on startup.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    setup_logging(settings)
    logger.info(
        "Starting CoursePulse API: environment=%s, debug=%s",
        settings.environment,
        settings.debug,
    )

    yield

    logger.info("Shutting down CoursePulse API")


# =============================================================================
# Exception handlers
# =============================================================================


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Record store unavailable: %s %s: %s", request.method, request.url.path, str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "operation": exc.operation},
    )


async def cancelled_error_handler(request: Request, exc: ReportCancelledError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


def create_app(
    store: RecordStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Record store the reports read from.
        settings: Application settings; defaults to get_settings().

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="CoursePulse API",
        description="Teacher performance reports over course records",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.settings = settings
    app.state.report_service = ReportService.for_store(
        store if store is not None else InMemoryRecordStore(),
        settings,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(ReportCancelledError, cancelled_error_handler)

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
