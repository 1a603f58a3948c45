# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides the health endpoint of the API. The record store is
checked with a course listing for a teacher id that owns nothing.
"""

import logging
import time
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from coursepulse import __version__
from coursepulse.api.dependencies import get_report_service
from coursepulse.domains.reporting import ReportService
from coursepulse.infrastructure.store import StoreError
from coursepulse.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

_server_start_time = time.time()

HEALTH_CHECK_TEACHER_ID = "__health__"


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    checked_at: datetime = Field(description="When health was checked")
    store: ComponentHealth = Field(description="Record store status")


async def check_store(service: ReportService) -> ComponentHealth:
    """Check that the record store answers within the read timeout."""
    start = time.time()
    try:
        await service.adapter.list_courses_by_teacher(HEALTH_CHECK_TEACHER_ID)
    except StoreError as e:
        logger.error("Record store health check failed: %s", str(e))
        return ComponentHealth(status="unhealthy", message=str(e))

    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


@router.get("/health", response_model=HealthResponse)
async def health_check(
    service: ReportService = Depends(get_report_service),
) -> HealthResponse:
    """Check if the API and its record store are healthy."""
    store_health = await check_store(service)

    return HealthResponse(
        status=store_health.status,
        version=__version__,
        environment=service.settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        checked_at=utc_now(),
        store=store_health,
    )
