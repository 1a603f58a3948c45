# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get the report service bound to the application
- Parse report filters from query parameters
- Bind the teacher id to the logging context of a request

Example:
    @router.get("/teachers/{teacher_id}/summary")
    async def get_summary(
        teacher_id: str,
        filters: ReportFilters = Depends(get_report_filters),
        service: ReportService = Depends(get_report_service),
    ):
        ...
"""

from datetime import datetime
from typing import Annotated, Iterator

from fastapi import Query
from fastapi.requests import HTTPConnection

from coursepulse.domains.reporting import (
    ConfigurationError,
    DateRange,
    ReportFilters,
    ReportService,
)
from coursepulse.utils.logging import bind_context, clear_context


def get_report_service(connection: HTTPConnection) -> ReportService:
    """Get the report service attached to the application.

    Works for both HTTP requests and WebSocket connections.
    """
    return connection.app.state.report_service


def build_report_filters(
    course_id: str | None = None,
    student_ids: list[str] | None = None,
    assignment_types: list[str] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> ReportFilters:
    """Build report filters from request parameters.

    Raises:
        ConfigurationError: If only one bound of the date range is given.
    """
    if (start is None) != (end is None):
        raise ConfigurationError("start and end must be given together")

    return ReportFilters(
        course_id=course_id,
        student_ids=frozenset(student_ids or ()),
        assignment_types=frozenset(assignment_types or ()),
        date_range=DateRange(start, end) if start is not None and end is not None else None,
    )


def get_report_filters(
    course_id: Annotated[str | None, Query(description="Only report on this course")] = None,
    student_ids: Annotated[
        list[str] | None,
        Query(description="Only report on these students"),
    ] = None,
    assignment_types: Annotated[
        list[str] | None,
        Query(description="Only count assignments of these types"),
    ] = None,
    start: Annotated[
        datetime | None,
        Query(description="Assignments created at or after this instant"),
    ] = None,
    end: Annotated[
        datetime | None,
        Query(description="Assignments created before this instant"),
    ] = None,
) -> ReportFilters:
    """Parse report filters from query parameters."""
    return build_report_filters(course_id, student_ids, assignment_types, start, end)


def bind_teacher_context(teacher_id: str) -> Iterator[None]:
    """Bind the teacher id to every log line of the request."""
    bind_context(teacher_id=teacher_id)
    try:
        yield
    finally:
        clear_context()
