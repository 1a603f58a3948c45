# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reporting domain.

This module computes teacher-facing performance reports from the records
of the external collection store:
- Student progress per (student, course)
- Course progress with rankings and assignment statistics
- Lesson responses joined against every enrolled student
- A teacher-level summary composed from the three
- Live summaries pushed whenever a teacher's courses change

Usage:
    from coursepulse.domains.reporting import ReportFilters, ReportService

    service = ReportService.for_store(store)

    result = await service.get_course_progress_report(
        "t-1",
        ReportFilters(assignment_types={"quiz", "exam"}),
    )
    for course in result.items:
        print(course.course_name, course.engagement_level)

    # Live updates
    subscription = service.subscribe_to_report_updates("t-1", None, on_summary)
    ...
    await subscription.aclose()
"""

from coursepulse.domains.reporting.adapter import RecordStoreAdapter
from coursepulse.domains.reporting.aggregator import CancellationToken, ReportService
from coursepulse.domains.reporting.errors import (
    ComputationError,
    ConfigurationError,
    Diagnostic,
    ReportCancelledError,
    ReportingError,
)
from coursepulse.domains.reporting.filters import DateRange, ReportFilters
from coursepulse.domains.reporting.live import ReportSubscription
from coursepulse.domains.reporting.records import (
    Assignment,
    AssignmentRecord,
    Course,
    Student,
    Submission,
    SubmissionRecord,
)
from coursepulse.domains.reporting.views import (
    AssignmentStats,
    CourseProgress,
    LessonResponse,
    RecentSubmission,
    ReportResult,
    ReportSummary,
    StudentLessonResponse,
    StudentProgress,
    StudentSummary,
)

__all__ = [
    # Service
    "ReportService",
    "RecordStoreAdapter",
    "ReportSubscription",
    "CancellationToken",
    # Filters
    "ReportFilters",
    "DateRange",
    # Records
    "Course",
    "Student",
    "AssignmentRecord",
    "Assignment",
    "SubmissionRecord",
    "Submission",
    # Views
    "StudentProgress",
    "RecentSubmission",
    "StudentSummary",
    "CourseProgress",
    "AssignmentStats",
    "LessonResponse",
    "StudentLessonResponse",
    "ReportResult",
    "ReportSummary",
    # Errors
    "ReportingError",
    "ComputationError",
    "ConfigurationError",
    "ReportCancelledError",
    "Diagnostic",
]
