# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report API endpoints.

This module provides teacher performance reports:
- GET /teachers/{teacher_id}/students - Student progress per (student, course)
- GET /teachers/{teacher_id}/courses - Course progress
- GET /teachers/{teacher_id}/lessons - Lesson responses
- GET /teachers/{teacher_id}/summary - Teacher-level summary
- WebSocket /teachers/{teacher_id}/stream - Summary pushed on every change

All endpoints accept the same filter query parameters: course_id,
student_ids (repeatable), assignment_types (repeatable), start and end.

Example:
    GET /api/v1/reports/teachers/t-1/courses?assignment_types=quiz
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from coursepulse.api.dependencies import (
    bind_teacher_context,
    build_report_filters,
    get_report_filters,
    get_report_service,
)
from coursepulse.domains.reporting import (
    ConfigurationError,
    ReportFilters,
    ReportService,
    ReportSummary,
)
from coursepulse.utils.datetime import parse_iso

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(bind_teacher_context)])


# ============================================================================
# Response Models
# ============================================================================


class DiagnosticResponse(BaseModel):
    """A recoverable problem met while computing a report."""

    kind: str = Field(description="store_error or computation_error")
    message: str = Field(description="Problem description")
    course_id: str | None = Field(None, description="Course the problem was scoped to")
    student_id: str | None = Field(None, description="Student the problem was scoped to")
    assignment_id: str | None = Field(None, description="Assignment the problem was scoped to")
    record_id: str | None = Field(None, description="Excluded record")


class RecentSubmissionResponse(BaseModel):
    """A recent submission with its assignment title."""

    assignment_id: str = Field(description="Assignment ID")
    assignment_title: str = Field(description="Assignment title")
    submitted_at: datetime | None = Field(description="Submission time")
    grade: float | None = Field(description="Grade, if graded")
    feedback: str = Field(description="Teacher feedback")
    is_late: bool = Field(description="Whether the submission was late")


class StudentProgressResponse(BaseModel):
    """Progress of one student in one course."""

    student_id: str = Field(description="Student ID")
    student_name: str = Field(description="Student name")
    student_email: str = Field(description="Student email")
    course_id: str = Field(description="Course ID")
    course_name: str = Field(description="Course name")
    overall_grade: float = Field(description="Mean grade of graded submissions")
    completed_assignments: int = Field(description="Distinct assignments submitted")
    total_assignments: int = Field(description="Assignments counted")
    completion_rate: float = Field(ge=0.0, le=1.0, description="Completion rate")
    average_score: float = Field(description="Mean grade of graded submissions")
    engagement_score: float = Field(ge=0.0, le=100.0, description="Engagement score")
    last_activity: datetime | None = Field(description="Latest submission time")
    strengths: list[str] = Field(description="Strength labels")
    areas_for_improvement: list[str] = Field(description="Improvement labels")
    recent_submissions: list[RecentSubmissionResponse] = Field(description="Newest submissions")


class StudentSummaryResponse(BaseModel):
    """Compact student entry."""

    student_id: str = Field(description="Student ID")
    name: str = Field(description="Student name")
    grade: float = Field(description="Average score")
    completion_rate: float = Field(description="Completion rate")


class AssignmentStatsResponse(BaseModel):
    """Submission statistics for one assignment."""

    assignment_id: str = Field(description="Assignment ID")
    title: str = Field(description="Assignment title")
    type: str = Field(description="Assignment type")
    average_grade: float | None = Field(description="Mean grade, if any were graded")
    completion_rate: float = Field(description="Share of students who submitted")
    submission_count: int = Field(description="Students who submitted")
    total_students: int = Field(description="Students counted")
    difficulty: str = Field(description="Easy, Medium or Hard")


class CourseProgressResponse(BaseModel):
    """Aggregate progress of one course."""

    course_id: str = Field(description="Course ID")
    course_name: str = Field(description="Course name")
    total_students: int = Field(description="Enrolled students")
    active_students: int = Field(description="Students with active status")
    average_grade: float = Field(description="Mean of student average scores")
    completion_rate: float = Field(description="Mean of student completion rates")
    average_engagement: float = Field(description="Mean of student engagement scores")
    engagement_level: str = Field(description="Low, Medium or High")
    top_performers: list[StudentSummaryResponse] = Field(description="Best average scores")
    struggling_students: list[StudentSummaryResponse] = Field(description="Lowest average scores")
    assignment_stats: list[AssignmentStatsResponse] = Field(description="Per-assignment statistics")


class StudentLessonResponseItem(BaseModel):
    """One enrolled student's response to a lesson."""

    student_id: str = Field(description="Student ID")
    student_name: str = Field(description="Student name")
    completed: bool = Field(description="Whether the student responded")
    time_spent: float = Field(description="Minutes spent")
    engagement_score: float = Field(description="Engagement score of the response")
    questions_asked: int = Field(description="Questions asked")
    feedback: str | None = Field(description="Feedback")
    difficulty_rating: float | None = Field(description="Rated difficulty 1-5")
    completed_at: datetime | None = Field(description="Response time")


class LessonResponseItem(BaseModel):
    """Responses of a course's students to one lesson."""

    lesson_id: str = Field(description="Lesson ID")
    lesson_title: str = Field(description="Lesson title")
    course_id: str = Field(description="Course ID")
    completion_rate: float = Field(description="Share of students who responded")
    average_engagement: float = Field(description="Mean engagement of responders")
    average_time_spent: float = Field(description="Mean minutes spent by responders")
    difficulty_rating: float | None = Field(description="Mean rated difficulty")
    student_responses: list[StudentLessonResponseItem] = Field(description="Per-student responses")


class StudentProgressReportResponse(BaseModel):
    """Student progress report."""

    items: list[StudentProgressResponse] = Field(description="One entry per (student, course)")
    diagnostics: list[DiagnosticResponse] = Field(description="Recoverable problems")


class CourseProgressReportResponse(BaseModel):
    """Course progress report."""

    items: list[CourseProgressResponse] = Field(description="One entry per course")
    diagnostics: list[DiagnosticResponse] = Field(description="Recoverable problems")


class LessonReportResponse(BaseModel):
    """Lesson response report."""

    items: list[LessonResponseItem] = Field(description="One entry per lesson")
    diagnostics: list[DiagnosticResponse] = Field(description="Recoverable problems")


class ReportSummaryResponse(BaseModel):
    """Teacher-level summary."""

    total_students: int = Field(description="Student progress entries")
    average_grade: float = Field(description="Mean average score")
    completion_rate: float = Field(description="Mean completion rate")
    engagement_level: float = Field(description="Mean engagement score")
    lesson_completion_rate: float = Field(description="Mean lesson completion rate")
    top_course: str = Field(description="Course with the best average grade")
    most_engaged_student: str = Field(description="Student with the best engagement score")
    needs_attention: list[StudentSummaryResponse] = Field(description="Students to follow up")
    diagnostics: list[DiagnosticResponse] = Field(description="Recoverable problems")


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/teachers/{teacher_id}/students",
    response_model=StudentProgressReportResponse,
    summary="Student progress report",
    description="Progress of every student in every course of the teacher.",
)
async def get_student_progress(
    teacher_id: str,
    filters: ReportFilters = Depends(get_report_filters),
    service: ReportService = Depends(get_report_service),
) -> StudentProgressReportResponse:
    """Get the student progress report of a teacher."""
    logger.info("Student progress report requested: teacher=%s", teacher_id)
    result = await service.get_student_progress_report(teacher_id, filters)
    return StudentProgressReportResponse.model_validate(result.to_dict())


@router.get(
    "/teachers/{teacher_id}/courses",
    response_model=CourseProgressReportResponse,
    summary="Course progress report",
    description="Aggregate progress of every course of the teacher.",
)
async def get_course_progress(
    teacher_id: str,
    filters: ReportFilters = Depends(get_report_filters),
    service: ReportService = Depends(get_report_service),
) -> CourseProgressReportResponse:
    """Get the course progress report of a teacher."""
    logger.info("Course progress report requested: teacher=%s", teacher_id)
    result = await service.get_course_progress_report(teacher_id, filters)
    return CourseProgressReportResponse.model_validate(result.to_dict())


@router.get(
    "/teachers/{teacher_id}/lessons",
    response_model=LessonReportResponse,
    summary="Lesson response report",
    description="Responses of enrolled students to every lesson of the teacher.",
)
async def get_lesson_responses(
    teacher_id: str,
    filters: ReportFilters = Depends(get_report_filters),
    service: ReportService = Depends(get_report_service),
) -> LessonReportResponse:
    """Get the lesson response report of a teacher."""
    logger.info("Lesson response report requested: teacher=%s", teacher_id)
    result = await service.get_lesson_response_report(teacher_id, filters)
    return LessonReportResponse.model_validate(result.to_dict())


@router.get(
    "/teachers/{teacher_id}/summary",
    response_model=ReportSummaryResponse,
    summary="Report summary",
    description="Teacher-level summary composed from the three reports.",
)
async def get_summary(
    teacher_id: str,
    filters: ReportFilters = Depends(get_report_filters),
    service: ReportService = Depends(get_report_service),
) -> ReportSummaryResponse:
    """Get the report summary of a teacher."""
    logger.info("Report summary requested: teacher=%s", teacher_id)
    summary = await service.get_report_summary(teacher_id, filters)
    return ReportSummaryResponse.model_validate(summary.to_dict())


# ============================================================================
# Live stream
# ============================================================================


def _filters_from_websocket(websocket: WebSocket) -> ReportFilters:
    params = websocket.query_params
    try:
        start = parse_iso(params.get("start"))
        end = parse_iso(params.get("end"))
    except ValueError as e:
        raise ConfigurationError(f"invalid date range bound: {e}") from e

    return build_report_filters(
        course_id=params.get("course_id"),
        student_ids=params.getlist("student_ids"),
        assignment_types=params.getlist("assignment_types"),
        start=start,
        end=end,
    )


def _summary_message(summary: ReportSummary) -> dict[str, Any]:
    return {
        "type": "summary",
        "data": ReportSummaryResponse.model_validate(summary.to_dict()).model_dump(mode="json"),
    }


@router.websocket("/teachers/{teacher_id}/stream")
async def report_stream_websocket(
    websocket: WebSocket,
    teacher_id: str,
) -> None:
    """WebSocket endpoint streaming report summaries.

    Sends a summary on connect and another one after every change to the
    teacher's courses. Changes made while a summary is being computed are
    folded into one follow-up summary. Clients may send
    ``{"type": "ping"}`` to check the connection.

    Args:
        websocket: WebSocket connection.
        teacher_id: Teacher whose courses are watched.
    """
    await websocket.accept()
    service = get_report_service(websocket)

    try:
        filters = _filters_from_websocket(websocket)
        filters.validate()
    except ConfigurationError as e:
        await websocket.send_json({
            "type": "error",
            "code": "INVALID_FILTERS",
            "message": str(e),
        })
        await websocket.close(code=1008)
        return

    async def push_summary(summary: ReportSummary) -> None:
        await websocket.send_json(_summary_message(summary))

    async def push_error(error: Exception) -> None:
        await websocket.send_json({
            "type": "error",
            "code": "RECOMPUTATION_FAILED",
            "message": str(error),
        })

    subscription = service.subscribe_to_report_updates(
        teacher_id,
        filters,
        push_summary,
        on_error=push_error,
    )
    logger.info("Report stream connected: teacher=%s", teacher_id)

    try:
        while True:
            data = await websocket.receive_json()
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("Report stream disconnected: teacher=%s", teacher_id)
    except Exception as e:
        logger.error("Report stream error: teacher=%s: %s", teacher_id, str(e), exc_info=True)
    finally:
        await subscription.aclose()
