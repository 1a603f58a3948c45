# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Computed report views.

Views are recomputed for every report call or live-update tick and are
never persisted. They hold no wall-clock values of their own, so two
computations over an unchanged store compare equal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from coursepulse.domains.reporting.errors import Diagnostic
from coursepulse.utils.datetime import format_iso

T = TypeVar("T")


@dataclass
class RecentSubmission:
    """A recent submission paired with its assignment title."""

    assignment_id: str
    assignment_title: str
    submitted_at: datetime | None
    grade: float | None
    feedback: str = ""
    is_late: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "assignment_id": self.assignment_id,
            "assignment_title": self.assignment_title,
            "submitted_at": format_iso(self.submitted_at),
            "grade": self.grade,
            "feedback": self.feedback,
            "is_late": self.is_late,
        }


@dataclass
class StudentProgress:
    """Progress of one student in one course."""

    student_id: str
    student_name: str
    student_email: str
    course_id: str
    course_name: str
    completed_assignments: int
    total_assignments: int
    completion_rate: float
    average_score: float
    engagement_score: float
    last_activity: datetime | None = None
    strengths: list[str] = field(default_factory=list)
    areas_for_improvement: list[str] = field(default_factory=list)
    recent_submissions: list[RecentSubmission] = field(default_factory=list)

    @property
    def overall_grade(self) -> float:
        return self.average_score

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "student_email": self.student_email,
            "course_id": self.course_id,
            "course_name": self.course_name,
            "overall_grade": self.overall_grade,
            "completed_assignments": self.completed_assignments,
            "total_assignments": self.total_assignments,
            "completion_rate": self.completion_rate,
            "average_score": self.average_score,
            "engagement_score": self.engagement_score,
            "last_activity": format_iso(self.last_activity),
            "strengths": list(self.strengths),
            "areas_for_improvement": list(self.areas_for_improvement),
            "recent_submissions": [rs.to_dict() for rs in self.recent_submissions],
        }


@dataclass
class StudentSummary:
    """Compact student entry used in rankings and attention lists."""

    student_id: str
    name: str
    grade: float
    completion_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "name": self.name,
            "grade": self.grade,
            "completion_rate": self.completion_rate,
        }


@dataclass
class AssignmentStats:
    """Submission statistics for one assignment of a course."""

    assignment_id: str
    title: str
    assignment_type: str
    average_grade: float | None
    completion_rate: float
    submission_count: int
    total_students: int
    difficulty: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "assignment_id": self.assignment_id,
            "title": self.title,
            "type": self.assignment_type,
            "average_grade": self.average_grade,
            "completion_rate": self.completion_rate,
            "submission_count": self.submission_count,
            "total_students": self.total_students,
            "difficulty": self.difficulty,
        }


@dataclass
class CourseProgress:
    """Aggregate progress of one course."""

    course_id: str
    course_name: str
    total_students: int
    active_students: int
    average_grade: float
    completion_rate: float
    average_engagement: float
    engagement_level: str
    top_performers: list[StudentSummary] = field(default_factory=list)
    struggling_students: list[StudentSummary] = field(default_factory=list)
    assignment_stats: list[AssignmentStats] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "course_id": self.course_id,
            "course_name": self.course_name,
            "total_students": self.total_students,
            "active_students": self.active_students,
            "average_grade": self.average_grade,
            "completion_rate": self.completion_rate,
            "average_engagement": self.average_engagement,
            "engagement_level": self.engagement_level,
            "top_performers": [s.to_dict() for s in self.top_performers],
            "struggling_students": [s.to_dict() for s in self.struggling_students],
            "assignment_stats": [a.to_dict() for a in self.assignment_stats],
        }


@dataclass
class StudentLessonResponse:
    """One enrolled student's response to a lesson."""

    student_id: str
    student_name: str
    completed: bool
    time_spent: float = 0.0
    engagement_score: float = 0.0
    questions_asked: int = 0
    feedback: str | None = None
    difficulty_rating: float | None = None
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "completed": self.completed,
            "time_spent": self.time_spent,
            "engagement_score": self.engagement_score,
            "questions_asked": self.questions_asked,
            "feedback": self.feedback,
            "difficulty_rating": self.difficulty_rating,
            "completed_at": format_iso(self.completed_at),
        }


@dataclass
class LessonResponse:
    """Responses of a course's enrolled students to one lesson."""

    lesson_id: str
    lesson_title: str
    course_id: str
    completion_rate: float
    average_engagement: float
    average_time_spent: float
    difficulty_rating: float | None = None
    student_responses: list[StudentLessonResponse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "lesson_id": self.lesson_id,
            "lesson_title": self.lesson_title,
            "course_id": self.course_id,
            "completion_rate": self.completion_rate,
            "average_engagement": self.average_engagement,
            "average_time_spent": self.average_time_spent,
            "difficulty_rating": self.difficulty_rating,
            "student_responses": [r.to_dict() for r in self.student_responses],
        }


@dataclass
class ReportResult(Generic[T]):
    """Items of a report together with the problems met computing them."""

    items: list[T] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class ReportSummary:
    """Teacher-level summary composed from the three reports."""

    total_students: int
    average_grade: float
    completion_rate: float
    engagement_level: float
    lesson_completion_rate: float
    top_course: str
    most_engaged_student: str
    needs_attention: list[StudentSummary] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "total_students": self.total_students,
            "average_grade": self.average_grade,
            "completion_rate": self.completion_rate,
            "engagement_level": self.engagement_level,
            "lesson_completion_rate": self.lesson_completion_rate,
            "top_course": self.top_course,
            "most_engaged_student": self.most_engaged_student,
            "needs_attention": [s.to_dict() for s in self.needs_attention],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
