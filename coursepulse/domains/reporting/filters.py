# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report filters and the filter pipeline.

The pipeline narrows record sets before aggregation. Stages are combined
by logical AND and applied in this order:

1. course id match
2. date range inclusion on the assignment created instant, ``[start, end)``
3. assignment type membership
4. student id membership

Before any date comparison, tagged timestamps are resolved into aware UTC
instants by to_instant(), the only place in the reporting domain that
knows about the three timestamp shapes.

Usage:
    filters = ReportFilters(course_id="c-1", assignment_types={"quiz"})
    filters.validate()

    assignments = resolve_records(records, resolve_assignment, diagnostics)
    assignments = filter_assignments(assignments, filters)
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from coursepulse.domains.reporting.errors import ComputationError, ConfigurationError, Diagnostic
from coursepulse.domains.reporting.records import (
    Assignment,
    AssignmentRecord,
    Course,
    EpochTimestamp,
    NativeTimestamp,
    Student,
    Submission,
    SubmissionRecord,
    TextTimestamp,
)
from coursepulse.utils.datetime import ensure_utc, parse_iso, utc_from_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


# =============================================================================
# Filters
# =============================================================================


@dataclass(frozen=True)
class DateRange:
    """Half-open instant range ``[start, end)``.

    Naive datetimes are taken as UTC.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class ReportFilters:
    """Filters applied to every report.

    An unset or empty set means "no restriction" for that dimension.

    Attributes:
        course_id: Only report on this course.
        student_ids: Only report on these students.
        assignment_types: Only count assignments of these types.
        date_range: Only count assignments created inside this range.
    """

    course_id: str | None = None
    student_ids: frozenset[str] = field(default_factory=frozenset)
    assignment_types: frozenset[str] = field(default_factory=frozenset)
    date_range: DateRange | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "student_ids", frozenset(self.student_ids or ()))
        object.__setattr__(self, "assignment_types", frozenset(self.assignment_types or ()))

    def validate(self) -> None:
        """Check the filters for contradictions.

        Raises:
            ConfigurationError: If a filter value is unusable.
        """
        if self.course_id is not None and not self.course_id.strip():
            raise ConfigurationError("course_id must not be blank")
        if any(not sid.strip() for sid in self.student_ids):
            raise ConfigurationError("student_ids must not contain blank ids")
        if any(not t.strip() for t in self.assignment_types):
            raise ConfigurationError("assignment_types must not contain blank types")
        if self.date_range is not None and self.date_range.start > self.date_range.end:
            raise ConfigurationError(
                f"date range start {self.date_range.start.isoformat()} "
                f"is after end {self.date_range.end.isoformat()}"
            )


# =============================================================================
# Timestamp resolution
# =============================================================================


def to_instant(
    timestamp: NativeTimestamp | EpochTimestamp | TextTimestamp | None,
) -> datetime | None:
    """Resolve a tagged timestamp into an aware UTC instant.

    Raises:
        ComputationError: If a text timestamp cannot be parsed or an epoch
            value lies outside the representable range.
    """
    if timestamp is None:
        return None
    if timestamp.kind == "native":
        return ensure_utc(timestamp.value)
    if timestamp.kind == "epoch":
        try:
            return utc_from_timestamp(timestamp.seconds + timestamp.nanoseconds / 1_000_000_000)
        except (ValueError, OverflowError, OSError) as e:
            raise ComputationError(f"epoch timestamp out of range: {timestamp.seconds}") from e
    try:
        return parse_iso(timestamp.value)
    except ValueError as e:
        raise ComputationError(f"unparseable timestamp {timestamp.value!r}") from e


def resolve_assignment(record: AssignmentRecord) -> Assignment:
    """Turn a store assignment into one with resolved instants."""
    try:
        created_at = to_instant(record.created)
        due_at = to_instant(record.due)
    except ComputationError as e:
        raise ComputationError(
            f"assignment {record.id}: {e}",
            record_type="assignment",
            record_id=record.id,
        ) from e
    return Assignment(
        id=record.id,
        course_id=record.course_id,
        title=record.title,
        assignment_type=record.assignment_type,
        max_points=record.max_points,
        created_at=created_at,
        due_at=due_at,
    )


def resolve_submission(record: SubmissionRecord) -> Submission:
    """Turn a store submission into one with a resolved instant."""
    try:
        submitted_at = to_instant(record.submitted)
    except ComputationError as e:
        raise ComputationError(
            f"submission {record.id}: {e}",
            record_type="submission",
            record_id=record.id,
        ) from e
    fields = record.model_dump(exclude={"submitted"})
    return Submission(**fields, submitted_at=submitted_at)


def resolve_records(
    records: Iterable[T],
    resolver: Callable[[T], R],
    diagnostics: list[Diagnostic],
    course_id: str | None = None,
) -> list[R]:
    """Resolve records, excluding the ones that fail.

    Every excluded record leaves a computation_error diagnostic.
    """
    resolved: list[R] = []
    for record in records:
        try:
            resolved.append(resolver(record))
        except ComputationError as e:
            logger.warning("Excluding record: %s", str(e))
            diagnostics.append(Diagnostic.from_computation_error(e, course_id=course_id))
    return resolved


# =============================================================================
# Pipeline stages
# =============================================================================


def matches_course(course: Course, filters: ReportFilters) -> bool:
    return filters.course_id is None or course.id == filters.course_id


def in_date_range(assignment: Assignment, filters: ReportFilters) -> bool:
    """Check the created instant against the date range.

    Assignments without a created instant cannot be placed in a range and
    are excluded while one is active.
    """
    if filters.date_range is None:
        return True
    if assignment.created_at is None:
        return False
    return filters.date_range.contains(assignment.created_at)


def matches_type(assignment: Assignment, filters: ReportFilters) -> bool:
    return not filters.assignment_types or assignment.assignment_type in filters.assignment_types


def matches_student(student: Student, filters: ReportFilters) -> bool:
    return not filters.student_ids or student.id in filters.student_ids


def filter_courses(courses: Iterable[Course], filters: ReportFilters) -> list[Course]:
    return [c for c in courses if matches_course(c, filters)]


def filter_assignments(
    assignments: Iterable[Assignment],
    filters: ReportFilters,
) -> list[Assignment]:
    return [
        a for a in assignments
        if in_date_range(a, filters) and matches_type(a, filters)
    ]


def filter_students(students: Iterable[Student], filters: ReportFilters) -> list[Student]:
    return [s for s in students if matches_student(s, filters)]
