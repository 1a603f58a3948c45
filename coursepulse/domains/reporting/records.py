# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed raw records and their normalization.

Documents coming out of the record store are loosely shaped: keys may be
camelCase or snake_case, optional fields may be missing or null, and
timestamps arrive as native datetimes, epoch-seconds wrappers or text.
Each entity type has exactly one normalization function here, run once at
the store adapter boundary, after which the rest of the reporting domain
works with fully-populated models.

Timestamps are classified into a tagged union (NativeTimestamp,
EpochTimestamp, TextTimestamp) but are not yet converted; turning them
into instants is the filter pipeline's job (see filters.to_instant), which
produces the resolved Assignment and Submission models.
"""

import math
from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from coursepulse.domains.reporting.errors import ComputationError
from coursepulse.infrastructure.store import Document
from coursepulse.utils.datetime import start_of_day

UNKNOWN_STUDENT_NAME = "Unknown Student"
UNTITLED_COURSE_NAME = "Untitled Course"
UNTITLED_ASSIGNMENT_TITLE = "Untitled Assignment"
DEFAULT_ASSIGNMENT_TYPE = "homework"
DEFAULT_MAX_POINTS = 100.0


# =============================================================================
# Timestamp tagged union
# =============================================================================


class NativeTimestamp(BaseModel):
    """A datetime object handed over by the store driver."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["native"] = "native"
    value: datetime


class EpochTimestamp(BaseModel):
    """Seconds/nanoseconds since the Unix epoch."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["epoch"] = "epoch"
    seconds: int
    nanoseconds: int = 0


class TextTimestamp(BaseModel):
    """A date or datetime encoded as text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


Timestamp = Annotated[
    NativeTimestamp | EpochTimestamp | TextTimestamp,
    Field(discriminator="kind"),
]


def _epoch(seconds: Any, nanoseconds: Any = 0) -> EpochTimestamp:
    for part in (seconds, nanoseconds):
        if isinstance(part, float) and not math.isfinite(part):
            raise ValueError(f"non-finite epoch value: {part!r}")
    return EpochTimestamp(seconds=int(seconds), nanoseconds=int(nanoseconds or 0))


def classify_timestamp(value: Any) -> Any:
    """Wrap a raw timestamp value in its tagged union member.

    Accepts datetimes, dates, ``{"seconds", "nanoseconds"}`` mappings
    (with or without leading underscores), objects exposing ``seconds`` and
    ``nanoseconds`` attributes, bare epoch numbers and strings. Values that
    are already tagged pass through unchanged.

    Raises:
        ValueError: If the value has none of the known shapes.
    """
    if value is None or isinstance(value, (NativeTimestamp, EpochTimestamp, TextTimestamp)):
        return value
    if isinstance(value, datetime):
        return NativeTimestamp(value=value)
    if isinstance(value, date):
        return NativeTimestamp(value=start_of_day(value))
    if isinstance(value, dict):
        if "kind" in value:
            return value
        seconds = value.get("seconds", value.get("_seconds"))
        nanoseconds = value.get("nanoseconds", value.get("_nanoseconds", 0))
        if seconds is None:
            raise ValueError(f"epoch wrapper without seconds: {value!r}")
        return _epoch(seconds, nanoseconds)
    if isinstance(value, bool):
        raise ValueError(f"unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"non-finite epoch value: {value!r}")
        whole = int(value)
        return EpochTimestamp(seconds=whole, nanoseconds=int(round((value - whole) * 1e9)))
    if isinstance(value, str):
        return TextTimestamp(value=value)
    if hasattr(value, "seconds") and hasattr(value, "nanoseconds"):
        return _epoch(value.seconds, value.nanoseconds)
    raise ValueError(f"unsupported timestamp shape: {type(value).__name__}")


def _tagged(value: Any) -> Any:
    tagged = classify_timestamp(value)
    if isinstance(tagged, BaseModel):
        return tagged.model_dump()
    return tagged


RawTimestamp = Annotated[Optional[Timestamp], BeforeValidator(_tagged)]


# =============================================================================
# Records
# =============================================================================


class _Record(BaseModel):
    """Base for store records.

    Null-valued keys are dropped before validation so that field defaults
    apply uniformly to missing and null fields.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        allow_inf_nan=False,
    )

    id: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Student(_Record):
    """A student and the courses they are enrolled in."""

    name: str = UNKNOWN_STUDENT_NAME
    email: str = ""
    status: str = "active"
    course_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("course_ids", "courseIds", "enrolledCourses"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Course(_Record):
    """A course owned by a teacher."""

    name: str = UNTITLED_COURSE_NAME
    teacher_id: str = Field(validation_alias=AliasChoices("teacher_id", "teacherId"))


class _AssignmentFields(_Record):
    course_id: str = Field(validation_alias=AliasChoices("course_id", "courseId"))
    title: str = UNTITLED_ASSIGNMENT_TITLE
    assignment_type: str = Field(
        default=DEFAULT_ASSIGNMENT_TYPE,
        validation_alias=AliasChoices("assignment_type", "type"),
    )
    max_points: float = Field(
        default=DEFAULT_MAX_POINTS,
        gt=0,
        validation_alias=AliasChoices("max_points", "maxPoints"),
    )


class AssignmentRecord(_AssignmentFields):
    """An assignment as read from the store, timestamps still tagged."""

    created: RawTimestamp = Field(
        default=None,
        validation_alias=AliasChoices("created", "created_at", "createdAt"),
    )
    due: RawTimestamp = Field(
        default=None,
        validation_alias=AliasChoices("due", "due_date", "dueDate", "due_at"),
    )


class Assignment(_AssignmentFields):
    """An assignment with resolved instants."""

    created_at: datetime | None = None
    due_at: datetime | None = None


class _SubmissionFields(_Record):
    student_id: str = Field(validation_alias=AliasChoices("student_id", "studentId"))
    assignment_id: str = Field(validation_alias=AliasChoices("assignment_id", "assignmentId"))
    course_id: str = Field(validation_alias=AliasChoices("course_id", "courseId"))
    grade: float | None = None
    feedback: str = ""
    is_late: bool = Field(default=False, validation_alias=AliasChoices("is_late", "isLate", "late"))
    time_spent: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("time_spent", "timeSpent"),
    )
    questions_asked: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("questions_asked", "questionsAsked"),
    )
    difficulty_rating: float | None = Field(
        default=None,
        ge=1,
        le=5,
        validation_alias=AliasChoices("difficulty_rating", "difficultyRating"),
    )

    @property
    def is_graded(self) -> bool:
        return self.grade is not None


class SubmissionRecord(_SubmissionFields):
    """A submission as read from the store, timestamp still tagged."""

    submitted: RawTimestamp = Field(
        default=None,
        validation_alias=AliasChoices("submitted", "submitted_at", "submittedAt"),
    )


class Submission(_SubmissionFields):
    """A submission with a resolved submitted instant."""

    submitted_at: datetime | None = None


# =============================================================================
# Normalization
# =============================================================================

RecordT = TypeVar("RecordT", bound=_Record)


def _normalize(model: type[RecordT], doc: Document, record_type: str) -> RecordT:
    try:
        return model.model_validate(doc)
    except ValidationError as e:
        record_id = doc.get("id") if isinstance(doc, dict) else None
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
            for err in e.errors()
        )
        raise ComputationError(
            f"malformed {record_type} {record_id or '<no id>'}: {problems}",
            record_type=record_type,
            record_id=str(record_id) if record_id is not None else None,
        ) from e


def normalize_course(doc: Document) -> Course:
    return _normalize(Course, doc, "course")


def normalize_student(doc: Document) -> Student:
    return _normalize(Student, doc, "student")


def normalize_assignment(doc: Document) -> AssignmentRecord:
    return _normalize(AssignmentRecord, doc, "assignment")


def normalize_submission(doc: Document) -> SubmissionRecord:
    return _normalize(SubmissionRecord, doc, "submission")
