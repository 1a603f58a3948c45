# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for record normalization."""

from datetime import date, datetime, timezone

import pytest

from coursepulse.domains.reporting.errors import ComputationError
from coursepulse.domains.reporting.records import (
    DEFAULT_ASSIGNMENT_TYPE,
    DEFAULT_MAX_POINTS,
    UNKNOWN_STUDENT_NAME,
    UNTITLED_ASSIGNMENT_TITLE,
    EpochTimestamp,
    NativeTimestamp,
    TextTimestamp,
    classify_timestamp,
    normalize_assignment,
    normalize_course,
    normalize_student,
    normalize_submission,
)


class _DriverTimestamp:
    """Stand-in for a store driver's timestamp object."""

    def __init__(self, seconds: int, nanoseconds: int) -> None:
        self.seconds = seconds
        self.nanoseconds = nanoseconds


class TestClassifyTimestamp:
    """Tests for classify_timestamp()."""

    def test_datetime_is_native(self) -> None:
        value = datetime(2024, 9, 1, 8, 0, tzinfo=timezone.utc)

        result = classify_timestamp(value)

        assert result == NativeTimestamp(value=value)

    def test_date_is_native_midnight_utc(self) -> None:
        result = classify_timestamp(date(2024, 9, 1))

        assert isinstance(result, NativeTimestamp)
        assert result.value == datetime(2024, 9, 1, tzinfo=timezone.utc)

    def test_seconds_mapping_is_epoch(self) -> None:
        result = classify_timestamp({"seconds": 1725177600, "nanoseconds": 500})

        assert result == EpochTimestamp(seconds=1725177600, nanoseconds=500)

    def test_underscored_seconds_mapping_is_epoch(self) -> None:
        result = classify_timestamp({"_seconds": 1725177600, "_nanoseconds": 0})

        assert result == EpochTimestamp(seconds=1725177600)

    def test_driver_object_is_epoch(self) -> None:
        result = classify_timestamp(_DriverTimestamp(1725177600, 7))

        assert result == EpochTimestamp(seconds=1725177600, nanoseconds=7)

    def test_number_is_epoch(self) -> None:
        result = classify_timestamp(1725177600.5)

        assert result == EpochTimestamp(seconds=1725177600, nanoseconds=500_000_000)

    def test_string_is_text(self) -> None:
        assert classify_timestamp("2024-09-01") == TextTimestamp(value="2024-09-01")

    def test_none_passes_through(self) -> None:
        assert classify_timestamp(None) is None

    def test_tagged_value_passes_through(self) -> None:
        tagged = TextTimestamp(value="2024-09-01")

        assert classify_timestamp(tagged) is tagged

    @pytest.mark.parametrize("value", [True, [2024, 9, 1], {"nanoseconds": 1}])
    def test_unknown_shape_rejected(self, value: object) -> None:
        with pytest.raises(ValueError):
            classify_timestamp(value)

    @pytest.mark.parametrize(
        "value",
        [float("inf"), float("-inf"), float("nan"), {"seconds": float("inf")}],
    )
    def test_non_finite_epoch_rejected(self, value: object) -> None:
        with pytest.raises(ValueError):
            classify_timestamp(value)


class TestNormalizeCourse:
    """Tests for normalize_course()."""

    def test_camel_case_teacher_id(self) -> None:
        course = normalize_course({"id": "c-1", "name": "Algebra", "teacherId": "t-1"})

        assert course.teacher_id == "t-1"
        assert course.name == "Algebra"

    def test_missing_teacher_id_rejected(self) -> None:
        with pytest.raises(ComputationError) as exc_info:
            normalize_course({"id": "c-1", "name": "Algebra"})

        assert exc_info.value.record_type == "course"
        assert exc_info.value.record_id == "c-1"
        assert str(exc_info.value).startswith("malformed course c-1")


class TestNormalizeStudent:
    """Tests for normalize_student()."""

    def test_defaults(self) -> None:
        student = normalize_student({"id": "s-1"})

        assert student.name == UNKNOWN_STUDENT_NAME
        assert student.email == ""
        assert student.is_active is True
        assert student.course_ids == []

    @pytest.mark.parametrize("key", ["course_ids", "courseIds", "enrolledCourses"])
    def test_enrollment_aliases(self, key: str) -> None:
        student = normalize_student({"id": "s-1", key: ["c-1", "c-2"]})

        assert student.course_ids == ["c-1", "c-2"]

    def test_inactive_status(self) -> None:
        student = normalize_student({"id": "s-1", "status": "inactive"})

        assert student.is_active is False

    def test_null_fields_take_defaults(self) -> None:
        student = normalize_student({"id": "s-1", "name": None, "email": None})

        assert student.name == UNKNOWN_STUDENT_NAME
        assert student.email == ""

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ComputationError):
            normalize_student({"id": ""})


class TestNormalizeAssignment:
    """Tests for normalize_assignment()."""

    def test_defaults(self) -> None:
        record = normalize_assignment({"id": "a-1", "courseId": "c-1"})

        assert record.title == UNTITLED_ASSIGNMENT_TITLE
        assert record.assignment_type == DEFAULT_ASSIGNMENT_TYPE
        assert record.max_points == DEFAULT_MAX_POINTS
        assert record.created is None
        assert record.due is None

    def test_type_alias(self) -> None:
        record = normalize_assignment({"id": "a-1", "courseId": "c-1", "type": "lesson"})

        assert record.assignment_type == "lesson"

    def test_timestamps_are_tagged(self) -> None:
        record = normalize_assignment({
            "id": "a-1",
            "courseId": "c-1",
            "createdAt": {"seconds": 1725177600, "nanoseconds": 0},
            "dueDate": "2024-09-15",
        })

        assert record.created == EpochTimestamp(seconds=1725177600)
        assert record.due == TextTimestamp(value="2024-09-15")

    def test_native_created_at(self) -> None:
        created = datetime(2024, 9, 1, 8, 0)

        record = normalize_assignment({"id": "a-1", "courseId": "c-1", "created_at": created})

        assert record.created.kind == "native"
        assert record.created.value == created

    def test_non_positive_max_points_rejected(self) -> None:
        with pytest.raises(ComputationError) as exc_info:
            normalize_assignment({"id": "a-1", "courseId": "c-1", "maxPoints": 0})

        assert exc_info.value.record_id == "a-1"

    def test_unknown_timestamp_shape_rejected(self) -> None:
        with pytest.raises(ComputationError):
            normalize_assignment({"id": "a-1", "courseId": "c-1", "createdAt": [2024, 9, 1]})

    def test_infinite_timestamp_rejected(self) -> None:
        with pytest.raises(ComputationError) as exc_info:
            normalize_assignment({"id": "a-1", "courseId": "c-1", "createdAt": float("inf")})

        assert exc_info.value.record_id == "a-1"

    def test_missing_id_reported(self) -> None:
        with pytest.raises(ComputationError) as exc_info:
            normalize_assignment({"courseId": "c-1"})

        assert exc_info.value.record_id is None
        assert "<no id>" in str(exc_info.value)


class TestNormalizeSubmission:
    """Tests for normalize_submission()."""

    def test_camel_case_fields(self) -> None:
        record = normalize_submission({
            "id": "sub-1",
            "studentId": "s-1",
            "assignmentId": "a-1",
            "courseId": "c-1",
            "grade": 88,
            "isLate": True,
            "timeSpent": 12.5,
            "questionsAsked": 3,
            "difficultyRating": 4,
            "submittedAt": "2024-09-03T10:00:00Z",
        })

        assert record.grade == 88.0
        assert record.is_graded is True
        assert record.is_late is True
        assert record.time_spent == 12.5
        assert record.questions_asked == 3
        assert record.difficulty_rating == 4
        assert record.submitted == TextTimestamp(value="2024-09-03T10:00:00Z")

    def test_ungraded_submission(self) -> None:
        record = normalize_submission({
            "id": "sub-1", "studentId": "s-1", "assignmentId": "a-1", "courseId": "c-1",
            "grade": None,
        })

        assert record.grade is None
        assert record.is_graded is False
        assert record.feedback == ""
        assert record.is_late is False

    @pytest.mark.parametrize(
        "field,value",
        [
            ("grade", float("nan")),
            ("difficultyRating", 6),
            ("timeSpent", -1),
            ("questionsAsked", -2),
        ],
    )
    def test_invalid_values_rejected(self, field: str, value: object) -> None:
        doc = {
            "id": "sub-1", "studentId": "s-1", "assignmentId": "a-1", "courseId": "c-1",
            field: value,
        }

        with pytest.raises(ComputationError) as exc_info:
            normalize_submission(doc)

        assert exc_info.value.record_type == "submission"
        assert exc_info.value.record_id == "sub-1"
