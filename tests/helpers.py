# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared test doubles and seed data.

Seeded stores follow the classroom scenarios used throughout the suite:
- Scenario A: course c-1 with assignments a-1, a-2; X submits both (90, 80),
  Y submits a-1 only (50).
- Scenario B: course c-2 with lesson l-1 and three students, one response.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

from coursepulse.infrastructure.store import Document, InMemoryRecordStore


class RecordingStore(InMemoryRecordStore):
    """In-memory store that records reads and can be told to fail them.

    Failures are keyed by (operation, scope id), where the scope id is the
    first argument of the read.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    def fail(self, operation: str, scope_id: str, error: Exception | None = None) -> None:
        self.failures[(operation, scope_id)] = error or RuntimeError("connection reset")

    def _record(self, operation: str, scope_id: str) -> None:
        self.calls.append((operation, scope_id))
        error = self.failures.get((operation, scope_id))
        if error is not None:
            raise error

    async def _snapshot(self, docs: list[Document]) -> list[Document]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return await super()._snapshot(docs)
        finally:
            self.in_flight -= 1

    async def list_courses_by_teacher(self, teacher_id: str) -> list[Document]:
        self._record("list_courses_by_teacher", teacher_id)
        return await super().list_courses_by_teacher(teacher_id)

    async def list_students_by_course(self, course_id: str) -> list[Document]:
        self._record("list_students_by_course", course_id)
        return await super().list_students_by_course(course_id)

    async def list_assignments_by_course(self, course_id: str) -> list[Document]:
        self._record("list_assignments_by_course", course_id)
        return await super().list_assignments_by_course(course_id)

    async def list_submissions(self, student_id: str, course_id: str) -> list[Document]:
        self._record("list_submissions", student_id)
        return await super().list_submissions(student_id, course_id)

    async def list_submissions_by_assignment(self, assignment_id: str) -> list[Document]:
        self._record("list_submissions_by_assignment", assignment_id)
        return await super().list_submissions_by_assignment(assignment_id)


def epoch(dt: datetime) -> dict[str, int]:
    """Encode an instant as a seconds/nanoseconds wrapper."""
    return {"seconds": int(dt.timestamp()), "nanoseconds": 0}


SEPT_1 = datetime(2024, 9, 1, 8, 0, tzinfo=timezone.utc)
SEPT_10 = datetime(2024, 9, 10, 8, 0, tzinfo=timezone.utc)


def seed_scenario_a(store: InMemoryRecordStore, teacher_id: str = "t-1") -> None:
    store.put_course({"id": "c-1", "name": "Algebra", "teacherId": teacher_id})
    store.put_student({
        "id": "s-x", "name": "Xavier", "email": "x@school.test", "enrolledCourses": ["c-1"],
    })
    store.put_student({
        "id": "s-y", "name": "Yara", "email": "y@school.test", "courseIds": ["c-1"],
    })
    store.put_assignment({
        "id": "a-1", "courseId": "c-1", "title": "Linear equations", "type": "quiz",
        "maxPoints": 100, "createdAt": SEPT_1,
    })
    store.put_assignment({
        "id": "a-2", "courseId": "c-1", "title": "Quadratics", "type": "homework",
        "maxPoints": 100, "createdAt": epoch(SEPT_10),
    })
    store.put_submission({
        "id": "sub-1", "studentId": "s-x", "assignmentId": "a-1", "courseId": "c-1",
        "grade": 90, "submittedAt": "2024-09-03T10:00:00Z",
    })
    store.put_submission({
        "id": "sub-2", "studentId": "s-x", "assignmentId": "a-2", "courseId": "c-1",
        "grade": 80, "submittedAt": "2024-09-12T10:00:00Z",
    })
    store.put_submission({
        "id": "sub-3", "studentId": "s-y", "assignmentId": "a-1", "courseId": "c-1",
        "grade": 50, "submittedAt": "2024-09-04T10:00:00Z",
    })


def seed_scenario_b(store: InMemoryRecordStore, teacher_id: str = "t-1") -> None:
    store.put_course({"id": "c-2", "name": "Biology", "teacher_id": teacher_id})
    for student_id, name in (("s-1", "Ana"), ("s-2", "Ben"), ("s-3", "Cleo")):
        store.put_student({"id": student_id, "name": name, "course_ids": ["c-2"]})
    store.put_assignment({
        "id": "l-1", "course_id": "c-2", "title": "Cells", "type": "lesson",
        "created_at": "2024-09-02",
    })
    store.put_submission({
        "id": "sub-l1", "student_id": "s-1", "assignment_id": "l-1", "course_id": "c-2",
        "grade": 90, "time_spent": 30, "questions_asked": 2, "difficulty_rating": 3,
        "feedback": "Clear", "submitted_at": SEPT_10,
    })


async def wait_for(queue: asyncio.Queue, timeout: float = 2.0) -> Any:
    """Get the next item of a queue or fail the test."""
    return await asyncio.wait_for(queue.get(), timeout=timeout)
