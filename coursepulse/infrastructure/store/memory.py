# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory record store.

A process-local implementation of the RecordStore protocol. It keeps the
four collections (courses, students, assignments, submissions) as
insertion-ordered dictionaries of documents and publishes a change event
on every write, so report subscriptions can be exercised without an
external database.

Documents may use snake_case or camelCase keys (``teacher_id`` or
``teacherId``); queries accept either.

Example:
    store = InMemoryRecordStore()
    store.put_course({"id": "c-1", "name": "Algebra", "teacher_id": "t-1"})
    courses = await store.list_courses_by_teacher("t-1")
"""

import asyncio
import logging
from typing import Any

from coursepulse.infrastructure.events import ChangeBus, ChangeEvent, ChangeTopics
from coursepulse.infrastructure.store.base import ChangeListener, Document, Unsubscribe

logger = logging.getLogger(__name__)


def _field(doc: Document, *names: str, default: Any = None) -> Any:
    for name in names:
        if name in doc:
            return doc[name]
    return default


class InMemoryRecordStore:
    """Record store backed by in-process dictionaries.

    Attributes:
        bus: Change bus that write operations publish to.
        latency: Seconds every read sleeps before answering.
    """

    def __init__(self, bus: ChangeBus | None = None, latency: float = 0.0) -> None:
        self.bus = bus or ChangeBus()
        self.latency = latency
        self._courses: dict[str, Document] = {}
        self._students: dict[str, Document] = {}
        self._assignments: dict[str, Document] = {}
        self._submissions: dict[str, Document] = {}

    # =========================================================================
    # Reads
    # =========================================================================

    async def _snapshot(self, docs: list[Document]) -> list[Document]:
        await asyncio.sleep(self.latency)
        return [dict(doc) for doc in docs]

    async def list_courses_by_teacher(self, teacher_id: str) -> list[Document]:
        return await self._snapshot([
            doc for doc in self._courses.values()
            if _field(doc, "teacher_id", "teacherId") == teacher_id
        ])

    async def list_students_by_course(self, course_id: str) -> list[Document]:
        return await self._snapshot([
            doc for doc in self._students.values()
            if course_id in (_field(doc, "course_ids", "courseIds", "enrolledCourses") or [])
        ])

    async def list_assignments_by_course(self, course_id: str) -> list[Document]:
        return await self._snapshot([
            doc for doc in self._assignments.values()
            if _field(doc, "course_id", "courseId") == course_id
        ])

    async def list_submissions(self, student_id: str, course_id: str) -> list[Document]:
        return await self._snapshot([
            doc for doc in self._submissions.values()
            if _field(doc, "student_id", "studentId") == student_id
            and _field(doc, "course_id", "courseId") == course_id
        ])

    async def list_submissions_by_assignment(self, assignment_id: str) -> list[Document]:
        return await self._snapshot([
            doc for doc in self._submissions.values()
            if _field(doc, "assignment_id", "assignmentId") == assignment_id
        ])

    # =========================================================================
    # Change notifications
    # =========================================================================

    def subscribe_to_course_changes(
        self,
        teacher_id: str,
        on_change: ChangeListener,
    ) -> Unsubscribe:
        def handler(event: ChangeEvent) -> None:
            if event.payload.get("teacher_id") == teacher_id:
                on_change()

        remove = self.bus.subscribe(ChangeTopics.ALL_COURSE, handler)
        logger.debug("Course change listener registered: teacher=%s", teacher_id)

        def unsubscribe() -> None:
            remove()

        return unsubscribe

    def _notify(self, topic: str, course_id: str | None, **ids: str) -> None:
        course = self._courses.get(course_id) if course_id else None
        teacher_id = _field(course, "teacher_id", "teacherId") if course else None
        if teacher_id is None:
            return
        self.bus.publish(topic, {"teacher_id": teacher_id, "course_id": course_id, **ids})

    # =========================================================================
    # Writes (used by seeding code and tests)
    # =========================================================================

    def put_course(self, doc: Document) -> None:
        previous = self._courses.get(doc["id"])
        self._courses[doc["id"]] = dict(doc)
        self._notify(ChangeTopics.COURSE_CHANGED, doc["id"])

        # A course handed to another teacher also changes the old owner's set.
        old_teacher = _field(previous, "teacher_id", "teacherId") if previous else None
        if old_teacher is not None and old_teacher != _field(doc, "teacher_id", "teacherId"):
            self.bus.publish(
                ChangeTopics.COURSE_CHANGED,
                {"teacher_id": old_teacher, "course_id": doc["id"]},
            )

    def put_student(self, doc: Document) -> None:
        self._students[doc["id"]] = dict(doc)
        for course_id in _field(doc, "course_ids", "courseIds", "enrolledCourses") or []:
            self._notify(ChangeTopics.STUDENT_CHANGED, course_id, student_id=doc["id"])

    def put_assignment(self, doc: Document) -> None:
        self._assignments[doc["id"]] = dict(doc)
        self._notify(
            ChangeTopics.ASSIGNMENT_CHANGED,
            _field(doc, "course_id", "courseId"),
            assignment_id=doc["id"],
        )

    def put_submission(self, doc: Document) -> None:
        self._submissions[doc["id"]] = dict(doc)
        self._notify(
            ChangeTopics.SUBMISSION_CHANGED,
            _field(doc, "course_id", "courseId"),
            submission_id=doc["id"],
        )

    def remove_submission(self, submission_id: str) -> bool:
        doc = self._submissions.pop(submission_id, None)
        if doc is None:
            return False
        self._notify(
            ChangeTopics.SUBMISSION_CHANGED,
            _field(doc, "course_id", "courseId"),
            submission_id=submission_id,
        )
        return True
