# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record store adapter.

Typed, read-only queries over a RecordStore. The adapter is the boundary
between the loosely-shaped documents of the store and the reporting
domain:

- every read runs under a timeout and surfaces failures as StoreError
  carrying the operation and the ids it was scoped to;
- every document goes through its entity's normalization function once;
  documents that fail are excluded and recorded as diagnostics.

Reads are point-in-time snapshots with no consistency guarantee across
calls. The adapter never retries.

Example:
    adapter = RecordStoreAdapter(store, timeout_seconds=5.0)
    diagnostics: list[Diagnostic] = []
    courses = await adapter.list_courses_by_teacher("t-1", diagnostics)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from coursepulse.domains.reporting.errors import ComputationError, Diagnostic
from coursepulse.domains.reporting.records import (
    AssignmentRecord,
    Course,
    Student,
    SubmissionRecord,
    normalize_assignment,
    normalize_course,
    normalize_student,
    normalize_submission,
)
from coursepulse.infrastructure.store import (
    ChangeListener,
    Document,
    RecordStore,
    StoreError,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class RecordStoreAdapter:
    """Typed access to a record store with timeouts.

    Attributes:
        store: The underlying record store.
        timeout_seconds: Upper bound for each read.
    """

    def __init__(self, store: RecordStore, timeout_seconds: float = 10.0) -> None:
        """Initialize the adapter.

        Args:
            store: Record store to read from.
            timeout_seconds: Upper bound for each read.
        """
        self.store = store
        self.timeout_seconds = timeout_seconds

    async def _read(
        self,
        operation: str,
        call: Callable[[], Awaitable[list[Document]]],
        **context: str,
    ) -> list[Document]:
        try:
            docs = await asyncio.wait_for(call(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise StoreError(
                f"timed out after {self.timeout_seconds}s",
                operation,
                **context,
            ) from e
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(str(e) or type(e).__name__, operation, **context) from e

        if not isinstance(docs, list):
            raise StoreError(
                f"expected a list of documents, got {type(docs).__name__}",
                operation,
                **context,
            )
        return docs

    @staticmethod
    def _normalize_all(
        docs: list[Document],
        normalizer: Callable[[Document], RecordT],
        diagnostics: list[Diagnostic] | None,
        course_id: str | None = None,
    ) -> list[RecordT]:
        records: list[RecordT] = []
        for doc in docs:
            try:
                records.append(normalizer(doc))
            except ComputationError as e:
                logger.warning("Skipping malformed record: %s", str(e))
                if diagnostics is not None:
                    diagnostics.append(Diagnostic.from_computation_error(e, course_id=course_id))
        return records

    async def list_courses_by_teacher(
        self,
        teacher_id: str,
        diagnostics: list[Diagnostic] | None = None,
    ) -> list[Course]:
        """List the courses owned by a teacher.

        Raises:
            StoreError: If the read fails or times out.
        """
        docs = await self._read(
            "list_courses_by_teacher",
            lambda: self.store.list_courses_by_teacher(teacher_id),
            teacher_id=teacher_id,
        )
        return self._normalize_all(docs, normalize_course, diagnostics)

    async def list_students_by_course(
        self,
        course_id: str,
        diagnostics: list[Diagnostic] | None = None,
    ) -> list[Student]:
        """List the students enrolled in a course.

        Raises:
            StoreError: If the read fails or times out.
        """
        docs = await self._read(
            "list_students_by_course",
            lambda: self.store.list_students_by_course(course_id),
            course_id=course_id,
        )
        return self._normalize_all(docs, normalize_student, diagnostics, course_id)

    async def list_assignments_by_course(
        self,
        course_id: str,
        diagnostics: list[Diagnostic] | None = None,
    ) -> list[AssignmentRecord]:
        """List the assignments of a course.

        Raises:
            StoreError: If the read fails or times out.
        """
        docs = await self._read(
            "list_assignments_by_course",
            lambda: self.store.list_assignments_by_course(course_id),
            course_id=course_id,
        )
        return self._normalize_all(docs, normalize_assignment, diagnostics, course_id)

    async def list_submissions(
        self,
        student_id: str,
        course_id: str,
        diagnostics: list[Diagnostic] | None = None,
    ) -> list[SubmissionRecord]:
        """List a student's submissions in a course.

        Raises:
            StoreError: If the read fails or times out.
        """
        docs = await self._read(
            "list_submissions",
            lambda: self.store.list_submissions(student_id, course_id),
            student_id=student_id,
            course_id=course_id,
        )
        return self._normalize_all(docs, normalize_submission, diagnostics, course_id)

    async def list_submissions_by_assignment(
        self,
        assignment_id: str,
        diagnostics: list[Diagnostic] | None = None,
        course_id: str | None = None,
    ) -> list[SubmissionRecord]:
        """List every submission made for an assignment.

        Raises:
            StoreError: If the read fails or times out.
        """
        docs = await self._read(
            "list_submissions_by_assignment",
            lambda: self.store.list_submissions_by_assignment(assignment_id),
            assignment_id=assignment_id,
        )
        return self._normalize_all(docs, normalize_submission, diagnostics, course_id)

    def subscribe_to_course_changes(
        self,
        teacher_id: str,
        on_change: ChangeListener,
    ) -> Unsubscribe:
        """Register a listener for a teacher's course changes."""
        return self.store.subscribe_to_course_changes(teacher_id, on_change)
