# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record store contract.

The record store is an external document collection store owned by other
collaborators. CoursePulse only reads from it and listens for course
changes. Documents are plain dictionaries carrying an ``id`` key plus the
stored fields, exactly as the store returns them.
"""

from typing import Any, Callable, Protocol, runtime_checkable

Document = dict[str, Any]
ChangeListener = Callable[[], None]
Unsubscribe = Callable[[], None]


class StoreError(Exception):
    """Raised when a record store read fails or times out.

    Attributes:
        operation: Name of the store operation that failed.
        context: Identifiers the operation was scoped to.
    """

    def __init__(self, message: str, operation: str, **context: str) -> None:
        self.operation = operation
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        scope = ", ".join(f"{k}={v}" for k, v in self.context.items())
        base = super().__str__()
        return f"{self.operation}({scope}): {base}" if scope else f"{self.operation}: {base}"


@runtime_checkable
class RecordStore(Protocol):
    """Read-only queries against the external collection store.

    Implementations own retry and backoff; callers never retry.
    """

    async def list_courses_by_teacher(self, teacher_id: str) -> list[Document]: ...

    async def list_students_by_course(self, course_id: str) -> list[Document]: ...

    async def list_assignments_by_course(self, course_id: str) -> list[Document]: ...

    async def list_submissions(self, student_id: str, course_id: str) -> list[Document]: ...

    async def list_submissions_by_assignment(self, assignment_id: str) -> list[Document]: ...

    def subscribe_to_course_changes(
        self,
        teacher_id: str,
        on_change: ChangeListener,
    ) -> Unsubscribe:
        """Register a listener for changes to a teacher's course set.

        Returns:
            Callable that removes the listener.
        """
        ...
