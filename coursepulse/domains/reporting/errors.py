# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reporting errors and diagnostics.

Recoverable problems met while building a report (a failed sub-fetch, a
malformed record) do not abort the report. They are turned into
Diagnostic entries returned next to the partial result.
"""

from dataclasses import dataclass
from typing import Any

from coursepulse.infrastructure.store import StoreError


class ReportingError(Exception):
    """Base exception for reporting errors."""

    pass


class ComputationError(ReportingError):
    """Raised when a record cannot be used in a computation.

    Attributes:
        record_type: Kind of record (assignment, submission, ...).
        record_id: Identifier of the offending record, when known.
    """

    def __init__(
        self,
        message: str,
        record_type: str | None = None,
        record_id: str | None = None,
    ) -> None:
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(message)


class ConfigurationError(ReportingError):
    """Raised when report filters are invalid."""

    pass


class ReportCancelledError(ReportingError):
    """Raised when a report request was cancelled by its caller."""

    pass


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable problem recorded while computing a report.

    Attributes:
        kind: "store_error" or "computation_error".
        message: Human-readable description.
        course_id: Course the problem was scoped to.
        student_id: Student the problem was scoped to.
        assignment_id: Assignment the problem was scoped to.
        record_id: Offending record, for computation errors.
    """

    kind: str
    message: str
    course_id: str | None = None
    student_id: str | None = None
    assignment_id: str | None = None
    record_id: str | None = None

    @classmethod
    def from_store_error(
        cls,
        error: StoreError,
        course_id: str | None = None,
        student_id: str | None = None,
        assignment_id: str | None = None,
    ) -> "Diagnostic":
        """Build a diagnostic for a failed sub-fetch."""
        return cls(
            kind="store_error",
            message=str(error),
            course_id=course_id,
            student_id=student_id,
            assignment_id=assignment_id,
        )

    @classmethod
    def from_computation_error(
        cls,
        error: ComputationError,
        course_id: str | None = None,
    ) -> "Diagnostic":
        """Build a diagnostic for an excluded record."""
        return cls(
            kind="computation_error",
            message=str(error),
            course_id=course_id,
            record_id=error.record_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "message": self.message,
            "course_id": self.course_id,
            "student_id": self.student_id,
            "assignment_id": self.assignment_id,
            "record_id": self.record_id,
        }
