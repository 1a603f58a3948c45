# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report aggregation service.

The ReportService fans out over a teacher's courses, their students and
their lessons, runs the scoring engine per unit of work and folds the
unit results into the four report views.

Fan-out model:
- Sibling reads run concurrently with asyncio.gather, bounded by a
  per-request semaphore held only around individual store reads.
- gather returns results in submission order, so units are always folded
  in enumeration order and tie-breaks are deterministic.
- A failed sub-fetch omits its unit and records a diagnostic; only a
  failed course listing aborts the report.
- A CancellationToken is checked before every read, so an abandoned
  request stops issuing reads without touching results already folded.

Usage:
    from coursepulse.domains.reporting import ReportFilters, ReportService

    service = ReportService.for_store(store)
    result = await service.get_student_progress_report("t-1", ReportFilters())
    for progress in result.items:
        print(progress.student_name, progress.engagement_score)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from coursepulse.core.config import Settings, get_settings
from coursepulse.domains.reporting import scoring
from coursepulse.domains.reporting.adapter import RecordStoreAdapter
from coursepulse.domains.reporting.errors import Diagnostic, ReportCancelledError
from coursepulse.domains.reporting.filters import (
    ReportFilters,
    filter_assignments,
    filter_courses,
    filter_students,
    resolve_assignment,
    resolve_records,
    resolve_submission,
)
from coursepulse.domains.reporting.records import Assignment, Course, Student, Submission
from coursepulse.domains.reporting.views import (
    AssignmentStats,
    CourseProgress,
    LessonResponse,
    ReportResult,
    ReportSummary,
    StudentLessonResponse,
    StudentProgress,
)
from coursepulse.infrastructure.store import RecordStore, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOT_AVAILABLE = "N/A"


class CancellationToken:
    """Cooperative cancellation flag for one report request."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ReportCancelledError("report request was cancelled")


@dataclass
class _RequestContext:
    teacher_id: str
    filters: ReportFilters
    token: CancellationToken
    semaphore: asyncio.Semaphore

    async def read(self, call: Callable[[], Awaitable[T]]) -> T:
        self.token.raise_if_cancelled()
        async with self.semaphore:
            self.token.raise_if_cancelled()
            return await call()


@dataclass
class _StudentUnit:
    student: Student
    submissions: list[Submission]
    progress: StudentProgress


@dataclass
class _CourseBundle:
    """Everything gathered for one course during a request."""

    course: Course
    loaded: bool = False
    students: list[Student] = field(default_factory=list)
    catalog: list[Assignment] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    units: list[_StudentUnit] = field(default_factory=list)
    lessons: list[LessonResponse] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


async def _gather_in_order(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Run awaitables concurrently, returning results in submission order.

    Every awaitable is allowed to finish before the first failure is
    re-raised, so no sibling is left running unobserved.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def _argmax(items: Sequence[T], key: Callable[[T], float]) -> T | None:
    """First item with the strictly greatest key."""
    best: T | None = None
    for item in items:
        if best is None or key(item) > key(best):
            best = item
    return best


class ReportService:
    """Service computing teacher-level performance reports.

    Attributes:
        adapter: Record store adapter used for every read.
        settings: Application settings.
    """

    def __init__(self, adapter: RecordStoreAdapter, settings: Settings | None = None) -> None:
        """Initialize the report service.

        Args:
            adapter: Record store adapter.
            settings: Application settings; defaults to get_settings().
        """
        self.adapter = adapter
        self.settings = settings or get_settings()

    @classmethod
    def for_store(cls, store: RecordStore, settings: Settings | None = None) -> "ReportService":
        """Build a service over a raw record store."""
        settings = settings or get_settings()
        adapter = RecordStoreAdapter(store, timeout_seconds=settings.store.timeout_seconds)
        return cls(adapter, settings)

    # =========================================================================
    # Public reports
    # =========================================================================

    async def get_student_progress_report(
        self,
        teacher_id: str,
        filters: ReportFilters | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ReportResult[StudentProgress]:
        """Compute one StudentProgress per (student, course) unit.

        Args:
            teacher_id: Teacher whose courses are reported on.
            filters: Report filters.
            cancel_token: Token checked between units of work.

        Returns:
            Student progress records in course then roster order.

        Raises:
            ConfigurationError: If the filters are invalid.
            StoreError: If the teacher's course listing fails.
            ReportCancelledError: If the request was cancelled.
        """
        ctx = self._context(teacher_id, filters, cancel_token)
        bundles, diagnostics = await self._collect(ctx, score_students=True, collect_lessons=False)
        result = ReportResult(
            items=[unit.progress for b in bundles for unit in b.units],
            diagnostics=diagnostics,
        )
        logger.info(
            "Student progress report: teacher=%s, units=%d, diagnostics=%d",
            teacher_id,
            len(result.items),
            len(result.diagnostics),
        )
        return result

    async def get_course_progress_report(
        self,
        teacher_id: str,
        filters: ReportFilters | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ReportResult[CourseProgress]:
        """Compute one CourseProgress per course of the teacher.

        Raises:
            ConfigurationError: If the filters are invalid.
            StoreError: If the teacher's course listing fails.
            ReportCancelledError: If the request was cancelled.
        """
        ctx = self._context(teacher_id, filters, cancel_token)
        bundles, diagnostics = await self._collect(ctx, score_students=True, collect_lessons=False)
        result = ReportResult(
            items=[self._course_progress(b) for b in bundles if b.loaded],
            diagnostics=diagnostics,
        )
        logger.info(
            "Course progress report: teacher=%s, courses=%d, diagnostics=%d",
            teacher_id,
            len(result.items),
            len(result.diagnostics),
        )
        return result

    async def get_lesson_response_report(
        self,
        teacher_id: str,
        filters: ReportFilters | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ReportResult[LessonResponse]:
        """Compute one LessonResponse per lesson of the teacher's courses.

        Raises:
            ConfigurationError: If the filters are invalid.
            StoreError: If the teacher's course listing fails.
            ReportCancelledError: If the request was cancelled.
        """
        ctx = self._context(teacher_id, filters, cancel_token)
        bundles, diagnostics = await self._collect(ctx, score_students=False, collect_lessons=True)
        result = ReportResult(
            items=[lesson for b in bundles for lesson in b.lessons],
            diagnostics=diagnostics,
        )
        logger.info(
            "Lesson response report: teacher=%s, lessons=%d, diagnostics=%d",
            teacher_id,
            len(result.items),
            len(result.diagnostics),
        )
        return result

    async def get_report_summary(
        self,
        teacher_id: str,
        filters: ReportFilters | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ReportSummary:
        """Compose student, course and lesson reports into a summary.

        The course listing and every per-course read happen once and feed
        all three reports.

        Raises:
            ConfigurationError: If the filters are invalid.
            StoreError: If the teacher's course listing fails.
            ReportCancelledError: If the request was cancelled.
        """
        ctx = self._context(teacher_id, filters, cancel_token)
        bundles, diagnostics = await self._collect(ctx, score_students=True, collect_lessons=True)

        students = [unit.progress for b in bundles for unit in b.units]
        courses = [self._course_progress(b) for b in bundles if b.loaded]
        lessons = [lesson for b in bundles for lesson in b.lessons]

        top_course = _argmax(courses, lambda c: c.average_grade)
        most_engaged = _argmax(students, lambda s: s.engagement_score)

        summary = ReportSummary(
            total_students=len(students),
            average_grade=scoring.mean([s.average_score for s in students]),
            completion_rate=scoring.mean([s.completion_rate for s in students]),
            engagement_level=scoring.mean([s.engagement_score for s in students]),
            lesson_completion_rate=scoring.mean([lesson.completion_rate for lesson in lessons]),
            top_course=top_course.course_name if top_course else NOT_AVAILABLE,
            most_engaged_student=most_engaged.student_name if most_engaged else NOT_AVAILABLE,
            needs_attention=scoring.needs_attention(
                students,
                self.settings.reports.needs_attention_limit,
            ),
            diagnostics=diagnostics,
        )
        logger.info(
            "Report summary: teacher=%s, students=%d, courses=%d, lessons=%d",
            teacher_id,
            summary.total_students,
            len(courses),
            len(lessons),
        )
        return summary

    def subscribe_to_report_updates(
        self,
        teacher_id: str,
        filters: ReportFilters | None,
        callback: Callable[[ReportSummary], Any],
        on_error: Callable[[Exception], Any] | None = None,
        emit_initial: bool = True,
    ) -> "ReportSubscription":
        """Deliver a fresh summary to ``callback`` whenever courses change.

        Must be called from a running event loop.

        Returns:
            Started subscription; call ``unsubscribe()`` to stop it.

        Raises:
            ConfigurationError: If the filters are invalid.
        """
        from coursepulse.domains.reporting.live import ReportSubscription

        filters = filters or ReportFilters()
        filters.validate()
        subscription = ReportSubscription(
            service=self,
            teacher_id=teacher_id,
            filters=filters,
            callback=callback,
            on_error=on_error,
        )
        subscription.start(emit_initial=emit_initial)
        return subscription

    # =========================================================================
    # Collection
    # =========================================================================

    def _context(
        self,
        teacher_id: str,
        filters: ReportFilters | None,
        cancel_token: CancellationToken | None,
    ) -> _RequestContext:
        filters = filters or ReportFilters()
        filters.validate()
        return _RequestContext(
            teacher_id=teacher_id,
            filters=filters,
            token=cancel_token or CancellationToken(),
            semaphore=asyncio.Semaphore(self.settings.store.max_concurrency),
        )

    async def _collect(
        self,
        ctx: _RequestContext,
        score_students: bool,
        collect_lessons: bool,
    ) -> tuple[list[_CourseBundle], list[Diagnostic]]:
        listing_diagnostics: list[Diagnostic] = []
        courses = await ctx.read(
            lambda: self.adapter.list_courses_by_teacher(ctx.teacher_id, listing_diagnostics)
        )
        courses = filter_courses(courses, ctx.filters)

        bundles = await _gather_in_order(
            self._collect_course(ctx, course, score_students, collect_lessons)
            for course in courses
        )
        return bundles, listing_diagnostics + [d for b in bundles for d in b.diagnostics]

    async def _collect_course(
        self,
        ctx: _RequestContext,
        course: Course,
        score_students: bool,
        collect_lessons: bool,
    ) -> _CourseBundle:
        bundle = _CourseBundle(course=course)
        student_diagnostics: list[Diagnostic] = []
        assignment_diagnostics: list[Diagnostic] = []

        try:
            student_records, assignment_records = await _gather_in_order([
                ctx.read(lambda: self.adapter.list_students_by_course(course.id, student_diagnostics)),
                ctx.read(lambda: self.adapter.list_assignments_by_course(course.id, assignment_diagnostics)),
            ])
        except StoreError as e:
            logger.warning("Omitting course %s: %s", course.id, str(e))
            bundle.diagnostics.append(Diagnostic.from_store_error(e, course_id=course.id))
            return bundle

        bundle.diagnostics.extend(student_diagnostics)
        bundle.diagnostics.extend(assignment_diagnostics)
        bundle.students = filter_students(student_records, ctx.filters)
        bundle.catalog = resolve_records(
            assignment_records,
            resolve_assignment,
            bundle.diagnostics,
            course.id,
        )
        bundle.assignments = filter_assignments(bundle.catalog, ctx.filters)
        bundle.loaded = True

        lesson_type = self.settings.reports.lesson_type
        lessons = [a for a in bundle.assignments if a.assignment_type == lesson_type]

        outcomes = await _gather_in_order([
            *(self._score_student(ctx, bundle, s) for s in bundle.students if score_students),
            *(self._lesson_response(ctx, bundle, lesson) for lesson in lessons if collect_lessons),
        ])
        for value, diagnostics in outcomes:
            bundle.diagnostics.extend(diagnostics)
            if isinstance(value, _StudentUnit):
                bundle.units.append(value)
            elif isinstance(value, LessonResponse):
                bundle.lessons.append(value)
        return bundle

    async def _score_student(
        self,
        ctx: _RequestContext,
        bundle: _CourseBundle,
        student: Student,
    ) -> tuple[_StudentUnit | None, list[Diagnostic]]:
        diagnostics: list[Diagnostic] = []
        course = bundle.course
        try:
            records = await ctx.read(
                lambda: self.adapter.list_submissions(student.id, course.id, diagnostics)
            )
        except StoreError as e:
            logger.warning("Omitting student %s in course %s: %s", student.id, course.id, str(e))
            return None, [Diagnostic.from_store_error(e, course_id=course.id, student_id=student.id)]

        submissions = resolve_records(records, resolve_submission, diagnostics, course.id)
        progress = scoring.score_student(
            student,
            course,
            bundle.assignments,
            submissions,
            catalog=bundle.catalog,
            recent_limit=self.settings.reports.recent_submissions_limit,
        )
        return _StudentUnit(student=student, submissions=submissions, progress=progress), diagnostics

    async def _lesson_response(
        self,
        ctx: _RequestContext,
        bundle: _CourseBundle,
        lesson: Assignment,
    ) -> tuple[LessonResponse | None, list[Diagnostic]]:
        diagnostics: list[Diagnostic] = []
        course_id = bundle.course.id
        try:
            records = await ctx.read(
                lambda: self.adapter.list_submissions_by_assignment(lesson.id, diagnostics, course_id)
            )
        except StoreError as e:
            logger.warning("Omitting lesson %s in course %s: %s", lesson.id, course_id, str(e))
            return None, [Diagnostic.from_store_error(e, course_id=course_id, assignment_id=lesson.id)]

        submissions = resolve_records(records, resolve_submission, diagnostics, course_id)
        return self._join_lesson(lesson, course_id, bundle.students, submissions), diagnostics

    # =========================================================================
    # Folding
    # =========================================================================

    @staticmethod
    def _join_lesson(
        lesson: Assignment,
        course_id: str,
        students: Sequence[Student],
        submissions: Sequence[Submission],
    ) -> LessonResponse:
        """Join lesson submissions against every enrolled student."""
        first_response: dict[str, Submission] = {}
        for submission in submissions:
            first_response.setdefault(submission.student_id, submission)

        responses: list[StudentLessonResponse] = []
        for student in students:
            response = first_response.get(student.id)
            if response is None:
                responses.append(StudentLessonResponse(
                    student_id=student.id,
                    student_name=student.name,
                    completed=False,
                ))
                continue
            completion = scoring.completion_rate([lesson], [response])
            responses.append(StudentLessonResponse(
                student_id=student.id,
                student_name=student.name,
                completed=True,
                time_spent=response.time_spent,
                engagement_score=scoring.engagement_score(
                    completion,
                    scoring.average_score([response]),
                    submission_count=1,
                    assignment_count=1,
                ),
                questions_asked=response.questions_asked,
                feedback=response.feedback or None,
                difficulty_rating=response.difficulty_rating,
                completed_at=response.submitted_at,
            ))

        completed = [r for r in responses if r.completed]
        ratings = [r.difficulty_rating for r in completed if r.difficulty_rating is not None]
        return LessonResponse(
            lesson_id=lesson.id,
            lesson_title=lesson.title,
            course_id=course_id,
            completion_rate=len(completed) / len(responses) if responses else 0.0,
            average_engagement=scoring.mean([r.engagement_score for r in completed]),
            average_time_spent=scoring.mean([r.time_spent for r in completed]),
            difficulty_rating=scoring.mean(ratings) if ratings else None,
            student_responses=responses,
        )

    def _course_progress(self, bundle: _CourseBundle) -> CourseProgress:
        """Fold a course's scored units into its CourseProgress."""
        progress = [unit.progress for unit in bundle.units]
        average_engagement = scoring.mean([p.engagement_score for p in progress])

        assignment_stats = []
        for assignment in bundle.assignments:
            submitters = set()
            grades = []
            for unit in bundle.units:
                for submission in unit.submissions:
                    if submission.assignment_id != assignment.id:
                        continue
                    submitters.add(unit.student.id)
                    if submission.grade is not None:
                        grades.append(submission.grade)
            completion = len(submitters) / len(bundle.units) if bundle.units else 0.0
            average_grade = scoring.mean(grades) if grades else None
            assignment_stats.append(AssignmentStats(
                assignment_id=assignment.id,
                title=assignment.title,
                assignment_type=assignment.assignment_type,
                average_grade=average_grade,
                completion_rate=completion,
                submission_count=len(submitters),
                total_students=len(bundle.units),
                difficulty=scoring.difficulty_label(average_grade, completion),
            ))

        reports = self.settings.reports
        by_grade_desc = sorted(progress, key=lambda p: -p.average_score)
        by_grade_asc = sorted(progress, key=lambda p: p.average_score)

        return CourseProgress(
            course_id=bundle.course.id,
            course_name=bundle.course.name,
            total_students=len(bundle.students),
            active_students=sum(1 for s in bundle.students if s.is_active),
            average_grade=scoring.mean([p.average_score for p in progress]),
            completion_rate=scoring.mean([p.completion_rate for p in progress]),
            average_engagement=average_engagement,
            engagement_level=scoring.engagement_level(average_engagement),
            top_performers=[scoring.summarize(p) for p in by_grade_desc[:reports.top_performers_limit]],
            struggling_students=[
                scoring.summarize(p) for p in by_grade_asc[:reports.struggling_students_limit]
            ],
            assignment_stats=assignment_stats,
        )
