# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoring engine.

Pure, stateless functions computing the indicators of one unit of work:
a student's filtered assignments A and their course submissions S.

    completion_rate  = |distinct ids of A submitted in S| / |A|   (0 if A empty)
    average_score    = mean grade of graded S                      (0 if none)
    engagement_score = clamp(completion_rate * 40
                             + average_score * 0.4
                             + min(|S| / max(|A|, 1), 1) * 20, 0, 100)

All thresholds used by the rule table, the needs-attention predicate and
the coarse labels are module constants.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from coursepulse.domains.reporting.records import Assignment, Course, Student, Submission
from coursepulse.domains.reporting.views import RecentSubmission, StudentProgress, StudentSummary

# Engagement weights
COMPLETION_WEIGHT = 40.0
SCORE_WEIGHT = 0.4
VOLUME_WEIGHT = 20.0
ENGAGEMENT_MIN = 0.0
ENGAGEMENT_MAX = 100.0

# Rule table
CONSISTENT_COMPLETION_ABOVE = 0.8
HIGH_PERFORMANCE_ABOVE = 85.0
STRONG_ENGAGEMENT_ABOVE = 75.0
LOW_COMPLETION_BELOW = 0.7
LOW_PERFORMANCE_BELOW = 70.0
LOW_ENGAGEMENT_BELOW = 60.0

STRENGTH_COMPLETION = "Consistent completion"
STRENGTH_PERFORMANCE = "High performance"
STRENGTH_ENGAGEMENT = "Strong engagement"
IMPROVE_COMPLETION = "Assignment completion"
IMPROVE_PERFORMANCE = "Academic performance"
IMPROVE_ENGAGEMENT = "Class engagement"

# Needs attention
ATTENTION_SCORE_BELOW = 70.0
ATTENTION_COMPLETION_BELOW = 0.7

# Engagement level: <= 60 Low, <= 80 Medium, above High
ENGAGEMENT_MEDIUM_ABOVE = 60.0
ENGAGEMENT_HIGH_ABOVE = 80.0

# Assignment difficulty
EASY_GRADE_FROM = 80.0
MEDIUM_GRADE_FROM = 60.0
EASY_COMPLETION_FROM = 0.8
MEDIUM_COMPLETION_FROM = 0.5

UNKNOWN_ASSIGNMENT_TITLE = "Unknown Assignment"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def count_completed(assignments: Iterable[Assignment], submissions: Iterable[Submission]) -> int:
    """Count assignments that have at least one submission."""
    assignment_ids = {a.id for a in assignments}
    return len({s.assignment_id for s in submissions if s.assignment_id in assignment_ids})


def completion_rate(assignments: Sequence[Assignment], submissions: Iterable[Submission]) -> float:
    if not assignments:
        return 0.0
    return count_completed(assignments, submissions) / len(assignments)


def average_score(submissions: Iterable[Submission]) -> float:
    """Mean grade over graded submissions only."""
    return mean([s.grade for s in submissions if s.grade is not None])


def engagement_score(
    completion: float,
    score: float,
    submission_count: int,
    assignment_count: int,
) -> float:
    volume = min(submission_count / max(assignment_count, 1), 1.0)
    raw = completion * COMPLETION_WEIGHT + score * SCORE_WEIGHT + volume * VOLUME_WEIGHT
    return clamp(raw, ENGAGEMENT_MIN, ENGAGEMENT_MAX)


def strengths(completion: float, score: float, engagement: float) -> list[str]:
    found = []
    if completion > CONSISTENT_COMPLETION_ABOVE:
        found.append(STRENGTH_COMPLETION)
    if score > HIGH_PERFORMANCE_ABOVE:
        found.append(STRENGTH_PERFORMANCE)
    if engagement > STRONG_ENGAGEMENT_ABOVE:
        found.append(STRENGTH_ENGAGEMENT)
    return found


def areas_for_improvement(completion: float, score: float, engagement: float) -> list[str]:
    found = []
    if completion < LOW_COMPLETION_BELOW:
        found.append(IMPROVE_COMPLETION)
    if score < LOW_PERFORMANCE_BELOW:
        found.append(IMPROVE_PERFORMANCE)
    if engagement < LOW_ENGAGEMENT_BELOW:
        found.append(IMPROVE_ENGAGEMENT)
    return found


def _newest_first(submissions: Sequence[Submission]) -> list[Submission]:
    # Stable: equal instants keep input order; undated submissions go last.
    dated = [s for s in submissions if s.submitted_at is not None]
    undated = [s for s in submissions if s.submitted_at is None]
    dated.sort(key=lambda s: s.submitted_at, reverse=True)
    return dated + undated


def recent_submissions(
    submissions: Sequence[Submission],
    assignments: Iterable[Assignment],
    limit: int = 5,
) -> list[RecentSubmission]:
    """Newest submissions, each paired with its assignment title."""
    titles = {a.id: a.title for a in assignments}
    return [
        RecentSubmission(
            assignment_id=s.assignment_id,
            assignment_title=titles.get(s.assignment_id, UNKNOWN_ASSIGNMENT_TITLE),
            submitted_at=s.submitted_at,
            grade=s.grade,
            feedback=s.feedback,
            is_late=s.is_late,
        )
        for s in _newest_first(submissions)[:limit]
    ]


def last_activity(submissions: Iterable[Submission]) -> datetime | None:
    instants = [s.submitted_at for s in submissions if s.submitted_at is not None]
    return max(instants) if instants else None


def needs_attention_predicate(score: float, completion: float) -> bool:
    return score < ATTENTION_SCORE_BELOW or completion < ATTENTION_COMPLETION_BELOW


def needs_attention(progress: Iterable[StudentProgress], limit: int) -> list[StudentSummary]:
    """Students flagged for follow-up.

    Keeps the enumeration order of ``progress`` (no sorting by score) and
    truncates to ``limit``.
    """
    flagged = [
        summarize(p) for p in progress
        if needs_attention_predicate(p.average_score, p.completion_rate)
    ]
    return flagged[:limit]


def summarize(progress: StudentProgress) -> StudentSummary:
    return StudentSummary(
        student_id=progress.student_id,
        name=progress.student_name,
        grade=progress.average_score,
        completion_rate=progress.completion_rate,
    )


def engagement_level(score: float) -> str:
    if score > ENGAGEMENT_HIGH_ABOVE:
        return "High"
    if score > ENGAGEMENT_MEDIUM_ABOVE:
        return "Medium"
    return "Low"


def difficulty_label(average_grade: float | None, completion: float) -> str:
    """Coarse difficulty from the mean grade, or from completion when ungraded."""
    if average_grade is not None:
        if average_grade >= EASY_GRADE_FROM:
            return "Easy"
        if average_grade >= MEDIUM_GRADE_FROM:
            return "Medium"
        return "Hard"
    if completion >= EASY_COMPLETION_FROM:
        return "Easy"
    if completion >= MEDIUM_COMPLETION_FROM:
        return "Medium"
    return "Hard"


def score_student(
    student: Student,
    course: Course,
    assignments: Sequence[Assignment],
    submissions: Sequence[Submission],
    catalog: Iterable[Assignment] | None = None,
    recent_limit: int = 5,
) -> StudentProgress:
    """Compute the StudentProgress of one (student, course) unit.

    Args:
        student: The student.
        course: The course.
        assignments: Filtered assignments of the course.
        submissions: All of the student's submissions in the course.
        catalog: Assignments used to title recent submissions; defaults to
            ``assignments``.
        recent_limit: Number of recent submissions to keep.
    """
    completed = count_completed(assignments, submissions)
    completion = completed / len(assignments) if assignments else 0.0
    score = average_score(submissions)
    engagement = engagement_score(completion, score, len(submissions), len(assignments))

    return StudentProgress(
        student_id=student.id,
        student_name=student.name,
        student_email=student.email,
        course_id=course.id,
        course_name=course.name,
        completed_assignments=completed,
        total_assignments=len(assignments),
        completion_rate=completion,
        average_score=score,
        engagement_score=engagement,
        last_activity=last_activity(submissions),
        strengths=strengths(completion, score, engagement),
        areas_for_improvement=areas_for_improvement(completion, score, engagement),
        recent_submissions=recent_submissions(
            submissions,
            catalog if catalog is not None else assignments,
            recent_limit,
        ),
    )
