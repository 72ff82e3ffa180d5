"""Weighted course progress and the completion ratchet.

overall = round(video% * 0.70 + quiz% * 0.30)

The 70/30 split is a fixed policy. Both ratios are clamped to 100% so a
stale denominator (content removed after enrollment) cannot push the
overall percentage past 100.
"""

from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal

from edupath.utils.rounding import ratio_percent, round_half_up

from .models import Enrollment, EnrollmentStatus, ProgressSnapshot, QuizAttempt


VIDEO_WEIGHT = Decimal("0.70")
QUIZ_WEIGHT = Decimal("0.30")

_HUNDRED = Decimal(100)


def best_attempt(attempts: Iterable[QuizAttempt]) -> QuizAttempt | None:
    """Highest score wins; ties go to the earliest completion."""
    best: QuizAttempt | None = None
    for attempt in attempts:
        if (
            best is None
            or attempt.score > best.score
            or (attempt.score == best.score and attempt.completed_at < best.completed_at)
        ):
            best = attempt
    return best


def has_passed(attempts: Iterable[QuizAttempt]) -> bool:
    """True once any attempt passed; a later failure never revokes it."""
    return any(attempt.passed for attempt in attempts)


def quizzes_passed(attempts: Iterable[QuizAttempt]) -> int:
    """Distinct quizzes with at least one passing attempt, from the full history.

    Pass state is read per attempt, not from the best attempt: points and
    thresholds can change between attempts, so a higher raw score may
    still be a failure.
    """
    return len({attempt.quiz_id for attempt in attempts if attempt.passed})


def overall_percentage(
    videos_completed: int,
    total_videos: int,
    passed: int,
    total_quizzes: int,
) -> int:
    """Weighted percentage; 0 when the course has no content at all."""
    video_pct = min(ratio_percent(videos_completed, total_videos), _HUNDRED)
    quiz_pct = min(ratio_percent(passed, total_quizzes), _HUNDRED)
    return round_half_up(video_pct * VIDEO_WEIGHT + quiz_pct * QUIZ_WEIGHT)


def recompute(enrollment: Enrollment) -> ProgressSnapshot:
    """Derive the progress cache from video records and attempt history.

    Denominators come from the snapshot stored on the enrollment.
    """
    completed = sum(1 for v in enrollment.video_progress if v.is_completed)
    passed = quizzes_passed(enrollment.quiz_attempts)
    totals = enrollment.progress

    return ProgressSnapshot(
        videos_completed=completed,
        total_videos=totals.total_videos,
        quizzes_passed=passed,
        total_quizzes=totals.total_quizzes,
        overall_percentage=overall_percentage(
            completed, totals.total_videos, passed, totals.total_quizzes
        ),
    )


def apply_completion_ratchet(
    enrollment: Enrollment, now: datetime | None = None
) -> Enrollment:
    """active -> completed at 100%; never reverses, stamps completed_at once."""
    if (
        enrollment.status != EnrollmentStatus.ACTIVE
        or enrollment.progress.overall_percentage < 100
    ):
        return enrollment
    return replace(
        enrollment,
        status=EnrollmentStatus.COMPLETED,
        completed_at=enrollment.completed_at or now or datetime.now(UTC),
    )


def refresh(enrollment: Enrollment, now: datetime | None = None) -> Enrollment:
    """Recompute the progress cache, then run the completion ratchet."""
    updated = replace(enrollment, progress=recompute(enrollment))
    return apply_completion_ratchet(updated, now)
