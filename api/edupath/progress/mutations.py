"""Pure enrollment transitions.

Each function takes an Enrollment snapshot and returns a new one; nothing
here touches storage. The store persists the result with a conditional
write, so a raised error leaves the stored aggregate untouched.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import UUID

from edupath.quizzes.eligibility import can_attempt
from edupath.quizzes.models import Quiz, SubmittedAnswer
from edupath.quizzes.scoring import ScoreResult

from .accumulator import has_passed, refresh
from .errors import (
    AttemptLimitExceededError,
    InvalidProgressValueError,
    InvalidStatusTransitionError,
    NotEnrolledError,
)
from .models import (
    Enrollment,
    EnrollmentStatus,
    ProgressSnapshot,
    QuizAttempt,
    VideoProgressRecord,
)


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of appending a quiz attempt."""

    enrollment: Enrollment
    attempt: QuizAttempt
    first_pass: bool


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def _require_tracking(enrollment: Enrollment) -> None:
    if not enrollment.accepts_progress:
        raise NotEnrolledError(
            f"Enrollment is {enrollment.status.value}, progress is not tracked"
        )


def open_enrollment(
    learner_id: UUID,
    course_id: UUID,
    total_videos: int,
    total_quizzes: int,
    now: datetime | None = None,
) -> Enrollment:
    """New active enrollment with snapshotted content totals."""
    ts = _now(now)
    return Enrollment(
        learner_id=learner_id,
        course_id=course_id,
        status=EnrollmentStatus.ACTIVE,
        progress=ProgressSnapshot(total_videos=total_videos, total_quizzes=total_quizzes),
        enrolled_at=ts,
        last_accessed_at=ts,
    )


def apply_video_progress(
    enrollment: Enrollment,
    video_id: UUID,
    watched_duration: float,
    is_completed: bool = False,
    now: datetime | None = None,
) -> Enrollment:
    """Record a watch ping for one video.

    watched_duration only ever grows (max of old and new) and completion
    is one-way. Total watch time grows by the increase in watched_duration,
    so a replayed or duplicate ping adds nothing.
    """
    _require_tracking(enrollment)
    if not math.isfinite(watched_duration) or watched_duration < 0:
        raise InvalidProgressValueError(
            f"watched_duration must be a non-negative number (got {watched_duration})"
        )

    ts = _now(now)
    current = enrollment.video_record(video_id) or VideoProgressRecord(video_id=video_id)

    new_watched = max(current.watched_duration, watched_duration)
    completing = is_completed and not current.is_completed
    record = replace(
        current,
        watched_duration=new_watched,
        is_completed=current.is_completed or is_completed,
        completed_at=ts if completing else current.completed_at,
        last_watched_at=ts,
    )

    if enrollment.video_record(video_id) is None:
        records = (*enrollment.video_progress, record)
    else:
        records = tuple(
            record if v.video_id == video_id else v for v in enrollment.video_progress
        )

    updated = replace(
        enrollment,
        video_progress=records,
        total_watch_time=enrollment.total_watch_time
        + (new_watched - current.watched_duration),
        last_accessed_at=ts,
    )
    return refresh(updated, ts)


def append_quiz_attempt(
    enrollment: Enrollment,
    quiz: Quiz,
    result: ScoreResult,
    answers: Iterable[SubmittedAnswer] = (),
    time_spent: int = 0,
    started_at: datetime | None = None,
    now: datetime | None = None,
) -> AttemptOutcome:
    """Append a scored attempt, numbering it after the existing ones.

    Eligibility is checked against the history in this snapshot, which is
    the one the conditional write will replace.

    Raises:
        AttemptLimitExceededError: The quiz's attempt limit is reached.
    """
    _require_tracking(enrollment)
    if time_spent < 0:
        raise InvalidProgressValueError(f"time_spent must be >= 0 (got {time_spent})")

    prior = enrollment.attempts_for(quiz.id)
    if not can_attempt(prior, quiz.max_attempts):
        raise AttemptLimitExceededError

    ts = _now(now)
    passed = result.passed(quiz.passing_score)
    attempt = QuizAttempt(
        quiz_id=quiz.id,
        learner_id=enrollment.learner_id,
        attempt_number=len(prior) + 1,
        score=result.total_score,
        max_score=result.max_score,
        percentage=result.percentage,
        passed=passed,
        time_spent=time_spent,
        completed_at=ts,
        started_at=started_at,
        answers=tuple(answers),
    )

    updated = replace(
        enrollment,
        quiz_attempts=(*enrollment.quiz_attempts, attempt),
        last_accessed_at=ts,
    )
    return AttemptOutcome(
        enrollment=refresh(updated, ts),
        attempt=attempt,
        first_pass=passed and not has_passed(prior),
    )


def pause(enrollment: Enrollment, now: datetime | None = None) -> Enrollment:
    if enrollment.status != EnrollmentStatus.ACTIVE:
        raise InvalidStatusTransitionError(
            f"Cannot pause an enrollment that is {enrollment.status.value}"
        )
    return replace(
        enrollment, status=EnrollmentStatus.PAUSED, last_accessed_at=_now(now)
    )


def resume(enrollment: Enrollment, now: datetime | None = None) -> Enrollment:
    """paused -> active, then recompute so the completion ratchet can fire."""
    if enrollment.status != EnrollmentStatus.PAUSED:
        raise InvalidStatusTransitionError(
            f"Cannot resume an enrollment that is {enrollment.status.value}"
        )
    ts = _now(now)
    return refresh(
        replace(enrollment, status=EnrollmentStatus.ACTIVE, last_accessed_at=ts), ts
    )


def with_totals(
    enrollment: Enrollment,
    total_videos: int,
    total_quizzes: int,
    now: datetime | None = None,
) -> Enrollment:
    """Replace the snapshotted content totals and recompute."""
    if total_videos < 0 or total_quizzes < 0:
        raise InvalidProgressValueError("content totals must be >= 0")
    progress = replace(
        enrollment.progress, total_videos=total_videos, total_quizzes=total_quizzes
    )
    return refresh(replace(enrollment, progress=progress), now)


def mark_certificate_issued(enrollment: Enrollment) -> Enrollment:
    if enrollment.status != EnrollmentStatus.COMPLETED:
        raise InvalidStatusTransitionError(
            "A certificate can only be issued for a completed enrollment"
        )
    return replace(enrollment, certificate_issued=True)
