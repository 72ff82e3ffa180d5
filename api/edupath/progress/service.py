"""Enrollment progress store.

Business logic for:
- Enrollment lifecycle (enroll, unenroll, pause, resume)
- Video progress updates with one-way completion
- Quiz attempt recording with commit-time eligibility
- Progress recomputation and the completion ratchet
- Per-learner progress summary

Every update is a read, a pure transition and a conditional write keyed
on the enrollment version. A lost race re-reads and re-applies the
transition, up to ``max_write_retries`` times.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import UUID

import structlog

from edupath.quizzes.models import Quiz, SubmittedAnswer
from edupath.quizzes.scoring import ScoreResult

from . import mutations
from .catalog import CourseCatalog
from .errors import (
    AlreadyEnrolledError,
    AttemptLimitExceededError,
    ConcurrencyConflictError,
    InvalidStatusTransitionError,
    NotEnrolledError,
    ProgressError,
)
from .models import Enrollment, EnrollmentStatus
from .mutations import AttemptOutcome
from .repository import EnrollmentRepository


logger = structlog.get_logger(__name__)

DEFAULT_MAX_WRITE_RETRIES = 5

__all__ = [
    "AlreadyEnrolledError",
    "AttemptLimitExceededError",
    "ConcurrencyConflictError",
    "EnrollmentProgressStore",
    "LearnerSummary",
    "NotEnrolledError",
    "ProgressError",
]


@dataclass(frozen=True)
class LearnerSummary:
    """Progress totals across all enrollments of one learner."""

    total_courses: int = 0
    completed_courses: int = 0
    videos_completed: int = 0
    quizzes_passed: int = 0
    total_watch_time: float = 0
    last_accessed_course_id: UUID | None = None


# ==============================================================================
# Enrollment Progress Store
# ==============================================================================


class EnrollmentProgressStore:
    """Applies progress events to enrollments atomically per (learner, course)."""

    def __init__(
        self,
        repository: EnrollmentRepository,
        catalog: CourseCatalog,
        max_write_retries: int = DEFAULT_MAX_WRITE_RETRIES,
        clock: Callable[[], datetime] | None = None,
    ):
        if max_write_retries < 1:
            raise ValueError("max_write_retries must be >= 1")
        self.repository = repository
        self.catalog = catalog
        self.max_write_retries = max_write_retries
        self._clock = clock or (lambda: datetime.now(UTC))

    async def _update(
        self,
        learner_id: UUID,
        course_id: UUID,
        transition: Callable[[Enrollment], Enrollment],
    ) -> tuple[Enrollment, Enrollment]:
        """Read, transform and conditionally write one enrollment.

        Returns:
            (enrollment as read, enrollment as saved)

        Raises:
            NotEnrolledError: No enrollment for the key
            ConcurrencyConflictError: Every conditional write lost a race
        """
        for attempt in range(1, self.max_write_retries + 1):
            current = await self.repository.get(learner_id, course_id)
            if current is None:
                raise NotEnrolledError

            updated = replace(transition(current), version=current.version + 1)
            if await self.repository.save(updated, expected_version=current.version):
                if not current.is_completed and updated.is_completed:
                    logger.info(
                        "enrollment_completed",
                        user_id=str(learner_id),
                        course_id=str(course_id),
                        overall_percentage=updated.progress.overall_percentage,
                    )
                return current, updated

            logger.warning(
                "enrollment_write_conflict",
                user_id=str(learner_id),
                course_id=str(course_id),
                attempt=attempt,
                max_attempts=self.max_write_retries,
            )

        raise ConcurrencyConflictError

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        """Enroll a learner, snapshotting the course's published content totals.

        Raises:
            AlreadyEnrolledError: If the learner is already enrolled
        """
        total_videos = await self.catalog.count_videos(course_id)
        total_quizzes = await self.catalog.count_quizzes(course_id)

        enrollment = mutations.open_enrollment(
            learner_id, course_id, total_videos, total_quizzes, self._clock()
        )
        if not await self.repository.create(enrollment):
            raise AlreadyEnrolledError

        logger.info(
            "learner_enrolled",
            user_id=str(learner_id),
            course_id=str(course_id),
            total_videos=total_videos,
            total_quizzes=total_quizzes,
        )
        return enrollment

    async def find_enrollment(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        return await self.repository.get(learner_id, course_id)

    async def get_enrollment(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        """Get an enrollment or raise NotEnrolledError."""
        enrollment = await self.repository.get(learner_id, course_id)
        if enrollment is None:
            raise NotEnrolledError
        return enrollment

    async def require_tracking(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        """Get an enrollment that currently accepts progress events."""
        enrollment = await self.get_enrollment(learner_id, course_id)
        if not enrollment.accepts_progress:
            raise NotEnrolledError(
                f"Enrollment is {enrollment.status.value}, progress is not tracked"
            )
        return enrollment

    async def list_enrollments(self, learner_id: UUID) -> list[Enrollment]:
        return await self.repository.list_for_learner(learner_id)

    async def unenroll(self, learner_id: UUID, course_id: UUID) -> None:
        """Drop an active or paused enrollment by deleting it.

        The delete is conditional on the version that passed the status
        check, so an update landing in between forces a re-read.

        Raises:
            NotEnrolledError: No enrollment for the key
            InvalidStatusTransitionError: The enrollment is completed
            ConcurrencyConflictError: Every conditional delete lost a race
        """
        for attempt in range(1, self.max_write_retries + 1):
            enrollment = await self.get_enrollment(learner_id, course_id)
            if enrollment.is_completed:
                raise InvalidStatusTransitionError("A completed enrollment cannot be dropped")

            if await self.repository.delete(
                learner_id, course_id, expected_version=enrollment.version
            ):
                logger.info(
                    "learner_unenrolled", user_id=str(learner_id), course_id=str(course_id)
                )
                return

            logger.warning(
                "enrollment_write_conflict",
                user_id=str(learner_id),
                course_id=str(course_id),
                attempt=attempt,
                max_attempts=self.max_write_retries,
            )

        raise ConcurrencyConflictError

    async def pause(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        _, saved = await self._update(
            learner_id, course_id, lambda e: mutations.pause(e, self._clock())
        )
        logger.info("enrollment_paused", user_id=str(learner_id), course_id=str(course_id))
        return saved

    async def resume(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        _, saved = await self._update(
            learner_id, course_id, lambda e: mutations.resume(e, self._clock())
        )
        logger.info(
            "enrollment_resumed",
            user_id=str(learner_id),
            course_id=str(course_id),
            status=saved.status.value,
        )
        return saved

    async def recount_totals(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        """Re-read content totals from the catalog and recompute progress.

        This is the only path that changes the snapshotted denominators.
        """
        total_videos = await self.catalog.count_videos(course_id)
        total_quizzes = await self.catalog.count_quizzes(course_id)

        before, saved = await self._update(
            learner_id,
            course_id,
            lambda e: mutations.with_totals(e, total_videos, total_quizzes, self._clock()),
        )
        logger.info(
            "enrollment_totals_recounted",
            user_id=str(learner_id),
            course_id=str(course_id),
            total_videos=total_videos,
            total_quizzes=total_quizzes,
            previous_percentage=before.progress.overall_percentage,
            overall_percentage=saved.progress.overall_percentage,
        )
        return saved

    async def mark_certificate_issued(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        _, saved = await self._update(learner_id, course_id, mutations.mark_certificate_issued)
        return saved

    # ==========================================================================
    # Progress Events
    # ==========================================================================

    async def apply_video_progress(
        self,
        learner_id: UUID,
        course_id: UUID,
        video_id: UUID,
        watched_duration: float,
        is_completed: bool = False,
    ) -> Enrollment:
        """Apply a video watch ping.

        Raises:
            NotEnrolledError: Not enrolled, or enrollment paused
            InvalidProgressValueError: Negative watched_duration
            ConcurrencyConflictError: Retries exhausted
        """
        before, saved = await self._update(
            learner_id,
            course_id,
            lambda e: mutations.apply_video_progress(
                e, video_id, watched_duration, is_completed, self._clock()
            ),
        )

        previous = before.video_record(video_id)
        record = saved.video_record(video_id)
        logger.info(
            "video_progress_applied",
            user_id=str(learner_id),
            course_id=str(course_id),
            video_id=str(video_id),
            watched_duration=record.watched_duration if record else watched_duration,
            video_completed=bool(
                record and record.is_completed and not (previous and previous.is_completed)
            ),
            overall_percentage=saved.progress.overall_percentage,
        )
        return saved

    async def apply_quiz_result(
        self,
        learner_id: UUID,
        course_id: UUID,
        quiz: Quiz,
        result: ScoreResult,
        answers: Iterable[SubmittedAnswer] = (),
        time_spent: int = 0,
        started_at: datetime | None = None,
    ) -> AttemptOutcome:
        """Append a scored attempt and recompute progress.

        The attempt number is assigned inside the conditional write, so
        concurrent submissions never share one; the attempt limit is
        re-checked against the history being replaced.

        Raises:
            NotEnrolledError: Not enrolled, or enrollment paused
            AttemptLimitExceededError: No attempts left at commit time
            ConcurrencyConflictError: Retries exhausted
        """
        answers = tuple(answers)
        outcomes: list[AttemptOutcome] = []

        def transition(enrollment: Enrollment) -> Enrollment:
            outcome = mutations.append_quiz_attempt(
                enrollment,
                quiz,
                result,
                answers=answers,
                time_spent=time_spent,
                started_at=started_at,
                now=self._clock(),
            )
            outcomes.append(outcome)
            return outcome.enrollment

        try:
            _, saved = await self._update(learner_id, course_id, transition)
        except AttemptLimitExceededError:
            logger.info(
                "attempt_limit_exceeded",
                user_id=str(learner_id),
                course_id=str(course_id),
                quiz_id=str(quiz.id),
                max_attempts=quiz.max_attempts,
            )
            raise

        outcome = replace(outcomes[-1], enrollment=saved)
        logger.info(
            "quiz_attempt_recorded",
            user_id=str(learner_id),
            course_id=str(course_id),
            quiz_id=str(quiz.id),
            attempt_number=outcome.attempt.attempt_number,
            percentage=outcome.attempt.percentage,
            passed=outcome.attempt.passed,
            first_pass=outcome.first_pass,
            quizzes_passed=saved.progress.quizzes_passed,
            overall_percentage=saved.progress.overall_percentage,
        )
        return outcome

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_learner_summary(self, learner_id: UUID) -> LearnerSummary:
        """Totals across every enrollment of the learner."""
        enrollments = await self.repository.list_for_learner(learner_id)
        if not enrollments:
            return LearnerSummary()

        last = max(
            enrollments,
            key=lambda e: e.last_accessed_at or e.enrolled_at,
        )
        return LearnerSummary(
            total_courses=len(enrollments),
            completed_courses=sum(
                1 for e in enrollments if e.status == EnrollmentStatus.COMPLETED
            ),
            videos_completed=sum(e.progress.videos_completed for e in enrollments),
            quizzes_passed=sum(e.progress.quizzes_passed for e in enrollments),
            total_watch_time=sum(e.total_watch_time for e in enrollments),
            last_accessed_course_id=last.course_id,
        )
