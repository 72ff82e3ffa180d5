"""Quiz delivery and submission service.

Business logic for:
- Serving a quiz for an attempt (answer keys stripped by the router schema)
- Scoring submissions against the stored answer keys
- Recording attempts through the enrollment progress store
- Per-learner quiz listings and results
"""

import random
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog

from edupath.progress.accumulator import best_attempt, has_passed
from edupath.progress.errors import AttemptLimitExceededError
from edupath.progress.models import QuizAttempt
from edupath.progress.service import EnrollmentProgressStore

from . import scoring
from .eligibility import attempts_left, can_attempt
from .models import Question, Quiz, SubmittedAnswer
from .provider import QuizContentProvider
from .scoring import ScoreResult
from .stats import QuizStats, calculate_stats


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class QuizError(Exception):
    """Base quiz error."""

    def __init__(self, message: str, code: str = "quiz_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class QuizNotFoundError(QuizError):
    """Quiz not found (or not published)."""

    def __init__(self, message: str = "Quiz not found"):
        super().__init__(message, "quiz_not_found")


class QuizValidationError(QuizError):
    """Malformed submission."""

    def __init__(self, message: str):
        super().__init__(message, "validation_error")


# ==============================================================================
# Results
# ==============================================================================


@dataclass(frozen=True)
class AttemptDelivery:
    """Quiz content served for a new attempt."""

    quiz: Quiz
    questions: tuple[Question, ...]
    attempt_number: int
    attempts_left: int


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of one submission."""

    quiz: Quiz
    attempt: QuizAttempt
    score: ScoreResult
    can_retake: bool
    attempts_left: int
    first_pass: bool

    @property
    def show_feedback(self) -> bool:
        return self.quiz.show_correct_answers


@dataclass(frozen=True)
class QuizResults:
    """A learner's attempt history for one quiz."""

    quiz: Quiz
    attempts: list[QuizAttempt]
    best_attempt: QuizAttempt | None
    can_retake: bool
    attempts_left: int
    stats: QuizStats


@dataclass(frozen=True)
class QuizListing:
    """One quiz of a course with the learner's standing on it."""

    quiz: Quiz
    attempts_count: int
    best_attempt: QuizAttempt | None
    passed: bool
    can_attempt: bool
    last_attempt_at: datetime | None


# ==============================================================================
# Quiz Service
# ==============================================================================


class QuizService:
    """Service for quiz delivery and attempt submission."""

    def __init__(
        self,
        provider: QuizContentProvider,
        store: EnrollmentProgressStore,
        rng: random.Random | None = None,
    ):
        self.provider = provider
        self.store = store
        self._random = rng or random.Random()

    async def _get_published_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.provider.get_quiz(quiz_id)
        if quiz is None or not quiz.is_published:
            raise QuizNotFoundError
        return quiz

    def _ordered_questions(self, quiz: Quiz) -> tuple[Question, ...]:
        questions = sorted(quiz.questions, key=lambda q: q.order)
        if quiz.randomize_questions:
            self._random.shuffle(questions)
        return tuple(questions)

    # ==========================================================================
    # Delivery
    # ==========================================================================

    async def get_quiz_for_attempt(self, learner_id: UUID, quiz_id: UUID) -> AttemptDelivery:
        """Serve a quiz for a new attempt.

        Raises:
            QuizNotFoundError: Unknown or unpublished quiz
            NotEnrolledError: Learner not tracking progress in the quiz's course
            AttemptLimitExceededError: No attempts left
        """
        quiz = await self._get_published_quiz(quiz_id)
        enrollment = await self.store.require_tracking(learner_id, quiz.course_id)

        prior = enrollment.attempts_for(quiz.id)
        if not can_attempt(prior, quiz.max_attempts):
            logger.info(
                "attempt_limit_exceeded",
                user_id=str(learner_id),
                quiz_id=str(quiz.id),
                max_attempts=quiz.max_attempts,
                stage="delivery",
            )
            raise AttemptLimitExceededError

        return AttemptDelivery(
            quiz=quiz,
            questions=self._ordered_questions(quiz),
            attempt_number=len(prior) + 1,
            attempts_left=attempts_left(prior, quiz.max_attempts),
        )

    # ==========================================================================
    # Submission
    # ==========================================================================

    async def submit_attempt(
        self,
        learner_id: UUID,
        quiz_id: UUID,
        answers: list[SubmittedAnswer],
        time_spent: int = 0,
        started_at: datetime | None = None,
    ) -> SubmissionResult:
        """Score a submission and record it as the learner's next attempt.

        The quiz is re-read here, so the score reflects the question set
        (and points) current at submission time.

        Raises:
            QuizNotFoundError: Unknown or unpublished quiz
            QuizValidationError: Duplicate answers or negative time_spent
            NotEnrolledError: Learner not tracking progress in the quiz's course
            AttemptLimitExceededError: No attempts left at commit time
        """
        quiz = await self._get_published_quiz(quiz_id)

        if time_spent < 0:
            raise QuizValidationError("time_spent must be >= 0")
        answer_map: dict[str, SubmittedAnswer] = {}
        for answer in answers:
            if answer.question_id in answer_map:
                raise QuizValidationError(
                    f"Duplicate answer for question {answer.question_id!r}"
                )
            answer_map[answer.question_id] = answer

        result = scoring.score(quiz.questions, answer_map)
        outcome = await self.store.apply_quiz_result(
            learner_id,
            quiz.course_id,
            quiz,
            result,
            answers=answers,
            time_spent=time_spent,
            started_at=started_at,
        )

        history = outcome.enrollment.attempts_for(quiz.id)
        return SubmissionResult(
            quiz=quiz,
            attempt=outcome.attempt,
            score=result,
            can_retake=can_attempt(history, quiz.max_attempts),
            attempts_left=attempts_left(history, quiz.max_attempts),
            first_pass=outcome.first_pass,
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_results(self, learner_id: UUID, quiz_id: UUID) -> QuizResults:
        """Learner's attempts for one quiz, newest first."""
        quiz = await self._get_published_quiz(quiz_id)
        enrollment = await self.store.get_enrollment(learner_id, quiz.course_id)

        history = enrollment.attempts_for(quiz.id)
        return QuizResults(
            quiz=quiz,
            attempts=sorted(history, key=lambda a: a.attempt_number, reverse=True),
            best_attempt=best_attempt(history),
            can_retake=can_attempt(history, quiz.max_attempts),
            attempts_left=attempts_left(history, quiz.max_attempts),
            stats=calculate_stats(history),
        )

    async def list_course_quizzes(self, learner_id: UUID, course_id: UUID) -> list[QuizListing]:
        """Published quizzes of a course with the learner's standing on each."""
        quizzes = await self.provider.list_course_quizzes(course_id, published_only=True)
        enrollment = await self.store.find_enrollment(learner_id, course_id)

        listings = []
        for quiz in quizzes:
            history = enrollment.attempts_for(quiz.id) if enrollment else []
            listings.append(
                QuizListing(
                    quiz=quiz,
                    attempts_count=len(history),
                    best_attempt=best_attempt(history),
                    passed=has_passed(history),
                    can_attempt=can_attempt(history, quiz.max_attempts),
                    last_attempt_at=max((a.completed_at for a in history), default=None),
                )
            )
        return listings
