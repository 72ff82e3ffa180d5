"""Pydantic schemas for quizzes.

Request and response models for:
- Quiz delivery (questions without answer keys)
- Attempt submission and per-question feedback
- Attempt history and course quiz listings
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from edupath.progress.models import QuizAttempt

from .models import Question, QuestionType, SubmittedAnswer
from .scoring import QuestionResult
from .service import AttemptDelivery, QuizListing, QuizResults, SubmissionResult
from .stats import QuizStats


# ==============================================================================
# Delivery Schemas
# ==============================================================================


class QuestionOptionResponse(BaseModel):
    id: str
    text: str


class PublicQuestionResponse(BaseModel):
    """Question as shown to the learner: no answer key, no explanation."""

    id: str
    type: QuestionType
    text: str
    options: list[QuestionOptionResponse] = Field(default_factory=list)
    points: float

    @classmethod
    def from_entity(cls, question: Question) -> "PublicQuestionResponse":
        return cls(
            id=question.id,
            type=question.type,
            text=question.text,
            options=[QuestionOptionResponse(id=o.id, text=o.text) for o in question.options],
            points=question.points,
        )


class QuizForAttemptResponse(BaseModel):
    """Quiz served for a new attempt."""

    id: UUID
    course_id: UUID
    title: str
    description: str = ""
    instructions: list[str] = Field(default_factory=list)
    time_limit_minutes: int = 0
    passing_score: int
    max_attempts: int
    total_points: float
    questions: list[PublicQuestionResponse]
    attempt_number: int
    attempts_left: int = Field(description="-1 when unlimited")

    @classmethod
    def from_delivery(cls, delivery: AttemptDelivery) -> "QuizForAttemptResponse":
        quiz = delivery.quiz
        return cls(
            id=quiz.id,
            course_id=quiz.course_id,
            title=quiz.title,
            description=quiz.description,
            instructions=list(quiz.instructions),
            time_limit_minutes=quiz.time_limit_minutes,
            passing_score=quiz.passing_score,
            max_attempts=quiz.max_attempts,
            total_points=quiz.total_points,
            questions=[PublicQuestionResponse.from_entity(q) for q in delivery.questions],
            attempt_number=delivery.attempt_number,
            attempts_left=delivery.attempts_left,
        )


# ==============================================================================
# Submission Schemas
# ==============================================================================


class AnswerRequest(BaseModel):
    """Answer to one question."""

    question_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("question_id", "questionId")
    )
    selected_option_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selected_option_ids", "selectedOptionIds"),
    )
    text_answer: str | None = Field(
        default=None, validation_alias=AliasChoices("text_answer", "textAnswer")
    )

    def to_answer(self) -> SubmittedAnswer:
        return SubmittedAnswer(
            question_id=self.question_id,
            selected_option_ids=frozenset(self.selected_option_ids),
            text_answer=self.text_answer,
        )


class QuizSubmissionRequest(BaseModel):
    """Submission of a quiz attempt."""

    answers: list[AnswerRequest]
    time_spent: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("time_spent", "timeSpent"),
        description="Seconds spent on the attempt",
    )
    started_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("started_at", "startedAt")
    )


class QuestionResultResponse(BaseModel):
    """Per-question feedback."""

    question_id: str
    correct: bool
    score: float
    max_score: float
    user_answer: list[str] | str | None = None
    correct_answers: list[str] | None = None
    explanation: str | None = None

    @classmethod
    def from_result(cls, result: QuestionResult) -> "QuestionResultResponse":
        return cls(**result.to_dict())


class QuizResultResponse(BaseModel):
    """Outcome of a submission."""

    attempt_number: int
    score: float
    max_score: float
    percentage: int
    passed: bool
    time_spent: int
    questions: list[QuestionResultResponse] | None = Field(
        default=None, description="Omitted unless the quiz shows correct answers"
    )
    can_retake: bool
    attempts_left: int

    @classmethod
    def from_submission(cls, submission: SubmissionResult) -> "QuizResultResponse":
        attempt = submission.attempt
        feedback = {}
        if submission.show_feedback:
            feedback["questions"] = [
                QuestionResultResponse.from_result(r)
                for r in submission.score.per_question
            ]
        return cls(
            attempt_number=attempt.attempt_number,
            score=attempt.score,
            max_score=attempt.max_score,
            percentage=attempt.percentage,
            passed=attempt.passed,
            time_spent=attempt.time_spent,
            can_retake=submission.can_retake,
            attempts_left=submission.attempts_left,
            **feedback,
        )


# ==============================================================================
# History Schemas
# ==============================================================================


class AttemptSummaryResponse(BaseModel):
    attempt_number: int
    score: float
    max_score: float
    percentage: int
    passed: bool
    time_spent: int
    completed_at: datetime

    @classmethod
    def from_entity(cls, attempt: QuizAttempt) -> "AttemptSummaryResponse":
        return cls(
            attempt_number=attempt.attempt_number,
            score=attempt.score,
            max_score=attempt.max_score,
            percentage=attempt.percentage,
            passed=attempt.passed,
            time_spent=attempt.time_spent,
            completed_at=attempt.completed_at,
        )


class QuizStatsResponse(BaseModel):
    total_attempts: int
    average_score: int
    pass_rate: int

    @classmethod
    def from_stats(cls, stats: QuizStats) -> "QuizStatsResponse":
        return cls(
            total_attempts=stats.total_attempts,
            average_score=stats.average_score,
            pass_rate=stats.pass_rate,
        )


class QuizResultsResponse(BaseModel):
    """Learner's attempt history for a quiz, newest first."""

    quiz_id: UUID
    title: str
    passing_score: int
    max_attempts: int
    attempts: list[AttemptSummaryResponse]
    best_attempt: AttemptSummaryResponse | None = None
    can_retake: bool
    attempts_left: int = Field(description="-1 when unlimited")
    stats: QuizStatsResponse

    @classmethod
    def from_results(cls, results: QuizResults) -> "QuizResultsResponse":
        quiz = results.quiz
        best = results.best_attempt
        return cls(
            quiz_id=quiz.id,
            title=quiz.title,
            passing_score=quiz.passing_score,
            max_attempts=quiz.max_attempts,
            attempts=[AttemptSummaryResponse.from_entity(a) for a in results.attempts],
            best_attempt=AttemptSummaryResponse.from_entity(best) if best else None,
            can_retake=results.can_retake,
            attempts_left=results.attempts_left,
            stats=QuizStatsResponse.from_stats(results.stats),
        )


class CourseQuizResponse(BaseModel):
    """A course quiz with the learner's standing."""

    id: UUID
    title: str
    description: str = ""
    question_count: int
    total_points: float
    time_limit_minutes: int
    passing_score: int
    max_attempts: int
    attempts: int
    best_score: float = 0
    best_percentage: int = 0
    passed: bool = False
    can_attempt: bool
    last_attempt_at: datetime | None = None

    @classmethod
    def from_listing(cls, listing: QuizListing) -> "CourseQuizResponse":
        quiz = listing.quiz
        best = listing.best_attempt
        return cls(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            question_count=len(quiz.questions),
            total_points=quiz.total_points,
            time_limit_minutes=quiz.time_limit_minutes,
            passing_score=quiz.passing_score,
            max_attempts=quiz.max_attempts,
            attempts=listing.attempts_count,
            best_score=best.score if best else 0,
            best_percentage=best.percentage if best else 0,
            passed=listing.passed,
            can_attempt=listing.can_attempt,
            last_attempt_at=listing.last_attempt_at,
        )


class CourseQuizListResponse(BaseModel):
    items: list[CourseQuizResponse]
    total: int
