"""Quiz API endpoints.

Provides routes for:
- Course quiz listing with the learner's standing
- Quiz delivery for a new attempt
- Attempt submission
- Attempt history
"""

from uuid import UUID

from fastapi import APIRouter

from edupath.progress.dependencies import CurrentLearnerId, handle_progress_error
from edupath.progress.errors import ProgressError

from .dependencies import QuizServiceDep, handle_quiz_error
from .schemas import (
    CourseQuizListResponse,
    CourseQuizResponse,
    QuizForAttemptResponse,
    QuizResultResponse,
    QuizResultsResponse,
    QuizSubmissionRequest,
)
from .service import QuizError


router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


@router.get(
    "/course/{course_id}",
    response_model=CourseQuizListResponse,
    summary="List course quizzes",
)
async def list_course_quizzes(
    course_id: UUID,
    quiz_service: QuizServiceDep,
    learner_id: CurrentLearnerId,
) -> CourseQuizListResponse:
    """Published quizzes of a course, ordered, with the learner's attempts."""
    listings = await quiz_service.list_course_quizzes(learner_id, course_id)
    return CourseQuizListResponse(
        items=[CourseQuizResponse.from_listing(item) for item in listings],
        total=len(listings),
    )


@router.get(
    "/{quiz_id}",
    response_model=QuizForAttemptResponse,
    summary="Get quiz for a new attempt",
)
async def get_quiz(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    learner_id: CurrentLearnerId,
) -> QuizForAttemptResponse:
    """Questions without answer keys; 403 when no attempts are left."""
    try:
        delivery = await quiz_service.get_quiz_for_attempt(learner_id, quiz_id)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return QuizForAttemptResponse.from_delivery(delivery)


@router.post(
    "/{quiz_id}/submit",
    response_model=QuizResultResponse,
    response_model_exclude_unset=True,
    summary="Submit quiz attempt",
)
async def submit_quiz(
    quiz_id: UUID,
    data: QuizSubmissionRequest,
    quiz_service: QuizServiceDep,
    learner_id: CurrentLearnerId,
) -> QuizResultResponse:
    """Score the submission against the stored answer keys and record it."""
    try:
        submission = await quiz_service.submit_attempt(
            learner_id=learner_id,
            quiz_id=quiz_id,
            answers=[a.to_answer() for a in data.answers],
            time_spent=data.time_spent,
            started_at=data.started_at,
        )
    except QuizError as e:
        raise handle_quiz_error(e) from e
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return QuizResultResponse.from_submission(submission)


@router.get(
    "/{quiz_id}/results",
    response_model=QuizResultsResponse,
    summary="Get my attempts for a quiz",
)
async def get_quiz_results(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    learner_id: CurrentLearnerId,
) -> QuizResultsResponse:
    try:
        results = await quiz_service.get_results(learner_id, quiz_id)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return QuizResultsResponse.from_results(results)
