"""Learner progress tracking API endpoints.

Provides routes for:
- Course enrollment lifecycle (enroll, unenroll, pause, resume, recount)
- Video progress updates
- Progress queries and learner summary

The learner is identified by the gateway-provided identity header.
"""

from uuid import UUID

from fastapi import APIRouter, status

from .dependencies import CurrentLearnerId, ProgressStoreDep, handle_progress_error
from .errors import ProgressError
from .schemas import (
    EnrollmentDetailResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    LearnerSummaryResponse,
    UpdateVideoProgressRequest,
    VideoProgressResponse,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


# ==============================================================================
# Video Progress Endpoints
# ==============================================================================


@router.put(
    "/courses/{course_id}/videos/{video_id}",
    response_model=VideoProgressResponse,
    summary="Update video progress",
)
async def update_video_progress(
    course_id: UUID,
    video_id: UUID,
    data: UpdateVideoProgressRequest,
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> VideoProgressResponse:
    """Record a watch ping.

    watched_duration never decreases and completion never reverts.
    """
    try:
        enrollment = await store.apply_video_progress(
            learner_id=learner_id,
            course_id=course_id,
            video_id=video_id,
            watched_duration=data.watched_duration,
            is_completed=data.is_completed,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    record = enrollment.video_record(video_id)
    return VideoProgressResponse.from_entity(record)


@router.get(
    "/courses/{course_id}",
    response_model=EnrollmentDetailResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> EnrollmentDetailResponse:
    try:
        enrollment = await store.get_enrollment(learner_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentDetailResponse.from_entity(enrollment)


@router.get(
    "/summary",
    response_model=LearnerSummaryResponse,
    summary="Get learner progress summary",
)
async def get_learner_summary(
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> LearnerSummaryResponse:
    summary = await store.get_learner_summary(learner_id)
    return LearnerSummaryResponse.from_summary(summary)


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List my enrollments",
)
async def list_enrollments(
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> EnrollmentListResponse:
    enrollments = await store.list_enrollments(learner_id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@enrollments_router.post(
    "/{course_id}",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll(
    course_id: UUID,
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> EnrollmentResponse:
    """Enroll the learner, snapshotting the course's content totals."""
    try:
        enrollment = await store.enroll(learner_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unenroll from course",
)
async def unenroll(
    course_id: UUID,
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> None:
    try:
        await store.unenroll(learner_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@enrollments_router.post(
    "/{course_id}/pause",
    response_model=EnrollmentResponse,
    summary="Pause enrollment",
)
async def pause_enrollment(
    course_id: UUID,
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> EnrollmentResponse:
    try:
        enrollment = await store.pause(learner_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.post(
    "/{course_id}/resume",
    response_model=EnrollmentResponse,
    summary="Resume enrollment",
)
async def resume_enrollment(
    course_id: UUID,
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> EnrollmentResponse:
    try:
        enrollment = await store.resume(learner_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.post(
    "/{course_id}/recount",
    response_model=EnrollmentResponse,
    summary="Recount course content totals",
)
async def recount_totals(
    course_id: UUID,
    store: ProgressStoreDep,
    learner_id: CurrentLearnerId,
) -> EnrollmentResponse:
    """Refresh the snapshotted video/quiz totals from the course catalog."""
    try:
        enrollment = await store.recount_totals(learner_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)
