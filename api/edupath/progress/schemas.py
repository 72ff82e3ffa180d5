"""Pydantic schemas for learner progress tracking.

Request and response models for:
- Video progress updates
- Course enrollment and status changes
- Progress queries and learner summary
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .models import Enrollment, EnrollmentStatus, ProgressSnapshot, VideoProgressRecord
from .service import LearnerSummary


# ==============================================================================
# Video Progress Schemas
# ==============================================================================


class UpdateVideoProgressRequest(BaseModel):
    """Watch ping sent periodically by the player."""

    model_config = ConfigDict(allow_inf_nan=False)

    watched_duration: float = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("watched_duration", "watchedDuration"),
        description="Cumulative seconds watched",
    )
    is_completed: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_completed", "isCompleted"),
        description="Player reports the video as finished",
    )


class VideoProgressResponse(BaseModel):
    """Progress of one video."""

    model_config = ConfigDict(from_attributes=True)

    video_id: UUID
    watched_duration: float
    is_completed: bool
    completed_at: datetime | None = None
    last_watched_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: VideoProgressRecord) -> "VideoProgressResponse":
        """Create response from entity."""
        return cls(
            video_id=entity.video_id,
            watched_duration=entity.watched_duration,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
            last_watched_at=entity.last_watched_at,
        )


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class ProgressResponse(BaseModel):
    """Derived course progress."""

    videos_completed: int
    total_videos: int
    quizzes_passed: int
    total_quizzes: int
    overall_percentage: int = Field(description="0-100, weighted 70% videos / 30% quizzes")

    @classmethod
    def from_entity(cls, entity: ProgressSnapshot) -> "ProgressResponse":
        return cls(**entity.to_dict())


class EnrollmentResponse(BaseModel):
    """Enrollment with progress."""

    course_id: UUID
    learner_id: UUID
    status: EnrollmentStatus
    progress: ProgressResponse
    enrolled_at: datetime
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    total_watch_time: float = 0
    certificate_issued: bool = False
    quiz_attempts_count: int = 0

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            learner_id=entity.learner_id,
            status=entity.status,
            progress=ProgressResponse.from_entity(entity.progress),
            enrolled_at=entity.enrolled_at,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
            total_watch_time=entity.total_watch_time,
            certificate_issued=entity.certificate_issued,
            quiz_attempts_count=len(entity.quiz_attempts),
        )


class EnrollmentDetailResponse(EnrollmentResponse):
    """Enrollment including per-video progress."""

    video_progress: list[VideoProgressResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentDetailResponse":
        base = EnrollmentResponse.from_entity(entity)
        return cls(
            **base.model_dump(),
            video_progress=[
                VideoProgressResponse.from_entity(v) for v in entity.video_progress
            ],
        )


class EnrollmentListResponse(BaseModel):
    """List of enrollments."""

    items: list[EnrollmentResponse]
    total: int


class LearnerSummaryResponse(BaseModel):
    """Progress totals across all of a learner's courses."""

    total_courses: int
    completed_courses: int
    videos_completed: int
    quizzes_passed: int
    total_watch_time: float
    last_accessed_course_id: UUID | None = None

    @classmethod
    def from_summary(cls, summary: LearnerSummary) -> "LearnerSummaryResponse":
        return cls(
            total_courses=summary.total_courses,
            completed_courses=summary.completed_courses,
            videos_completed=summary.videos_completed,
            quizzes_passed=summary.quizzes_passed,
            total_watch_time=summary.total_watch_time,
            last_accessed_course_id=summary.last_accessed_course_id,
        )
