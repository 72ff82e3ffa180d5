"""Enrollment aggregate for learner progress tracking.

Cassandra table definitions for:
- Enrollments: one row per (learner, course) holding the whole aggregate,
  embedded video progress and the quiz attempt log, guarded by a version
  column for lightweight-transaction (compare-and-set) writes
- Lookup table: enrollments by learner, for per-learner listings

Entities are immutable. State changes are computed by the pure functions
in ``mutations`` and persisted by the repository as a separate step.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from edupath.quizzes.models import SubmittedAnswer


class EnrollmentStatus(str, Enum):
    """Course enrollment status.

    active -> completed (automatic, one-way)
    active <-> paused
    active | paused -> dropped (unenroll, stored as record deletion)
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    DROPPED = "dropped"


# Statuses under which progress events are accepted
TRACKING_STATUSES = frozenset({EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED})


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def _dt_to_json(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _dt_from_json(value: str | None) -> datetime | None:
    return ensure_utc_aware(datetime.fromisoformat(value)) if value else None


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    user_id UUID,
    course_id UUID,
    status TEXT,
    videos_completed INT,
    total_videos INT,
    quizzes_passed INT,
    total_quizzes INT,
    overall_percentage INT,
    video_progress TEXT,
    quiz_attempts TEXT,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    total_watch_time DOUBLE,
    certificate_issued BOOLEAN,
    version INT,
    PRIMARY KEY ((user_id, course_id))
)
"""

# Lookup: courses per learner
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    status TEXT,
    overall_percentage INT,
    enrolled_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass(frozen=True)
class VideoProgressRecord:
    """Watch state of one video for one learner.

    Attributes:
        video_id: Video UUID
        watched_duration: Furthest watch time reported, in seconds (never decreases)
        is_completed: One-way completion flag
        completed_at: Stamped once, on the false -> true transition
        last_watched_at: Last progress ping
    """

    video_id: UUID
    watched_duration: float = 0
    is_completed: bool = False
    completed_at: datetime | None = None
    last_watched_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "video_id": str(self.video_id),
            "watched_duration": self.watched_duration,
            "is_completed": self.is_completed,
            "completed_at": _dt_to_json(self.completed_at),
            "last_watched_at": _dt_to_json(self.last_watched_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VideoProgressRecord":
        return cls(
            video_id=UUID(data["video_id"]),
            watched_duration=data.get("watched_duration", 0),
            is_completed=bool(data.get("is_completed", False)),
            completed_at=_dt_from_json(data.get("completed_at")),
            last_watched_at=_dt_from_json(data.get("last_watched_at")),
        )


@dataclass(frozen=True)
class QuizAttempt:
    """One scored, immutable quiz submission.

    ``attempt_number`` is 1-based and gapless per (learner, quiz).
    """

    quiz_id: UUID
    learner_id: UUID
    attempt_number: int
    score: float
    max_score: float
    percentage: int
    passed: bool
    time_spent: int
    completed_at: datetime
    answers: tuple[SubmittedAnswer, ...] = ()
    started_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "quiz_id": str(self.quiz_id),
            "learner_id": str(self.learner_id),
            "attempt_number": self.attempt_number,
            "score": self.score,
            "max_score": self.max_score,
            "percentage": self.percentage,
            "passed": self.passed,
            "time_spent": self.time_spent,
            "completed_at": _dt_to_json(self.completed_at),
            "started_at": _dt_to_json(self.started_at),
            "answers": [a.to_dict() for a in self.answers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuizAttempt":
        return cls(
            quiz_id=UUID(data["quiz_id"]),
            learner_id=UUID(data["learner_id"]),
            attempt_number=data["attempt_number"],
            score=data["score"],
            max_score=data["max_score"],
            percentage=data["percentage"],
            passed=data["passed"],
            time_spent=data.get("time_spent", 0),
            completed_at=_dt_from_json(data["completed_at"]) or datetime.now(UTC),
            started_at=_dt_from_json(data.get("started_at")),
            answers=tuple(SubmittedAnswer.from_dict(a) for a in data.get("answers", [])),
        )


@dataclass(frozen=True)
class ProgressSnapshot:
    """Derived progress cache stored on the enrollment."""

    videos_completed: int = 0
    total_videos: int = 0
    quizzes_passed: int = 0
    total_quizzes: int = 0
    overall_percentage: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "videos_completed": self.videos_completed,
            "total_videos": self.total_videos,
            "quizzes_passed": self.quizzes_passed,
            "total_quizzes": self.total_quizzes,
            "overall_percentage": self.overall_percentage,
        }


@dataclass(frozen=True)
class Enrollment:
    """Aggregate root owning all progress of one learner in one course.

    Attributes:
        learner_id: Learner UUID
        course_id: Course UUID
        status: Enrollment status (state machine, see EnrollmentStatus)
        progress: Derived progress cache, recomputed after every mutation
        video_progress: One record per distinct video
        quiz_attempts: Append-only log of attempts across all quizzes
        total_watch_time: Accumulated watch time in seconds
        version: Optimistic-concurrency version, bumped on every save
    """

    learner_id: UUID
    course_id: UUID
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    progress: ProgressSnapshot = field(default_factory=ProgressSnapshot)
    video_progress: tuple[VideoProgressRecord, ...] = ()
    quiz_attempts: tuple[QuizAttempt, ...] = ()
    enrolled_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    total_watch_time: float = 0
    certificate_issued: bool = False
    version: int = 0

    @property
    def key(self) -> tuple[UUID, UUID]:
        """Unique (learner, course) key."""
        return (self.learner_id, self.course_id)

    @property
    def is_completed(self) -> bool:
        return self.status == EnrollmentStatus.COMPLETED

    @property
    def accepts_progress(self) -> bool:
        """Whether progress events may be applied in the current status."""
        return self.status in TRACKING_STATUSES

    def video_record(self, video_id: UUID) -> VideoProgressRecord | None:
        """Get the progress record of one video, if any."""
        for record in self.video_progress:
            if record.video_id == video_id:
                return record
        return None

    def attempts_for(self, quiz_id: UUID) -> list[QuizAttempt]:
        """Attempts of one quiz, ordered by attempt number."""
        return sorted(
            (a for a in self.quiz_attempts if a.quiz_id == quiz_id),
            key=lambda a: a.attempt_number,
        )

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            learner_id=row.user_id,
            course_id=row.course_id,
            status=EnrollmentStatus(row.status or EnrollmentStatus.ACTIVE.value),
            progress=ProgressSnapshot(
                videos_completed=row.videos_completed or 0,
                total_videos=row.total_videos or 0,
                quizzes_passed=row.quizzes_passed or 0,
                total_quizzes=row.total_quizzes or 0,
                overall_percentage=row.overall_percentage or 0,
            ),
            video_progress=tuple(
                VideoProgressRecord.from_dict(v)
                for v in json.loads(row.video_progress or "[]")
            ),
            quiz_attempts=tuple(
                QuizAttempt.from_dict(a) for a in json.loads(row.quiz_attempts or "[]")
            ),
            enrolled_at=ensure_utc_aware(row.enrolled_at) or datetime.now(UTC),
            completed_at=ensure_utc_aware(row.completed_at),
            last_accessed_at=ensure_utc_aware(row.last_accessed_at),
            total_watch_time=row.total_watch_time or 0,
            certificate_issued=bool(row.certificate_issued),
            version=row.version or 0,
        )

    def video_progress_json(self) -> str:
        return json.dumps([v.to_dict() for v in self.video_progress])

    def quiz_attempts_json(self) -> str:
        return json.dumps([a.to_dict() for a in self.quiz_attempts])

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "learner_id": self.learner_id,
            "course_id": self.course_id,
            "status": self.status.value,
            "progress": self.progress.to_dict(),
            "video_progress": [v.to_dict() for v in self.video_progress],
            "quiz_attempts": [a.to_dict() for a in self.quiz_attempts],
            "enrolled_at": self.enrolled_at,
            "completed_at": self.completed_at,
            "last_accessed_at": self.last_accessed_at,
            "total_watch_time": self.total_watch_time,
            "certificate_issued": self.certificate_issued,
            "version": self.version,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment learner={self.learner_id} course={self.course_id} "
            f"{self.status.value} {self.progress.overall_percentage}% v{self.version}>"
        )
