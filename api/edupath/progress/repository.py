"""Enrollment persistence.

Every write is conditional: ``create`` only inserts when no enrollment
exists for the (learner, course) key, ``save`` and ``delete`` only apply
when the stored version still matches the one the caller read. The store
layers its bounded retry loop on top of these primitives.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

import structlog

from .models import Enrollment


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class EnrollmentRepository(Protocol):
    """Enrollment store protocol."""

    async def get(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        """Load one enrollment, or None."""
        ...

    async def create(self, enrollment: Enrollment) -> bool:
        """Insert if absent. False when the key already exists."""
        ...

    async def save(self, enrollment: Enrollment, expected_version: int) -> bool:
        """Overwrite if the stored version equals ``expected_version``."""
        ...

    async def delete(self, learner_id: UUID, course_id: UUID, expected_version: int) -> bool:
        """Remove an enrollment if its stored version equals ``expected_version``."""
        ...

    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]:
        """All enrollments of one learner."""
        ...


class InMemoryEnrollmentRepository:
    """Dict-backed repository for tests and local runs.

    Each method completes without awaiting, so on a single event loop the
    version check and the write cannot be interleaved.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Enrollment] = {}

    async def get(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        return self._store.get((learner_id, course_id))

    async def create(self, enrollment: Enrollment) -> bool:
        if enrollment.key in self._store:
            return False
        self._store[enrollment.key] = enrollment
        return True

    async def save(self, enrollment: Enrollment, expected_version: int) -> bool:
        current = self._store.get(enrollment.key)
        if current is None or current.version != expected_version:
            return False
        self._store[enrollment.key] = enrollment
        return True

    async def delete(self, learner_id: UUID, course_id: UUID, expected_version: int) -> bool:
        current = self._store.get((learner_id, course_id))
        if current is None or current.version != expected_version:
            return False
        del self._store[(learner_id, course_id)]
        return True

    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]:
        return sorted(
            (e for e in self._store.values() if e.learner_id == learner_id),
            key=lambda e: e.enrolled_at,
        )


class CassandraEnrollmentRepository:
    """Cassandra repository using lightweight transactions.

    The ``enrollments`` row is the source of truth; ``enrollments_by_user``
    is a lookup refreshed after each applied conditional write.
    """

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE user_id = ? AND course_id = ?
        """)

        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (user_id, course_id, status, videos_completed, total_videos,
             quizzes_passed, total_quizzes, overall_percentage, video_progress,
             quiz_attempts, enrolled_at, completed_at, last_accessed_at,
             total_watch_time, certificate_issued, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_enrollment = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET status = ?, videos_completed = ?, total_videos = ?,
                quizzes_passed = ?, total_quizzes = ?, overall_percentage = ?,
                video_progress = ?, quiz_attempts = ?, completed_at = ?,
                last_accessed_at = ?, total_watch_time = ?,
                certificate_issued = ?, version = ?
            WHERE user_id = ? AND course_id = ?
            IF version = ?
        """)

        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE user_id = ? AND course_id = ?
            IF version = ?
        """)

        # Enrollments by user (lookup)
        self._get_user_enrollments = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ?
        """)

        self._upsert_enrollment_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, status, overall_percentage, enrolled_at,
             last_accessed_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._delete_enrollment_by_user = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ? AND course_id = ?
        """)

    async def _upsert_lookup(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._upsert_enrollment_by_user,
            [
                enrollment.learner_id,
                enrollment.course_id,
                enrollment.status.value,
                enrollment.progress.overall_percentage,
                enrollment.enrolled_at,
                enrollment.last_accessed_at,
            ],
        )

    async def get(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        result = await self.session.aexecute(self._get_enrollment, [learner_id, course_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def create(self, enrollment: Enrollment) -> bool:
        progress = enrollment.progress
        result = await self.session.aexecute(
            self._insert_enrollment,
            [
                enrollment.learner_id,
                enrollment.course_id,
                enrollment.status.value,
                progress.videos_completed,
                progress.total_videos,
                progress.quizzes_passed,
                progress.total_quizzes,
                progress.overall_percentage,
                enrollment.video_progress_json(),
                enrollment.quiz_attempts_json(),
                enrollment.enrolled_at,
                enrollment.completed_at,
                enrollment.last_accessed_at,
                float(enrollment.total_watch_time),
                enrollment.certificate_issued,
                enrollment.version,
            ],
        )
        if not result.was_applied:
            return False

        await self._upsert_lookup(enrollment)
        return True

    async def save(self, enrollment: Enrollment, expected_version: int) -> bool:
        progress = enrollment.progress
        result = await self.session.aexecute(
            self._update_enrollment,
            [
                enrollment.status.value,
                progress.videos_completed,
                progress.total_videos,
                progress.quizzes_passed,
                progress.total_quizzes,
                progress.overall_percentage,
                enrollment.video_progress_json(),
                enrollment.quiz_attempts_json(),
                enrollment.completed_at,
                enrollment.last_accessed_at,
                float(enrollment.total_watch_time),
                enrollment.certificate_issued,
                enrollment.version,
                enrollment.learner_id,
                enrollment.course_id,
                expected_version,
            ],
        )
        if not result.was_applied:
            logger.debug(
                "enrollment_version_mismatch",
                user_id=str(enrollment.learner_id),
                course_id=str(enrollment.course_id),
                expected_version=expected_version,
            )
            return False

        await self._upsert_lookup(enrollment)
        return True

    async def delete(self, learner_id: UUID, course_id: UUID, expected_version: int) -> bool:
        result = await self.session.aexecute(
            self._delete_enrollment, [learner_id, course_id, expected_version]
        )
        if not result.was_applied:
            logger.debug(
                "enrollment_version_mismatch",
                user_id=str(learner_id),
                course_id=str(course_id),
                expected_version=expected_version,
            )
            return False

        await self.session.aexecute(
            self._delete_enrollment_by_user, [learner_id, course_id]
        )
        return True

    async def list_for_learner(self, learner_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._get_user_enrollments, [learner_id])
        enrollments = []
        for row in rows:
            enrollment = await self.get(learner_id, row.course_id)
            if enrollment:
                enrollments.append(enrollment)
        return sorted(enrollments, key=lambda e: e.enrolled_at)
