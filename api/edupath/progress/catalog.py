"""Course content counts used as progress denominators.

Totals are read when an enrollment is opened (and on explicit recount),
then snapshotted onto the enrollment.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID


if TYPE_CHECKING:
    from cassandra.cluster import Session


# Videos of a course; quizzes are counted from quizzes_by_course
COURSE_VIDEOS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_videos (
    course_id UUID,
    video_id UUID,
    is_published BOOLEAN,
    PRIMARY KEY (course_id, video_id)
)
"""

CATALOG_TABLES_CQL = [
    COURSE_VIDEOS_TABLE_CQL,
]


class CourseCatalog(Protocol):
    """Published content counts per course."""

    async def count_videos(self, course_id: UUID) -> int: ...

    async def count_quizzes(self, course_id: UUID) -> int: ...


class InMemoryCourseCatalog:
    """Catalog backed by plain dicts of published counts."""

    def __init__(
        self,
        videos: dict[UUID, int] | None = None,
        quizzes: dict[UUID, int] | None = None,
    ) -> None:
        self.videos = dict(videos or {})
        self.quizzes = dict(quizzes or {})

    def set_course(self, course_id: UUID, videos: int, quizzes: int) -> None:
        self.videos[course_id] = videos
        self.quizzes[course_id] = quizzes

    async def count_videos(self, course_id: UUID) -> int:
        return self.videos.get(course_id, 0)

    async def count_quizzes(self, course_id: UUID) -> int:
        return self.quizzes.get(course_id, 0)


class CassandraCourseCatalog:
    """Counts published rows in the course partitions."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_course_videos = self.session.prepare(f"""
            SELECT is_published FROM {self.keyspace}.course_videos
            WHERE course_id = ?
        """)

        self._get_course_quizzes = self.session.prepare(f"""
            SELECT is_published FROM {self.keyspace}.quizzes_by_course
            WHERE course_id = ?
        """)

    async def _count_published(self, statement, course_id: UUID) -> int:
        rows = await self.session.aexecute(statement, [course_id])
        return sum(1 for row in rows if row.is_published)

    async def count_videos(self, course_id: UUID) -> int:
        return await self._count_published(self._get_course_videos, course_id)

    async def count_quizzes(self, course_id: UUID) -> int:
        return await self._count_published(self._get_course_quizzes, course_id)
