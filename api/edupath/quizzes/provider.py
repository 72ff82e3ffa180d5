"""Quiz content providers.

The engine reads quizzes (answer keys included) through this interface at
delivery and at submission time; answer keys never come from the client.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from .models import Quiz


if TYPE_CHECKING:
    from cassandra.cluster import Session


class QuizContentProvider(Protocol):
    """Source of quiz content."""

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        """Get one quiz, or None."""
        ...

    async def list_course_quizzes(
        self, course_id: UUID, published_only: bool = True
    ) -> list[Quiz]:
        """Quizzes of a course ordered by position."""
        ...


class InMemoryQuizContentProvider:
    """Dict-backed provider for tests and local runs."""

    def __init__(self, quizzes: list[Quiz] | None = None) -> None:
        self._quizzes: dict[UUID, Quiz] = {q.id: q for q in quizzes or []}

    def add(self, quiz: Quiz) -> Quiz:
        self._quizzes[quiz.id] = quiz
        return quiz

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        return self._quizzes.get(quiz_id)

    async def list_course_quizzes(
        self, course_id: UUID, published_only: bool = True
    ) -> list[Quiz]:
        quizzes = [
            q
            for q in self._quizzes.values()
            if q.course_id == course_id and (q.is_published or not published_only)
        ]
        return sorted(quizzes, key=lambda q: (q.position, q.created_at))


class CassandraQuizContentProvider:
    """Reads quizzes from the ``quizzes`` and ``quizzes_by_course`` tables."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        default_passing_score: int = 70,
        default_max_attempts: int = 3,
    ):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self.default_passing_score = default_passing_score
        self.default_max_attempts = default_max_attempts
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_quiz = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quizzes WHERE id = ?
        """)

        self._get_quiz_placement = self.session.prepare(f"""
            SELECT course_id, position FROM {self.keyspace}.quizzes WHERE id = ?
        """)

        self._get_course_quizzes = self.session.prepare(f"""
            SELECT quiz_id, is_published FROM {self.keyspace}.quizzes_by_course
            WHERE course_id = ?
        """)

        self._insert_quiz = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quizzes
            (id, course_id, title, description, instructions, time_limit_minutes,
             passing_score, max_attempts, randomize_questions, show_correct_answers,
             allow_review, questions, is_published, position, created_by,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_quiz_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quizzes_by_course
            (course_id, position, quiz_id, is_published)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_quiz_by_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.quizzes_by_course
            WHERE course_id = ? AND position = ? AND quiz_id = ?
        """)

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        result = await self.session.aexecute(self._get_quiz, [quiz_id])
        row = result.one()
        if not row:
            return None
        return Quiz.from_row(
            row,
            default_passing_score=self.default_passing_score,
            default_max_attempts=self.default_max_attempts,
        )

    async def list_course_quizzes(
        self, course_id: UUID, published_only: bool = True
    ) -> list[Quiz]:
        # Lookup rows come back clustered by position
        rows = await self.session.aexecute(self._get_course_quizzes, [course_id])
        quizzes = []
        for row in rows:
            if published_only and not row.is_published:
                continue
            quiz = await self.get_quiz(row.quiz_id)
            if quiz:
                quizzes.append(quiz)
        return quizzes

    async def save_quiz(self, quiz: Quiz) -> Quiz:
        """Write a quiz and its course lookup row (seeding and admin tooling).

        The lookup is clustered by position, so a quiz moved to another
        position or course has its previous lookup row removed.
        """
        result = await self.session.aexecute(self._get_quiz_placement, [quiz.id])
        previous = result.one()

        await self.session.aexecute(
            self._insert_quiz,
            [
                quiz.id,
                quiz.course_id,
                quiz.title,
                quiz.description,
                list(quiz.instructions),
                quiz.time_limit_minutes,
                quiz.passing_score,
                quiz.max_attempts,
                quiz.randomize_questions,
                quiz.show_correct_answers,
                quiz.allow_review,
                quiz.questions_json(),
                quiz.is_published,
                quiz.position,
                quiz.created_by,
                quiz.created_at,
                quiz.created_at,
            ],
        )
        if previous and (previous.course_id, previous.position) != (
            quiz.course_id,
            quiz.position,
        ):
            await self.session.aexecute(
                self._delete_quiz_by_course,
                [previous.course_id, previous.position, quiz.id],
            )
        await self.session.aexecute(
            self._insert_quiz_by_course,
            [quiz.course_id, quiz.position, quiz.id, quiz.is_published],
        )
        return quiz
