"""Quiz content models and answer keys.

Cassandra table definitions for:
- Quizzes: quiz settings plus the question set (questions stored as JSON)
- Lookup: quizzes by course, for listings and published-quiz counts

Questions are immutable answer keys. The scorer reads them at submission
time straight from the quiz content provider, never from the client.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class QuestionType(str, Enum):
    """Supported question types."""

    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_IN_BLANK = "fill_in_blank"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUIZZES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    description TEXT,
    instructions LIST<TEXT>,
    time_limit_minutes INT,
    passing_score INT,
    max_attempts INT,
    randomize_questions BOOLEAN,
    show_correct_answers BOOLEAN,
    allow_review BOOLEAN,
    questions TEXT,
    is_published BOOLEAN,
    position INT,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lookup: quizzes of a course ordered by position
QUIZZES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes_by_course (
    course_id UUID,
    position INT,
    quiz_id UUID,
    is_published BOOLEAN,
    PRIMARY KEY (course_id, position, quiz_id)
) WITH CLUSTERING ORDER BY (position ASC, quiz_id ASC)
"""

QUIZ_TABLES_CQL = [
    QUIZZES_TABLE_CQL,
    QUIZZES_BY_COURSE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass(frozen=True)
class QuestionOption:
    """A selectable option of a choice question."""

    id: str
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "text": self.text}


@dataclass(frozen=True)
class Question:
    """One assessable unit inside a quiz, including its answer key.

    Attributes:
        id: Stable identifier, unique within the quiz
        type: Question type (drives the correctness rule)
        text: Prompt shown to the learner
        options: Ordered options (empty for fill-in-blank)
        correct_answers: Correct option ids, or the expected text for fill-in-blank
        points: Non-negative weight of the question
        explanation: Optional feedback shown after submission
        order: Position inside the quiz when not randomized
    """

    id: str
    type: QuestionType
    correct_answers: tuple[str, ...]
    text: str = ""
    options: tuple[QuestionOption, ...] = ()
    points: float = 1
    explanation: str | None = None
    order: int = 0

    def __post_init__(self) -> None:
        if not self.correct_answers:
            raise ValueError(f"question {self.id!r} has no correct answers")
        if self.points < 0:
            raise ValueError(f"question {self.id!r} has negative points")

    @property
    def correct_option_ids(self) -> frozenset[str]:
        """Answer key as a set, for exact-match comparisons."""
        return frozenset(self.correct_answers)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Question":
        """Build a question from its stored JSON form."""
        return cls(
            id=str(data["id"]),
            type=QuestionType(data["type"]),
            text=data.get("text", ""),
            options=tuple(
                QuestionOption(id=str(o["id"]), text=o.get("text", ""))
                for o in data.get("options", [])
            ),
            correct_answers=tuple(str(a) for a in data.get("correct_answers", [])),
            points=data.get("points", 1),
            explanation=data.get("explanation"),
            order=data.get("order", 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (JSON-safe)."""
        return {
            "id": self.id,
            "type": self.type.value,
            "text": self.text,
            "options": [o.to_dict() for o in self.options],
            "correct_answers": list(self.correct_answers),
            "points": self.points,
            "explanation": self.explanation,
            "order": self.order,
        }


@dataclass(frozen=True)
class SubmittedAnswer:
    """A learner's answer to one question."""

    question_id: str
    selected_option_ids: frozenset[str] = frozenset()
    text_answer: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "selected_option_ids": sorted(self.selected_option_ids),
            "text_answer": self.text_answer,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubmittedAnswer":
        return cls(
            question_id=str(data["question_id"]),
            selected_option_ids=frozenset(data.get("selected_option_ids") or ()),
            text_answer=data.get("text_answer"),
        )


# question id -> submitted answer
AnswerMap = Mapping[str, SubmittedAnswer]


@dataclass(frozen=True)
class Quiz:
    """Quiz settings plus its question set.

    Attributes:
        passing_score: Percentage (0-100) needed to pass
        max_attempts: Attempt limit per learner, 0 = unlimited
        show_correct_answers: Include per-question feedback in results
        randomize_questions: Shuffle questions when serving an attempt
    """

    id: UUID
    course_id: UUID
    title: str
    questions: tuple[Question, ...]
    description: str = ""
    instructions: tuple[str, ...] = ()
    time_limit_minutes: int = 0
    passing_score: int = 70
    max_attempts: int = 3
    randomize_questions: bool = False
    show_correct_answers: bool = True
    allow_review: bool = True
    is_published: bool = False
    position: int = 0
    created_by: UUID | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def total_points(self) -> float:
        """Sum of question points, always derived from the current questions."""
        return sum(q.points for q in self.questions)

    def with_questions(self, questions: tuple[Question, ...]) -> "Quiz":
        """Return a copy with a replaced question set."""
        return replace(self, questions=questions)

    @classmethod
    def create(
        cls,
        course_id: UUID,
        title: str,
        questions: list[Question],
        **settings: Any,
    ) -> "Quiz":
        """Factory method to create a new quiz."""
        if not questions:
            raise ValueError("a quiz needs at least one question")
        return cls(
            id=uuid4(),
            course_id=course_id,
            title=title,
            questions=tuple(questions),
            **settings,
        )

    @classmethod
    def from_row(
        cls,
        row: Any,
        default_passing_score: int = 70,
        default_max_attempts: int = 3,
    ) -> "Quiz":
        """Create Quiz instance from Cassandra row.

        Null settings columns fall back to the configured defaults.
        """
        created_at = row.created_at or datetime.now(UTC)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title or "",
            description=row.description or "",
            instructions=tuple(row.instructions or ()),
            time_limit_minutes=row.time_limit_minutes or 0,
            passing_score=(
                row.passing_score
                if row.passing_score is not None
                else default_passing_score
            ),
            max_attempts=(
                row.max_attempts if row.max_attempts is not None else default_max_attempts
            ),
            randomize_questions=bool(row.randomize_questions),
            show_correct_answers=row.show_correct_answers is not False,
            allow_review=row.allow_review is not False,
            questions=tuple(
                Question.from_dict(q) for q in json.loads(row.questions or "[]")
            ),
            is_published=bool(row.is_published),
            position=row.position or 0,
            created_by=row.created_by,
            created_at=created_at,
        )

    def questions_json(self) -> str:
        """Serialize the question set for the `questions` column."""
        return json.dumps([q.to_dict() for q in self.questions])

    def __repr__(self) -> str:
        return f"<Quiz {self.id} {self.title!r} {len(self.questions)} questions>"
