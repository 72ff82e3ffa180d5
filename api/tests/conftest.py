"""Shared test fixtures.

Tests run against the in-memory storage backend; Cassandra-backed classes
are exercised with a mocked session in their own modules.
"""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FORMAT", "console")

from collections.abc import Callable, Iterator  # noqa: E402
from typing import Any  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from edupath.config import get_settings  # noqa: E402
from edupath.progress.catalog import InMemoryCourseCatalog  # noqa: E402
from edupath.progress.repository import InMemoryEnrollmentRepository  # noqa: E402
from edupath.progress.service import EnrollmentProgressStore  # noqa: E402
from edupath.quizzes.models import (  # noqa: E402
    Question,
    QuestionOption,
    QuestionType,
    Quiz,
)


get_settings.cache_clear()


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client with a fresh in-memory application state."""
    from edupath.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def learner_id() -> UUID:
    return uuid4()


@pytest.fixture
def course_id() -> UUID:
    return uuid4()


@pytest.fixture
def catalog() -> InMemoryCourseCatalog:
    return InMemoryCourseCatalog()


@pytest.fixture
def repository() -> InMemoryEnrollmentRepository:
    return InMemoryEnrollmentRepository()


@pytest.fixture
def store(repository, catalog) -> EnrollmentProgressStore:
    return EnrollmentProgressStore(repository=repository, catalog=catalog)


def _choice_options(*ids: str) -> tuple[QuestionOption, ...]:
    return tuple(QuestionOption(id=i, text=f"Option {i}") for i in ids)


@pytest.fixture
def sample_questions() -> list[Question]:
    """One question of each type, 1 point each."""
    return [
        Question(
            id="q1",
            type=QuestionType.SINGLE_CHOICE,
            text="Capital of France?",
            options=_choice_options("a", "b", "c"),
            correct_answers=("b",),
            explanation="Paris.",
            order=1,
        ),
        Question(
            id="q2",
            type=QuestionType.MULTIPLE_CHOICE,
            text="Pick the primes",
            options=_choice_options("a", "b", "c", "d"),
            correct_answers=("a", "c"),
            order=2,
        ),
        Question(
            id="q3",
            type=QuestionType.TRUE_FALSE,
            text="The earth is flat",
            options=_choice_options("true", "false"),
            correct_answers=("false",),
            order=3,
        ),
        Question(
            id="q4",
            type=QuestionType.FILL_IN_BLANK,
            text="2 + 2 = ?",
            correct_answers=("Four",),
            order=4,
        ),
    ]


@pytest.fixture
def make_quiz(sample_questions) -> Callable[..., Quiz]:
    """Factory for published quizzes over the sample questions."""

    def _make(course_id: UUID, **settings: Any) -> Quiz:
        settings.setdefault("is_published", True)
        questions = settings.pop("questions", sample_questions)
        return Quiz.create(course_id, settings.pop("title", "Sample quiz"), questions, **settings)

    return _make
