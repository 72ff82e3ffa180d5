"""Seed a course's published content into Cassandra.

Writes the course's video rows (the progress denominators) and its quizzes
with their answer keys. Enrollments opened afterwards snapshot these
totals; existing enrollments pick them up through the recount endpoint.

Course file format (JSON):
    {
        "course_id": "<uuid>",
        "videos": [{"id": "<uuid>", "is_published": true}],
        "quizzes": [
            {
                "title": "Module 1 check",
                "position": 1,
                "passing_score": 70,
                "max_attempts": 3,
                "is_published": true,
                "questions": [
                    {"id": "q1", "type": "single_choice", "text": "...",
                     "options": [{"id": "a", "text": "..."}],
                     "correct_answers": ["a"], "points": 1}
                ]
            }
        ]
    }

Usage:
    cd api && uv run python -m scripts.seed_course path/to/course.json
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any
from uuid import UUID

import structlog

from edupath.config import get_settings
from edupath.core.database import init_async_cassandra, shutdown_async_cassandra
from edupath.quizzes.models import Question, Quiz
from edupath.quizzes.provider import CassandraQuizContentProvider


logger = structlog.get_logger(__name__)

QUIZ_FIELDS = (
    "description",
    "time_limit_minutes",
    "passing_score",
    "max_attempts",
    "randomize_questions",
    "show_correct_answers",
    "allow_review",
    "is_published",
    "position",
)


def build_quiz(course_id: UUID, data: dict[str, Any]) -> Quiz:
    """Quiz entity from one entry of the course file."""
    questions = [Question.from_dict(q) for q in data["questions"]]
    settings = {k: data[k] for k in QUIZ_FIELDS if k in data}
    if "instructions" in data:
        settings["instructions"] = tuple(data["instructions"])
    return Quiz.create(course_id, data["title"], questions, **settings)


async def seed_course(session, keyspace: str, course: dict[str, Any]) -> tuple[int, int]:
    """Write videos and quizzes of one course.

    Returns:
        Tuple of (videos_written, quizzes_written)
    """
    course_id = UUID(course["course_id"])

    insert_video = session.prepare(f"""
        INSERT INTO {keyspace}.course_videos (course_id, video_id, is_published)
        VALUES (?, ?, ?)
    """)
    videos = course.get("videos", [])
    for video in videos:
        await session.aexecute(
            insert_video,
            [course_id, UUID(video["id"]), video.get("is_published", True)],
        )

    provider = CassandraQuizContentProvider(session, keyspace)
    quizzes = course.get("quizzes", [])
    for entry in quizzes:
        quiz = await provider.save_quiz(build_quiz(course_id, entry))
        logger.info("quiz_seeded", quiz_id=str(quiz.id), title=quiz.title)

    return len(videos), len(quizzes)


async def run_seed(path: Path) -> None:
    """Connect, ensure the schema exists and seed one course file."""
    course = json.loads(path.read_text(encoding="utf-8"))
    session = await init_async_cassandra()
    keyspace = get_settings().cassandra_keyspace

    logger.info("seed_starting", course_id=course.get("course_id"), keyspace=keyspace)
    try:
        videos, quizzes = await seed_course(session, keyspace, course)
        logger.info("seed_completed", videos=videos, quizzes=quizzes)
    finally:
        await shutdown_async_cassandra()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python -m scripts.seed_course <course.json>")
        sys.exit(2)
    asyncio.run(run_seed(Path(sys.argv[1])))
