"""Tests for weighted progress and the completion ratchet."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from edupath.progress.accumulator import (
    apply_completion_ratchet,
    best_attempt,
    has_passed,
    overall_percentage,
    quizzes_passed,
    recompute,
    refresh,
)
from edupath.progress.models import (
    Enrollment,
    EnrollmentStatus,
    ProgressSnapshot,
    QuizAttempt,
    VideoProgressRecord,
)


T0 = datetime(2026, 1, 1, tzinfo=UTC)


def attempt(quiz_id, number, score, passed, minutes=0) -> QuizAttempt:
    return QuizAttempt(
        quiz_id=quiz_id,
        learner_id=uuid4(),
        attempt_number=number,
        score=score,
        max_score=10,
        percentage=score * 10,
        passed=passed,
        time_spent=30,
        completed_at=T0 + timedelta(minutes=minutes),
    )


def enrollment(total_videos=0, total_quizzes=0, **kwargs) -> Enrollment:
    return Enrollment(
        learner_id=uuid4(),
        course_id=uuid4(),
        progress=ProgressSnapshot(total_videos=total_videos, total_quizzes=total_quizzes),
        **kwargs,
    )


class TestOverallPercentage:
    """70% videos / 30% quizzes."""

    def test_weighting_example(self):
        """7/10 videos and 2/4 quizzes: round(49 + 15) = 64."""
        assert overall_percentage(7, 10, 2, 4) == 64

    def test_no_content_is_zero_not_complete(self):
        assert overall_percentage(0, 0, 0, 0) == 0

    @pytest.mark.parametrize(
        ("args", "expected"),
        [
            ((10, 10, 0, 0), 70),
            ((0, 0, 3, 3), 30),
            ((10, 10, 3, 3), 100),
            ((1, 3, 0, 1), 23),  # 23.33
            ((1, 2, 0, 1), 35),
        ],
    )
    def test_table(self, args, expected):
        assert overall_percentage(*args) == expected

    def test_stale_denominator_is_capped(self):
        assert overall_percentage(5, 3, 4, 2) == 100


class TestBestAttempt:
    def test_highest_score_wins(self):
        quiz = uuid4()
        attempts = [
            attempt(quiz, 1, 4, False),
            attempt(quiz, 2, 9, True, 5),
            attempt(quiz, 3, 6, False, 9),
        ]
        assert best_attempt(attempts).attempt_number == 2

    def test_tie_goes_to_earliest(self):
        quiz = uuid4()
        attempts = [attempt(quiz, 2, 8, True, 10), attempt(quiz, 1, 8, True, 1)]
        assert best_attempt(attempts).attempt_number == 1

    def test_empty(self):
        assert best_attempt([]) is None


class TestQuizzesPassed:
    def test_pass_then_fail_counts_once(self):
        quiz = uuid4()
        history = [attempt(quiz, 1, 8, True), attempt(quiz, 2, 3, False, 5)]
        assert quizzes_passed(history) == 1

    def test_two_passes_count_once(self):
        quiz = uuid4()
        history = [attempt(quiz, 1, 8, True), attempt(quiz, 2, 9, True, 5)]
        assert quizzes_passed(history) == 1

    def test_distinct_quizzes(self):
        a, b, c = uuid4(), uuid4(), uuid4()
        history = [attempt(a, 1, 8, True), attempt(b, 1, 2, False), attempt(c, 1, 7, True)]
        assert quizzes_passed(history) == 2

    def test_higher_failing_score_keeps_earlier_pass(self):
        """Points doubled between attempts: 7/10 passed, 8/20 failed."""
        quiz = uuid4()
        first = attempt(quiz, 1, 7, True)
        second = replace(
            attempt(quiz, 2, 8, False, 5), max_score=20, percentage=40
        )

        assert best_attempt([first, second]) is second
        assert has_passed([first, second]) is True
        assert quizzes_passed([first, second]) == 1

    def test_has_passed_empty(self):
        assert has_passed([]) is False


class TestRecompute:
    def test_counts_completed_videos_and_passed_quizzes(self):
        quiz = uuid4()
        e = enrollment(
            total_videos=10,
            total_quizzes=4,
            video_progress=tuple(
                VideoProgressRecord(video_id=uuid4(), is_completed=i < 7) for i in range(9)
            ),
            quiz_attempts=(attempt(quiz, 1, 8, True), attempt(uuid4(), 1, 9, True)),
        )

        snapshot = recompute(e)

        assert snapshot == ProgressSnapshot(
            videos_completed=7,
            total_videos=10,
            quizzes_passed=2,
            total_quizzes=4,
            overall_percentage=64,
        )


class TestCompletionRatchet:
    def test_active_at_100_completes(self):
        e = enrollment(total_videos=1)
        e = replace(e, progress=replace(e.progress, overall_percentage=100))

        completed = apply_completion_ratchet(e, now=T0)

        assert completed.status == EnrollmentStatus.COMPLETED
        assert completed.completed_at == T0

    def test_below_100_stays_active(self):
        e = enrollment(total_videos=2)
        e = replace(e, progress=replace(e.progress, overall_percentage=99))
        assert apply_completion_ratchet(e, now=T0).status == EnrollmentStatus.ACTIVE

    def test_completed_never_reverts(self):
        e = replace(
            enrollment(total_videos=1),
            status=EnrollmentStatus.COMPLETED,
            completed_at=T0,
        )
        # Recompute drops to 0% (no completed videos)
        later = refresh(e, T0 + timedelta(days=1))

        assert later.progress.overall_percentage == 0
        assert later.status == EnrollmentStatus.COMPLETED
        assert later.completed_at == T0

    def test_reaching_100_twice_keeps_first_stamp(self):
        quiz = uuid4()
        video = VideoProgressRecord(video_id=uuid4(), is_completed=True)
        e = enrollment(
            total_videos=1,
            total_quizzes=1,
            video_progress=(video,),
            quiz_attempts=(attempt(quiz, 1, 9, True),),
        )

        first = refresh(e, T0)
        second = refresh(first, T0 + timedelta(hours=1))

        assert first.status == EnrollmentStatus.COMPLETED
        assert first.completed_at == T0
        assert second.completed_at == T0

    def test_paused_does_not_complete(self):
        e = replace(enrollment(total_videos=1), status=EnrollmentStatus.PAUSED)
        e = replace(e, progress=replace(e.progress, overall_percentage=100))
        assert apply_completion_ratchet(e, now=T0).status == EnrollmentStatus.PAUSED
