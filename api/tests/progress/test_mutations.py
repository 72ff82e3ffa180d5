"""Tests for pure enrollment transitions."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from edupath.progress import mutations
from edupath.progress.errors import (
    AttemptLimitExceededError,
    InvalidProgressValueError,
    InvalidStatusTransitionError,
    NotEnrolledError,
)
from edupath.progress.models import EnrollmentStatus
from edupath.quizzes.models import SubmittedAnswer
from edupath.quizzes.scoring import score


T0 = datetime(2026, 3, 1, 12, tzinfo=UTC)


@pytest.fixture
def enrollment():
    return mutations.open_enrollment(uuid4(), uuid4(), total_videos=4, total_quizzes=2, now=T0)


class TestOpenEnrollment:
    def test_snapshots_totals(self, enrollment):
        assert enrollment.status == EnrollmentStatus.ACTIVE
        assert enrollment.progress.total_videos == 4
        assert enrollment.progress.total_quizzes == 2
        assert enrollment.progress.overall_percentage == 0
        assert enrollment.enrolled_at == T0
        assert enrollment.version == 0


class TestVideoProgress:
    """Video watch pings."""

    def test_watched_duration_is_monotonic(self, enrollment):
        video = uuid4()
        e = enrollment
        for duration in (30, 120, 45, 90, 200, 10):
            e = mutations.apply_video_progress(e, video, duration, now=T0)

        assert e.video_record(video).watched_duration == 200

    def test_completion_is_one_way(self, enrollment):
        video = uuid4()
        e = mutations.apply_video_progress(enrollment, video, 100, is_completed=True, now=T0)
        e = mutations.apply_video_progress(
            e, video, 120, is_completed=False, now=T0 + timedelta(minutes=1)
        )

        record = e.video_record(video)
        assert record.is_completed is True
        assert record.completed_at == T0
        assert e.progress.videos_completed == 1

    def test_completed_at_stamped_once(self, enrollment):
        video = uuid4()
        e = mutations.apply_video_progress(enrollment, video, 100, is_completed=True, now=T0)
        e = mutations.apply_video_progress(
            e, video, 100, is_completed=True, now=T0 + timedelta(hours=2)
        )

        assert e.video_record(video).completed_at == T0
        assert e.progress.videos_completed == 1

    def test_watch_time_accumulates_increase_only(self, enrollment):
        """Duplicate and replayed pings add no watch time."""
        video = uuid4()
        e = mutations.apply_video_progress(enrollment, video, 60, now=T0)
        e = mutations.apply_video_progress(e, video, 60, now=T0)
        e = mutations.apply_video_progress(e, video, 90, now=T0)
        e = mutations.apply_video_progress(e, video, 30, now=T0)

        assert e.total_watch_time == 90

    def test_watch_time_sums_across_videos(self, enrollment):
        e = mutations.apply_video_progress(enrollment, uuid4(), 60, now=T0)
        e = mutations.apply_video_progress(e, uuid4(), 40, now=T0)
        assert e.total_watch_time == 100
        assert len(e.video_progress) == 2

    def test_stamps_last_accessed(self, enrollment):
        later = T0 + timedelta(days=1)
        e = mutations.apply_video_progress(enrollment, uuid4(), 5, now=later)
        assert e.last_accessed_at == later

    def test_recomputes_progress(self, enrollment):
        e = enrollment
        for _ in range(2):
            e = mutations.apply_video_progress(e, uuid4(), 10, is_completed=True, now=T0)
        # 2/4 videos -> 50 * 0.7
        assert e.progress.overall_percentage == 35

    @pytest.mark.parametrize("duration", [-1, float("nan"), float("inf")])
    def test_rejects_invalid_duration(self, enrollment, duration):
        with pytest.raises(InvalidProgressValueError):
            mutations.apply_video_progress(enrollment, uuid4(), duration, now=T0)

    def test_paused_enrollment_rejected(self, enrollment):
        paused = mutations.pause(enrollment, now=T0)
        with pytest.raises(NotEnrolledError):
            mutations.apply_video_progress(paused, uuid4(), 10, now=T0)

    def test_input_is_not_mutated(self, enrollment):
        mutations.apply_video_progress(enrollment, uuid4(), 10, is_completed=True, now=T0)
        assert enrollment.video_progress == ()
        assert enrollment.progress.videos_completed == 0


class TestQuizAttempts:
    """Appending scored attempts."""

    def _result(self, quiz, correct: bool):
        answer = "b" if correct else "a"
        return score(quiz.questions, {"q1": SubmittedAnswer("q1", frozenset({answer}))})

    @pytest.fixture
    def quiz(self, enrollment, make_quiz, sample_questions):
        return make_quiz(enrollment.course_id, questions=sample_questions[:1])

    def test_numbers_attempts_sequentially(self, enrollment, quiz):
        e = enrollment
        numbers = []
        for _ in range(3):
            outcome = mutations.append_quiz_attempt(e, quiz, self._result(quiz, False), now=T0)
            e = outcome.enrollment
            numbers.append(outcome.attempt.attempt_number)
        assert numbers == [1, 2, 3]

    def test_fourth_attempt_rejected_and_log_unchanged(self, enrollment, quiz):
        e = enrollment
        for _ in range(3):
            e = mutations.append_quiz_attempt(e, quiz, self._result(quiz, False), now=T0).enrollment

        with pytest.raises(AttemptLimitExceededError):
            mutations.append_quiz_attempt(e, quiz, self._result(quiz, True), now=T0)
        assert len(e.quiz_attempts) == 3

    def test_pass_then_fail_counts_once(self, enrollment, quiz):
        first = mutations.append_quiz_attempt(enrollment, quiz, self._result(quiz, True), now=T0)
        second = mutations.append_quiz_attempt(
            first.enrollment, quiz, self._result(quiz, False), now=T0 + timedelta(minutes=5)
        )

        assert first.first_pass is True
        assert second.first_pass is False
        assert first.enrollment.progress.quizzes_passed == 1
        assert second.enrollment.progress.quizzes_passed == 1

    def test_second_pass_is_not_first_pass(self, enrollment, quiz):
        first = mutations.append_quiz_attempt(enrollment, quiz, self._result(quiz, True), now=T0)
        second = mutations.append_quiz_attempt(
            first.enrollment, quiz, self._result(quiz, True), now=T0
        )
        assert second.first_pass is False
        assert second.enrollment.progress.quizzes_passed == 1

    def test_records_score_fields(self, enrollment, quiz):
        outcome = mutations.append_quiz_attempt(
            enrollment,
            quiz,
            self._result(quiz, True),
            answers=[SubmittedAnswer("q1", frozenset({"b"}))],
            time_spent=42,
            now=T0,
        )
        attempt = outcome.attempt
        assert (attempt.score, attempt.max_score, attempt.percentage) == (1, 1, 100)
        assert attempt.passed is True
        assert attempt.time_spent == 42
        assert attempt.learner_id == enrollment.learner_id
        assert attempt.answers[0].question_id == "q1"

    def test_negative_time_spent_rejected(self, enrollment, quiz):
        with pytest.raises(InvalidProgressValueError):
            mutations.append_quiz_attempt(
                enrollment, quiz, self._result(quiz, True), time_spent=-5, now=T0
            )


class TestStatusTransitions:
    def test_pause_and_resume(self, enrollment):
        paused = mutations.pause(enrollment, now=T0)
        assert paused.status == EnrollmentStatus.PAUSED
        resumed = mutations.resume(paused, now=T0)
        assert resumed.status == EnrollmentStatus.ACTIVE

    def test_resume_runs_completion_ratchet(self, make_quiz, sample_questions):
        e = mutations.open_enrollment(uuid4(), uuid4(), total_videos=2, total_quizzes=1, now=T0)
        quiz = make_quiz(e.course_id, questions=sample_questions[:1])
        result = score(quiz.questions, {"q1": SubmittedAnswer("q1", frozenset({"b"}))})
        e = mutations.apply_video_progress(e, uuid4(), 10, is_completed=True, now=T0)
        e = mutations.append_quiz_attempt(e, quiz, result, now=T0).enrollment
        assert e.progress.overall_percentage == 65

        # A recount while paused reaches 100% but cannot complete
        paused = mutations.pause(e, now=T0)
        paused = mutations.with_totals(paused, total_videos=1, total_quizzes=1, now=T0)
        assert paused.progress.overall_percentage == 100
        assert paused.status == EnrollmentStatus.PAUSED

        later = T0 + timedelta(days=3)
        resumed = mutations.resume(paused, now=later)
        assert resumed.status == EnrollmentStatus.COMPLETED
        assert resumed.completed_at == later

    @pytest.mark.parametrize(
        ("transition", "status"),
        [
            (mutations.pause, EnrollmentStatus.PAUSED),
            (mutations.pause, EnrollmentStatus.COMPLETED),
            (mutations.resume, EnrollmentStatus.ACTIVE),
            (mutations.resume, EnrollmentStatus.COMPLETED),
        ],
    )
    def test_invalid_transitions(self, enrollment, transition, status):
        with pytest.raises(InvalidStatusTransitionError):
            transition(replace(enrollment, status=status), now=T0)

    def test_certificate_requires_completion(self, enrollment):
        with pytest.raises(InvalidStatusTransitionError):
            mutations.mark_certificate_issued(enrollment)


class TestWithTotals:
    def test_recount_changes_denominators(self, enrollment):
        e = mutations.apply_video_progress(enrollment, uuid4(), 10, is_completed=True, now=T0)
        assert e.progress.overall_percentage == 18  # 25 * 0.7 = 17.5

        e = mutations.with_totals(e, total_videos=1, total_quizzes=0, now=T0)
        assert e.progress.total_videos == 1
        assert e.progress.overall_percentage == 70

    def test_rejects_negative_totals(self, enrollment):
        with pytest.raises(InvalidProgressValueError):
            mutations.with_totals(enrollment, total_videos=-1, total_quizzes=0)
