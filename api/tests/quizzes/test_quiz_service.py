"""Tests for quiz delivery and submission."""

import random
from dataclasses import replace

import pytest

from edupath.progress.errors import AttemptLimitExceededError, NotEnrolledError
from edupath.quizzes.models import SubmittedAnswer
from edupath.quizzes.provider import InMemoryQuizContentProvider
from edupath.quizzes.service import QuizNotFoundError, QuizService, QuizValidationError


ALL_CORRECT = [
    SubmittedAnswer("q1", frozenset({"b"})),
    SubmittedAnswer("q2", frozenset({"a", "c"})),
    SubmittedAnswer("q3", frozenset({"false"})),
    SubmittedAnswer("q4", text_answer="four"),
]
HALF_CORRECT = [
    SubmittedAnswer("q1", frozenset({"b"})),
    SubmittedAnswer("q2", frozenset({"a"})),
    SubmittedAnswer("q4", text_answer="four"),
]


@pytest.fixture
def provider() -> InMemoryQuizContentProvider:
    return InMemoryQuizContentProvider()


@pytest.fixture
def quiz_service(provider, store) -> QuizService:
    return QuizService(provider=provider, store=store, rng=random.Random(7))


class TestGetQuizForAttempt:
    """Quiz delivery."""

    @pytest.mark.asyncio
    async def test_orders_questions_and_reports_attempts(
        self, quiz_service, provider, store, catalog, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id))
        catalog.set_course(course_id, videos=2, quizzes=1)
        await store.enroll(learner_id, course_id)

        delivery = await quiz_service.get_quiz_for_attempt(learner_id, quiz.id)

        assert [q.id for q in delivery.questions] == ["q1", "q2", "q3", "q4"]
        assert delivery.attempt_number == 1
        assert delivery.attempts_left == 3

    @pytest.mark.asyncio
    async def test_randomized_questions_are_a_permutation(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id, randomize_questions=True))
        await store.enroll(learner_id, course_id)

        delivery = await quiz_service.get_quiz_for_attempt(learner_id, quiz.id)

        assert sorted(q.id for q in delivery.questions) == ["q1", "q2", "q3", "q4"]

    @pytest.mark.asyncio
    async def test_unpublished_quiz_not_found(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id, is_published=False))
        await store.enroll(learner_id, course_id)

        with pytest.raises(QuizNotFoundError):
            await quiz_service.get_quiz_for_attempt(learner_id, quiz.id)

    @pytest.mark.asyncio
    async def test_requires_enrollment(
        self, quiz_service, provider, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id))
        with pytest.raises(NotEnrolledError):
            await quiz_service.get_quiz_for_attempt(learner_id, quiz.id)

    @pytest.mark.asyncio
    async def test_refused_when_no_attempts_left(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id, max_attempts=1))
        await store.enroll(learner_id, course_id)
        await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)

        with pytest.raises(AttemptLimitExceededError):
            await quiz_service.get_quiz_for_attempt(learner_id, quiz.id)


class TestSubmitAttempt:
    """Submission scoring and recording."""

    @pytest.mark.asyncio
    async def test_scores_and_records(
        self, quiz_service, provider, store, catalog, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id))
        catalog.set_course(course_id, videos=0, quizzes=1)
        await store.enroll(learner_id, course_id)

        submission = await quiz_service.submit_attempt(
            learner_id, quiz.id, ALL_CORRECT, time_spent=120
        )

        assert submission.attempt.attempt_number == 1
        assert submission.attempt.percentage == 100
        assert submission.attempt.passed is True
        assert submission.attempt.time_spent == 120
        assert submission.first_pass is True
        assert submission.can_retake is True
        assert submission.attempts_left == 2

        enrollment = await store.get_enrollment(learner_id, course_id)
        assert enrollment.progress.quizzes_passed == 1
        assert enrollment.progress.overall_percentage == 30

    @pytest.mark.asyncio
    async def test_failed_attempt(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id))
        await store.enroll(learner_id, course_id)

        submission = await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)

        assert submission.score.total_score == 2
        assert submission.attempt.percentage == 50
        assert submission.attempt.passed is False
        assert submission.first_pass is False

    @pytest.mark.asyncio
    async def test_last_allowed_attempt_cannot_be_retaken(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id, max_attempts=2))
        await store.enroll(learner_id, course_id)

        await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)
        second = await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)

        assert second.attempt.attempt_number == 2
        assert second.can_retake is False
        assert second.attempts_left == 0

    @pytest.mark.asyncio
    async def test_duplicate_answers_rejected(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id))
        await store.enroll(learner_id, course_id)

        answers = [SubmittedAnswer("q1", frozenset({"a"})), SubmittedAnswer("q1", frozenset({"b"}))]
        with pytest.raises(QuizValidationError):
            await quiz_service.submit_attempt(learner_id, quiz.id, answers)

        enrollment = await store.get_enrollment(learner_id, course_id)
        assert enrollment.quiz_attempts == ()

    @pytest.mark.asyncio
    async def test_feedback_hidden_when_disabled(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id, show_correct_answers=False))
        await store.enroll(learner_id, course_id)

        submission = await quiz_service.submit_attempt(learner_id, quiz.id, ALL_CORRECT)

        assert submission.show_feedback is False

    @pytest.mark.asyncio
    async def test_scores_against_current_question_set(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        """Points changed after the first attempt apply to later attempts."""
        quiz = provider.add(make_quiz(course_id, max_attempts=0))
        await store.enroll(learner_id, course_id)
        first = await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)

        provider.add(quiz.with_questions(tuple(replace(q, points=2) for q in quiz.questions)))
        second = await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)

        assert first.attempt.max_score == 4
        assert second.attempt.max_score == 8
        assert second.attempt.score == 4


class TestResultsAndListing:
    @pytest.mark.asyncio
    async def test_results_newest_first_with_best(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        quiz = provider.add(make_quiz(course_id, max_attempts=0))
        await store.enroll(learner_id, course_id)
        await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)
        await quiz_service.submit_attempt(learner_id, quiz.id, ALL_CORRECT)
        await quiz_service.submit_attempt(learner_id, quiz.id, HALF_CORRECT)

        results = await quiz_service.get_results(learner_id, quiz.id)

        assert [a.attempt_number for a in results.attempts] == [3, 2, 1]
        assert results.best_attempt.attempt_number == 2
        assert results.can_retake is True
        assert results.attempts_left == -1
        assert results.stats.total_attempts == 3
        assert results.stats.average_score == 67
        assert results.stats.pass_rate == 33

    @pytest.mark.asyncio
    async def test_listing_includes_learner_standing(
        self, quiz_service, provider, store, learner_id, course_id, make_quiz
    ):
        first = provider.add(make_quiz(course_id, title="First", position=1))
        provider.add(make_quiz(course_id, title="Second", position=2))
        provider.add(make_quiz(course_id, title="Draft", position=3, is_published=False))
        await store.enroll(learner_id, course_id)
        await quiz_service.submit_attempt(learner_id, first.id, ALL_CORRECT)

        listings = await quiz_service.list_course_quizzes(learner_id, course_id)

        assert [item.quiz.title for item in listings] == ["First", "Second"]
        assert listings[0].attempts_count == 1
        assert listings[0].best_attempt.passed is True
        assert listings[0].last_attempt_at is not None
        assert listings[1].attempts_count == 0
        assert listings[1].best_attempt is None
        assert listings[1].can_attempt is True
