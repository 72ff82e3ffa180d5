"""Tests for attempt scoring."""

import pytest

from edupath.quizzes.models import Question, QuestionType, SubmittedAnswer
from edupath.quizzes.scoring import is_answer_correct, percentage, score


def choice(question_id: str, *selected: str) -> SubmittedAnswer:
    return SubmittedAnswer(question_id=question_id, selected_option_ids=frozenset(selected))


def text(question_id: str, value: str | None) -> SubmittedAnswer:
    return SubmittedAnswer(question_id=question_id, text_answer=value)


class TestCorrectnessRules:
    """Per-type correctness rules."""

    @pytest.mark.parametrize(
        ("selected", "expected"),
        [
            (("b",), True),
            (("a",), False),
            (("a", "b"), False),
            ((), False),
        ],
    )
    def test_single_choice(self, sample_questions, selected, expected):
        """Exactly one option, and it must be in the answer key."""
        assert is_answer_correct(sample_questions[0], choice("q1", *selected)) is expected

    @pytest.mark.parametrize(
        ("selected", "expected"),
        [
            (("a", "c"), True),
            (("c", "a"), True),
            (("a",), False),
            (("a", "c", "d"), False),
            ((), False),
        ],
    )
    def test_multiple_choice_requires_exact_set(self, sample_questions, selected, expected):
        """A strict subset or superset of the key is wrong, no partial credit."""
        assert is_answer_correct(sample_questions[1], choice("q2", *selected)) is expected

    def test_true_false(self, sample_questions):
        assert is_answer_correct(sample_questions[2], choice("q3", "false"))
        assert not is_answer_correct(sample_questions[2], choice("q3", "true"))

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Four", True),
            ("  four ", True),
            ("FOUR", True),
            ("4", False),
            ("", False),
            (None, False),
        ],
    )
    def test_fill_in_blank_trims_and_casefolds(self, sample_questions, value, expected):
        assert is_answer_correct(sample_questions[3], text("q4", value)) is expected


class TestScore:
    """Aggregate scoring."""

    def test_all_correct(self, sample_questions):
        answers = {
            "q1": choice("q1", "b"),
            "q2": choice("q2", "a", "c"),
            "q3": choice("q3", "false"),
            "q4": text("q4", "four"),
        }
        result = score(sample_questions, answers)

        assert result.total_score == 4
        assert result.max_score == 4
        assert result.percentage == 100
        assert all(r.correct for r in result.per_question)

    def test_unanswered_question_scores_zero(self, sample_questions):
        """Missing answers are incorrect, never an error."""
        result = score(sample_questions, {"q1": choice("q1", "b")})

        assert result.total_score == 1
        assert result.max_score == 4
        assert result.percentage == 25
        unanswered = [r for r in result.per_question if not r.answered]
        assert [r.question_id for r in unanswered] == ["q2", "q3", "q4"]
        assert all(r.score == 0 for r in unanswered)

    def test_superset_scores_question_zero(self, sample_questions):
        result = score(sample_questions, {"q2": choice("q2", "a", "b", "c", "d")})
        q2 = result.per_question[1]
        assert q2.correct is False
        assert q2.score == 0

    def test_max_score_sums_points_of_presented_questions(self):
        questions = [
            Question(id="x", type=QuestionType.TRUE_FALSE, correct_answers=("true",), points=3),
            Question(id="y", type=QuestionType.TRUE_FALSE, correct_answers=("true",), points=2),
        ]
        result = score(questions, {"x": choice("x", "true")})
        assert result.max_score == 5
        assert result.total_score == 3
        assert result.percentage == 60

    def test_answers_for_unknown_questions_are_ignored(self, sample_questions):
        result = score(sample_questions, {"nope": choice("nope", "a")})
        assert result.total_score == 0
        assert len(result.per_question) == 4

    def test_deterministic(self, sample_questions):
        """Same inputs always give the same score."""
        answers = {"q1": choice("q1", "b"), "q4": text("q4", "Four")}
        first = score(sample_questions, answers)
        second = score(sample_questions, answers)
        assert (first.total_score, first.max_score) == (second.total_score, second.max_score)
        assert first == second

    def test_empty_question_set(self):
        result = score([], {})
        assert result.max_score == 0
        assert result.percentage == 0
        assert result.passed(70) is False

    def test_passed_uses_passing_score(self, sample_questions):
        answers = {
            "q1": choice("q1", "b"),
            "q2": choice("q2", "a", "c"),
            "q3": choice("q3", "false"),
        }
        result = score(sample_questions, answers)
        assert result.percentage == 75
        assert result.passed(70) is True
        assert result.passed(75) is True
        assert result.passed(80) is False


class TestFeedback:
    """Per-question feedback payload."""

    def test_answered_question_carries_feedback(self, sample_questions):
        result = score(sample_questions, {"q1": choice("q1", "a")})
        data = result.per_question[0].to_dict()
        assert data == {
            "question_id": "q1",
            "correct": False,
            "score": 0,
            "max_score": 1,
            "user_answer": ["a"],
            "correct_answers": ["b"],
            "explanation": "Paris.",
        }

    def test_unanswered_question_has_no_feedback(self, sample_questions):
        result = score(sample_questions, {})
        data = result.per_question[0].to_dict()
        assert "correct_answers" not in data
        assert "user_answer" not in data


class TestPercentage:
    @pytest.mark.parametrize(
        ("earned", "total", "expected"),
        [
            (0, 0, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),  # 12.5 rounds half up
            (5, 5, 100),
        ],
    )
    def test_rounding(self, earned, total, expected):
        assert percentage(earned, total) == expected
