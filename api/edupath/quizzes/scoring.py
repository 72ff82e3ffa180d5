"""Attempt scoring.

Pure functions: given the question set presented for an attempt and the
learner's answers, decide per-question correctness and the aggregate
score. No partial credit is awarded for any question type.

Correctness rules:
- single_choice / true_false: exactly one option selected, and it is in
  the answer key
- multiple_choice: the selected set equals the answer key exactly
- fill_in_blank: trimmed, case-folded text equals the (single) expected
  answer, trimmed and case-folded
An unanswered question is incorrect and scores 0.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from edupath.quizzes.models import AnswerMap, Question, QuestionType, SubmittedAnswer
from edupath.utils.rounding import ratio_percent, round_half_up


@dataclass(frozen=True)
class QuestionResult:
    """Scoring outcome of one question."""

    question_id: str
    correct: bool
    score: float
    max_score: float
    answered: bool = True
    user_answer: list[str] | str | None = None
    correct_answers: tuple[str, ...] = ()
    explanation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "question_id": self.question_id,
            "correct": self.correct,
            "score": self.score,
            "max_score": self.max_score,
        }
        if self.answered:
            data["user_answer"] = self.user_answer
            data["correct_answers"] = list(self.correct_answers)
            data["explanation"] = self.explanation
        return data


@dataclass(frozen=True)
class ScoreResult:
    """Aggregate outcome of scoring one attempt."""

    per_question: tuple[QuestionResult, ...]
    total_score: float
    max_score: float

    @property
    def percentage(self) -> int:
        """Rounded percentage of points earned, 0 when nothing was scorable."""
        return percentage(self.total_score, self.max_score)

    def passed(self, passing_score: int) -> bool:
        """Whether the attempt reaches the quiz's passing percentage."""
        return self.percentage >= passing_score


def percentage(score: float, max_score: float) -> int:
    """``round(score / max_score * 100)``, or 0 when ``max_score`` is 0."""
    if max_score <= 0:
        return 0
    return round_half_up(ratio_percent(score, max_score))


def _normalize_text(value: str | None) -> str | None:
    return value.strip().casefold() if value is not None else None


def is_answer_correct(question: Question, answer: SubmittedAnswer) -> bool:
    """Apply the correctness rule of the question's type."""
    selected = answer.selected_option_ids

    if question.type in (QuestionType.SINGLE_CHOICE, QuestionType.TRUE_FALSE):
        return len(selected) == 1 and next(iter(selected)) in question.correct_option_ids

    if question.type == QuestionType.MULTIPLE_CHOICE:
        return selected == question.correct_option_ids

    if question.type == QuestionType.FILL_IN_BLANK:
        submitted = _normalize_text(answer.text_answer)
        return submitted is not None and submitted == _normalize_text(
            question.correct_answers[0]
        )

    return False


def _user_answer(question: Question, answer: SubmittedAnswer) -> list[str] | str | None:
    if question.type == QuestionType.FILL_IN_BLANK:
        return answer.text_answer
    return sorted(answer.selected_option_ids)


def score(
    questions: Iterable[Question],
    answers: AnswerMap,
) -> ScoreResult:
    """Score an attempt against the questions actually presented.

    Args:
        questions: Question set read from the quiz content provider at
            submission time. ``max_score`` is derived from it, not from a
            stored total.
        answers: Mapping of question id to the learner's answer. Answers
            for unknown question ids are ignored.

    Returns:
        ScoreResult with one QuestionResult per question, in input order.
    """
    results: list[QuestionResult] = []
    total = 0.0
    max_score = 0.0

    for question in questions:
        max_score += question.points
        answer = answers.get(question.id)

        if answer is None:
            results.append(
                QuestionResult(
                    question_id=question.id,
                    correct=False,
                    score=0,
                    max_score=question.points,
                    answered=False,
                )
            )
            continue

        correct = is_answer_correct(question, answer)
        earned = question.points if correct else 0
        total += earned
        results.append(
            QuestionResult(
                question_id=question.id,
                correct=correct,
                score=earned,
                max_score=question.points,
                user_answer=_user_answer(question, answer),
                correct_answers=question.correct_answers,
                explanation=question.explanation,
            )
        )

    return ScoreResult(per_question=tuple(results), total_score=total, max_score=max_score)
