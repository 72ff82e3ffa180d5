"""Quiz-level statistics over a set of attempts."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from edupath.utils.rounding import ratio_percent, round_half_up


if TYPE_CHECKING:
    from edupath.progress.models import QuizAttempt


@dataclass(frozen=True)
class QuizStats:
    """Aggregated attempt statistics for one quiz."""

    total_attempts: int = 0
    average_score: int = 0
    pass_rate: int = 0


def calculate_stats(attempts: Sequence["QuizAttempt"]) -> QuizStats:
    """Average percentage and pass rate, both rounded; zeros when empty."""
    if not attempts:
        return QuizStats()

    total = len(attempts)
    average = round_half_up(
        ratio_percent(sum(a.percentage for a in attempts), total * 100)
    )
    passed = sum(1 for a in attempts if a.passed)
    return QuizStats(
        total_attempts=total,
        average_score=average,
        pass_rate=round_half_up(ratio_percent(passed, total)),
    )
