"""Tests for attempt eligibility."""

import pytest

from edupath.quizzes.eligibility import attempts_left, can_attempt


class TestCanAttempt:
    @pytest.mark.parametrize(
        ("used", "max_attempts", "expected"),
        [
            (0, 3, True),
            (2, 3, True),
            (3, 3, False),
            (4, 3, False),
            (0, 1, True),
            (1, 1, False),
        ],
    )
    def test_limited(self, used, max_attempts, expected):
        assert can_attempt([object()] * used, max_attempts) is expected

    @pytest.mark.parametrize("used", [0, 1, 50])
    def test_zero_means_unlimited(self, used):
        assert can_attempt([object()] * used, 0) is True

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            can_attempt([], -1)


class TestAttemptsLeft:
    def test_counts_down(self):
        assert attempts_left([], 3) == 3
        assert attempts_left([object()] * 2, 3) == 1
        assert attempts_left([object()] * 5, 3) == 0

    def test_unlimited_is_minus_one(self):
        assert attempts_left([object()] * 10, 0) == -1
