"""Attempt eligibility rules.

Evaluated twice per attempt: before quiz content is served, and again at
commit time inside the enrollment write, where the attempt history is the
one being conditionally overwritten.
"""

from collections.abc import Sized

# max_attempts value meaning "no limit"
UNLIMITED_ATTEMPTS = 0


def can_attempt(attempts_for_quiz: Sized, max_attempts: int) -> bool:
    """Whether another attempt may be started or submitted.

    Args:
        attempts_for_quiz: The learner's existing attempts for this quiz.
        max_attempts: Configured limit, 0 = unlimited.
    """
    if max_attempts < 0:
        raise ValueError(f"max_attempts must be >= 0 (got {max_attempts})")
    if max_attempts == UNLIMITED_ATTEMPTS:
        return True
    return len(attempts_for_quiz) < max_attempts


def attempts_left(attempts_for_quiz: Sized, max_attempts: int) -> int:
    """Remaining attempts, or -1 when unlimited."""
    if max_attempts == UNLIMITED_ATTEMPTS:
        return -1
    return max(0, max_attempts - len(attempts_for_quiz))
