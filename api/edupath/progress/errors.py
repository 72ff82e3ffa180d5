"""Progress tracking errors.

Raised by the pure aggregate transitions and by the enrollment store;
mapped to HTTP responses in ``dependencies.handle_progress_error``.
"""


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotEnrolledError(ProgressError):
    """Learner not enrolled in course (or enrollment not tracking progress)."""

    def __init__(self, message: str = "Learner is not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ProgressError):
    """Learner already enrolled."""

    def __init__(self, message: str = "Learner is already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class AttemptLimitExceededError(ProgressError):
    """No attempts left for this quiz."""

    def __init__(self, message: str = "Maximum number of attempts reached"):
        super().__init__(message, "attempt_limit_exceeded")


class ConcurrencyConflictError(ProgressError):
    """Conditional write kept losing to concurrent updates."""

    def __init__(
        self, message: str = "Enrollment was modified concurrently, try again"
    ):
        super().__init__(message, "concurrency_conflict")


class InvalidProgressValueError(ProgressError):
    """Negative or otherwise out-of-range progress input."""

    def __init__(self, message: str = "Invalid progress value"):
        super().__init__(message, "invalid_progress_value")


class InvalidStatusTransitionError(ProgressError):
    """Requested status change not allowed from the current status."""

    def __init__(self, message: str = "Invalid enrollment status transition"):
        super().__init__(message, "invalid_status_transition")
