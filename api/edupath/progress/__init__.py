"""Learner progress tracking module.

Provides:
- Enrollment aggregate with video progress and quiz attempt log
- Weighted progress accumulation and the completion ratchet
- Conditional-write enrollment store with bounded retries
"""

from .catalog import CATALOG_TABLES_CQL
from .models import (
    PROGRESS_TABLES_CQL,
    Enrollment,
    EnrollmentStatus,
    ProgressSnapshot,
    QuizAttempt,
    VideoProgressRecord,
)


__all__ = [
    "CATALOG_TABLES_CQL",
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "EnrollmentStatus",
    "ProgressSnapshot",
    "QuizAttempt",
    "VideoProgressRecord",
]
