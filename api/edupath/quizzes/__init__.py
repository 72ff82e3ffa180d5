"""Quiz assessment module.

Provides:
- Question answer keys and quiz settings
- Attempt scoring and eligibility
- Quiz delivery, submission and attempt history
"""

from .models import (
    QUIZ_TABLES_CQL,
    Question,
    QuestionOption,
    QuestionType,
    Quiz,
    SubmittedAnswer,
)


__all__ = [
    "QUIZ_TABLES_CQL",
    "Question",
    "QuestionOption",
    "QuestionType",
    "Quiz",
    "SubmittedAnswer",
]
