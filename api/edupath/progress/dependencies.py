"""FastAPI dependencies for progress tracking.

Provides dependency injection for:
- Enrollment progress store
- Current learner identity
- Error handlers
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from edupath.config import get_settings

from .errors import ProgressError
from .service import EnrollmentProgressStore


async def get_progress_store(request: Request) -> EnrollmentProgressStore:
    """Get enrollment progress store from app state.

    Args:
        request: FastAPI request

    Returns:
        EnrollmentProgressStore instance
    """
    app_state = request.app.state
    if not getattr(app_state, "progress_store", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return app_state.progress_store


async def get_current_learner_id(request: Request) -> UUID:
    """Learner id from the identity header set by the authentication gateway."""
    header = get_settings().learner_id_header
    raw = request.headers.get(header)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {header} header",
        )
    try:
        return UUID(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid {header} header",
        ) from None


# Type aliases for dependency injection
ProgressStoreDep = Annotated[EnrollmentProgressStore, Depends(get_progress_store)]
CurrentLearnerId = Annotated[UUID, Depends(get_current_learner_id)]


PROGRESS_ERROR_STATUS = {
    "not_enrolled": status.HTTP_403_FORBIDDEN,
    "already_enrolled": status.HTTP_409_CONFLICT,
    "attempt_limit_exceeded": status.HTTP_403_FORBIDDEN,
    "concurrency_conflict": status.HTTP_409_CONFLICT,
    "invalid_progress_value": status.HTTP_400_BAD_REQUEST,
    "invalid_status_transition": status.HTTP_409_CONFLICT,
}


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert progress errors to HTTP exceptions.

    The detail carries the error code so clients can tell a refused
    retake apart from a transient failure.
    """
    status_code = PROGRESS_ERROR_STATUS.get(
        error.code, status.HTTP_500_INTERNAL_SERVER_ERROR
    )

    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )
