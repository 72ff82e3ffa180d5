"""FastAPI dependencies for quizzes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import QuizError, QuizService


async def get_quiz_service(request: Request) -> QuizService:
    """Get quiz service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "quiz_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Quiz service not available",
        )
    return app_state.quiz_service


# Type alias for dependency injection
QuizServiceDep = Annotated[QuizService, Depends(get_quiz_service)]


def handle_quiz_error(error: QuizError) -> HTTPException:
    """Convert quiz errors to HTTP exceptions."""
    status_map = {
        "quiz_not_found": status.HTTP_404_NOT_FOUND,
        "validation_error": status.HTTP_400_BAD_REQUEST,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )
