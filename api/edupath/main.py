"""edupath API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edupath.config import Settings, get_settings
from edupath.core.context import get_request_id
from edupath.core.database import init_async_cassandra, shutdown_async_cassandra
from edupath.core.logging import configure_structlog, get_logger
from edupath.core.middleware import RequestContextMiddleware
from edupath.health.router import router as health_router
from edupath.progress.catalog import (
    CassandraCourseCatalog,
    CourseCatalog,
    InMemoryCourseCatalog,
)
from edupath.progress.repository import (
    CassandraEnrollmentRepository,
    EnrollmentRepository,
    InMemoryEnrollmentRepository,
)
from edupath.progress.router import enrollments_router
from edupath.progress.router import router as progress_router
from edupath.progress.service import EnrollmentProgressStore
from edupath.quizzes.provider import (
    CassandraQuizContentProvider,
    InMemoryQuizContentProvider,
    QuizContentProvider,
)
from edupath.quizzes.router import router as quizzes_router
from edupath.quizzes.service import QuizService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(
    settings, log_dir=Path(settings.log_dir), file_output=not settings.is_testing
)

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    enrollment_repository: EnrollmentRepository | None = None
    catalog: CourseCatalog | None = None
    quiz_provider: QuizContentProvider | None = None
    progress_store: EnrollmentProgressStore | None = None
    quiz_service: QuizService | None = None


def build_state(settings: Settings, session: Any = None) -> AppState:
    """Wire collaborators for the configured storage backend.

    With a Cassandra session every collaborator shares it; without one the
    in-memory implementations are used.
    """
    state = AppState()
    state.cassandra_session = session

    if session is not None:
        keyspace = settings.cassandra_keyspace
        state.enrollment_repository = CassandraEnrollmentRepository(session, keyspace)
        state.catalog = CassandraCourseCatalog(session, keyspace)
        state.quiz_provider = CassandraQuizContentProvider(
            session,
            keyspace,
            default_passing_score=settings.quiz_default_passing_score,
            default_max_attempts=settings.quiz_default_max_attempts,
        )
    else:
        state.enrollment_repository = InMemoryEnrollmentRepository()
        state.catalog = InMemoryCourseCatalog()
        state.quiz_provider = InMemoryQuizContentProvider()

    state.progress_store = EnrollmentProgressStore(
        repository=state.enrollment_repository,
        catalog=state.catalog,
        max_write_retries=settings.progress_max_write_retries,
    )
    state.quiz_service = QuizService(
        provider=state.quiz_provider,
        store=state.progress_store,
    )
    return state


def _publish_state(app: FastAPI, state: AppState) -> None:
    app.state.cassandra_session = state.cassandra_session
    app.state.enrollment_repository = state.enrollment_repository
    app.state.catalog = state.catalog
    app.state.quiz_provider = state.quiz_provider
    app.state.progress_store = state.progress_store
    app.state.quiz_service = state.quiz_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Owns the lifecycle of every collaborator; none are module globals.
    """
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        storage_backend=settings.storage_backend,
    )

    session = None
    if settings.uses_cassandra:
        try:
            session = await init_async_cassandra(settings)
            logger.info("cassandra_initialized")
        except Exception as e:
            logger.warning(
                "database_init_skipped",
                error=str(e),
                message="Running without database connection",
            )

    if settings.uses_cassandra and session is None:
        # Dependencies answer 503 until the database is reachable
        _publish_state(app, AppState())
    else:
        _publish_state(app, build_state(settings, session))
        logger.info("services_initialized", storage_backend=settings.storage_backend)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    if session is not None:
        await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are never rendered in responses; handlers below log them
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Learner progress and assessment API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
        learner_id_header=settings.learner_id_header,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages.

        Domain errors arrive with a ``{"code", "message"}`` detail; the code
        is passed through so clients can branch on it.
        """
        request_id = _get_request_id_safe(request)
        detail = exc.detail
        code = None
        if isinstance(detail, dict):
            code = detail.get("code")
            detail = detail.get("message", "")

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            code=code,
            detail=str(detail),
            path=request.url.path,
            method=request.method,
        )

        content = {
            "error": True,
            "message": str(detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error",
            "status_code": exc.status_code,
            "request_id": request_id,
        }
        if code:
            content["code"] = code
        return ORJSONResponse(
            status_code=exc.status_code, content=content, headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with field-level details."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "code": "validation_error",
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Full details go to the log; the response stays generic.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(quizzes_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "edupath API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
