"""Request context management using contextvars.

Each request gets a unique ID plus the learner and tracing identifiers
supplied by the gateway. Values are readable anywhere in the call stack,
which lets the progress engine log with full request context without
threading these identifiers through every function signature.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
learner_id_var: ContextVar[str | None] = ContextVar("learner_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_learner_id() -> str | None:
    """Get the current learner ID."""
    return learner_id_var.get()


def set_learner_id(learner_id: str | UUID | None) -> None:
    """Set the learner ID for the current context."""
    learner_id_var.set(str(learner_id) if learner_id is not None else None)


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID taken from distributed tracing headers."""
    trace_id_var.set(trace_id)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for tracking related operations."""
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    learner_id = get_learner_id()
    if learner_id:
        context["learner_id"] = learner_id

    trace_id = trace_id_var.get()
    if trace_id:
        context["trace_id"] = trace_id

    correlation_id = correlation_id_var.get()
    if correlation_id:
        context["correlation_id"] = correlation_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent context leakage.
    """
    request_id_var.set("")
    learner_id_var.set(None)
    trace_id_var.set(None)
    correlation_id_var.set(None)


class RequestContext:
    """Context manager for request scope.

    Usage:
        with RequestContext(learner_id=learner_id):
            await store.apply_video_progress(...)  # logs carry learner_id
    """

    def __init__(
        self,
        request_id: str | None = None,
        learner_id: str | UUID | None = None,
        trace_id: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.learner_id = learner_id
        self.trace_id = trace_id
        self._tokens: list[tuple[ContextVar[Any], Any]] = []

    def __enter__(self) -> "RequestContext":
        self._tokens.append(
            (request_id_var, request_id_var.set(self.request_id or generate_request_id()))
        )
        if self.learner_id is not None:
            self._tokens.append(
                (learner_id_var, learner_id_var.set(str(self.learner_id)))
            )
        if self.trace_id is not None:
            self._tokens.append((trace_id_var, trace_id_var.set(self.trace_id)))
        return self

    def __exit__(self, *_: object) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
