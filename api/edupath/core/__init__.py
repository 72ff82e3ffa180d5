# Core infrastructure
from edupath.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_learner_id,
    get_request_id,
    set_correlation_id,
    set_learner_id,
    set_request_id,
    set_trace_id,
)
from edupath.core.database import init_async_cassandra, shutdown_async_cassandra
from edupath.core.logging import configure_structlog, get_logger
from edupath.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_learner_id",
    "get_logger",
    "get_request_id",
    "init_async_cassandra",
    "set_correlation_id",
    "set_learner_id",
    "set_request_id",
    "set_trace_id",
    "shutdown_async_cassandra",
]
