"""Tests for request context propagation."""

from uuid import uuid4

from fastapi.testclient import TestClient

from edupath.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_learner_id,
    get_request_id,
    set_learner_id,
)


def test_request_context_sets_and_restores():
    learner_id = uuid4()
    clear_context()

    with RequestContext(request_id="req-1", learner_id=learner_id, trace_id="t-1"):
        assert get_context() == {
            "request_id": "req-1",
            "learner_id": str(learner_id),
            "trace_id": "t-1",
        }

    assert get_request_id() == ""
    assert get_learner_id() is None


def test_clear_context():
    set_learner_id(uuid4())
    clear_context()
    assert get_context() == {}


def test_middleware_echoes_request_id(client: TestClient):
    response = client.get("/health/live", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_middleware_generates_request_id(client: TestClient):
    response = client.get("/health/live")
    assert response.headers["X-Request-ID"]
