"""
Tests for the metrics registry and the request logging middleware.
"""

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from codeask.observability import MetricsRegistry, RequestLoggingMiddleware


def test_counters_start_at_zero_and_accumulate():
    metrics = MetricsRegistry()

    metrics.inc("questions.answered")
    metrics.inc("ingestion.files_indexed", 5)
    metrics.inc("ingestion.files_indexed", 2)

    assert metrics.get("missing") == 0
    assert metrics.snapshot() == {"ingestion.files_indexed": 7, "questions.answered": 1}


def test_snapshot_is_a_copy():
    metrics = MetricsRegistry()
    metrics.inc("a")

    snapshot = metrics.snapshot()
    snapshot["a"] = 100

    assert metrics.get("a") == 1


def test_record_api_call_groups_by_path_and_status():
    metrics = MetricsRegistry()

    metrics.record_api_call("/api/repositories/abc", 200)
    metrics.record_api_call("/api/repositories", 409)
    metrics.record_api_call("/api/meetings", 200)
    metrics.record_api_call("/health", 200)

    assert metrics.snapshot() == {
        "api.calls.meetings": 1,
        "api.calls.repositories": 2,
        "api.calls.total": 4,
        "api.status.200": 3,
        "api.status.409": 1,
    }


def test_middleware_logs_one_line_per_request(caplog):
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)
    app.state.container = type("Container", (), {"metrics": MetricsRegistry()})()

    @app.get("/ping")
    def ping() -> dict:
        return {"pong": True}

    with caplog.at_level(logging.INFO, logger="codeask.observability.middleware"):
        TestClient(app).get("/ping", params={"verbose": "1"})

    records = [r for r in caplog.records if r.name == "codeask.observability.middleware"]
    assert len(records) == 1
    assert records[0].method == "GET"
    assert records[0].path == "/ping"
    assert records[0].status_code == 200
    assert records[0].query_string == "verbose=1"
    assert records[0].duration_ms >= 0
    assert app.state.container.metrics.snapshot() == {"api.calls.total": 1, "api.status.200": 1}
