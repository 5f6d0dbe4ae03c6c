"""Tests for Prometheus metrics endpoint and custom pipeline metrics."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from drafter.observability.metrics import DRAFTS_CREATED, PIPELINE_FAILURES, setup_metrics


@pytest.fixture()
def metrics_app() -> FastAPI:
    """Create a minimal FastAPI app with Prometheus instrumentation."""
    app = FastAPI()

    @app.get("/hello")
    async def hello():
        return {"msg": "hello"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready():
        return {"status": "ready"}

    setup_metrics(app)
    return app


@pytest.fixture()
def metrics_client(metrics_app: FastAPI) -> TestClient:
    """TestClient for the metrics-enabled app."""
    return TestClient(metrics_app)


def test_metrics_endpoint_returns_prometheus_format(metrics_client: TestClient) -> None:
    """GET /metrics returns 200 with Prometheus-format text containing expected metrics."""
    DRAFTS_CREATED.labels(category="default")
    PIPELINE_FAILURES.labels(stage="fetch")
    metrics_client.get("/hello")
    resp = metrics_client.get("/metrics")
    assert resp.status_code == 200
    body = resp.text
    assert "http_request" in body
    assert "drafter_drafts_created_total" in body
    assert "drafter_pipeline_failures_total" in body


def test_excluded_handlers_not_in_metrics(metrics_client: TestClient) -> None:
    """/health and /ready do NOT appear as handler labels in metrics output."""
    metrics_client.get("/health")
    metrics_client.get("/ready")
    body = metrics_client.get("/metrics").text
    lines = [
        line
        for line in body.splitlines()
        if "http_request_duration" in line and 'handler="' in line
    ]
    for line in lines:
        assert '/health"' not in line, f"/health found in metrics: {line}"
        assert '/ready"' not in line, f"/ready found in metrics: {line}"


def test_drafts_created_counter_increments(metrics_client: TestClient) -> None:
    """DRAFTS_CREATED increments are reflected in /metrics output."""
    sample = 'drafter_drafts_created_total{category="payment_links"}'
    DRAFTS_CREATED.labels(category="payment_links")
    initial_value = _extract_sample_value(metrics_client.get("/metrics").text, sample)

    DRAFTS_CREATED.labels(category="payment_links").inc()

    new_value = _extract_sample_value(metrics_client.get("/metrics").text, sample)
    assert new_value == initial_value + 1.0


def _extract_sample_value(text: str, sample: str) -> float:
    """Extract the numeric value of one sample line from Prometheus text output."""
    for line in text.splitlines():
        if line.startswith(sample + " "):
            return float(line.split()[-1])
    raise ValueError(f"Sample {sample} not found in output")
