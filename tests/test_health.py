"""Tests for /health and /ready observability endpoints."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from drafter.health import register_health_routes

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_app(services: dict | None = None) -> FastAPI:
    """Create a minimal FastAPI app with health routes and given services."""
    app = FastAPI()
    app.state.services = services or {}
    register_health_routes(app)
    return app


class TestHealthEndpoint:
    """GET /health liveness probe."""

    def test_health_returns_200(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestReadyEndpoint:
    """GET /ready readiness probe."""

    def test_ready_returns_200_when_clients_configured(self) -> None:
        app = _make_app({"missive_client": object(), "anthropic_client": object()})

        response = TestClient(app).get("/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "checks": {"missive": "ok", "anthropic": "ok"},
        }

    def test_ready_returns_503_when_missive_missing(self) -> None:
        app = _make_app({"missive_client": None, "anthropic_client": object()})

        response = TestClient(app).get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"]["missive"] == "fail"
        assert body["checks"]["anthropic"] == "ok"

    def test_ready_returns_503_when_nothing_configured(self) -> None:
        response = TestClient(_make_app()).get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"] == {"missive": "fail", "anthropic": "fail"}
