"""
Unit tests for the service health endpoint.
"""

from fastapi.testclient import TestClient

import prepdeck.api.main as api_main


def test_health_reports_utc_timestamp(monkeypatch, now):
    monkeypatch.setattr(api_main, "check_database_health", lambda: ("ok", None))
    monkeypatch.setattr(api_main, "utcnow", lambda: now)

    # No context manager: the lifespan (database init, workers) does not run
    client = TestClient(api_main.app)
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["timestamp"] == now.isoformat()
    assert body["ai_cache"] is None
    assert body["vocabulary_autogen"] is None


def test_health_degraded_when_database_down(monkeypatch):
    monkeypatch.setattr(api_main, "check_database_health", lambda: ("error", "connection refused"))

    body = TestClient(api_main.app).get("/health").json()

    assert body["status"] == "degraded"
    assert body["database"] == {"status": "error", "error": "connection refused"}
