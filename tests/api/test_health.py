from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # In tests, neither Postgres nor Redis is configured
    assert data["checks"] == {"store": "memory", "redis": "not_configured"}


def test_ready_with_in_memory_store(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200
