"""Tests for /health, / and the headers every response carries."""

from artigov.database import get_db
from artigov.main import app
from tests.conftest import EDITOR, as_user


class _DeadSession:
    def execute(self, *args, **kwargs):
        raise RuntimeError("database is down")


class TestHealth:

    def test_healthy_with_artifact_count(self, client, project_id):
        client.post(f"/api/projects/{project_id}/artifacts",
                    json={"type": "WBS"}, headers=as_user(EDITOR))
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["db"] == "ok"
        assert data["artifact_count"] == 1
        assert data["uptime_seconds"] >= 0

    def test_degraded_is_still_200(self, client):
        app.dependency_overrides[get_db] = lambda: _DeadSession()
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "degraded"
        assert resp.json()["db"] == "error"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "Artigov API"
        assert body["status"] == "running"


class TestResponseHeaders:

    def test_generated_request_id_and_timing(self, client):
        resp = client.get("/health")
        assert len(resp.headers["x-request-id"]) == 16
        assert resp.headers["x-response-time"].endswith("ms")

    def test_request_id_is_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["x-request-id"] == "abc123"
