"""Tests for the auth module — token creation, validation, and dev mode identity."""

from artigov.core.config import settings
from artigov.core.token_factory import create_token, decode_token
from tests.conftest import OWNER


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token("owner", "test-secret", email="owner@example.com")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.sub == "owner"
        assert payload.email == "owner@example.com"

    def test_wrong_secret_returns_none(self):
        token = create_token("owner", "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token("owner", "secret", expires_hours=-1)
        assert decode_token(token, "secret") is None

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None

    def test_foreign_issuer_returns_none(self, monkeypatch):
        from artigov.core import token_factory

        monkeypatch.setattr(token_factory, "TOKEN_ISSUER", "someone-else")
        token = create_token("owner", "secret")
        monkeypatch.undo()
        assert decode_token(token, "secret") is None

    def test_token_from_the_future_returns_none(self, monkeypatch):
        from artigov.core import token_factory

        real_time = token_factory.time.time
        monkeypatch.setattr(token_factory.time, "time", lambda: real_time() + 3600)
        token = create_token("owner", "secret")
        monkeypatch.undo()
        assert decode_token(token, "secret") is None


class TestAuthEnabledMode:
    """With AUTH_ENABLED=true the caller comes from the bearer token only."""

    def test_valid_token_accepted(self, client, project_id, monkeypatch):
        monkeypatch.setattr(settings, "auth_enabled", True)
        token = create_token(OWNER, settings.jwt_secret_key)
        resp = client.get(
            f"/api/projects/{project_id}/artifacts",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 200

    def test_header_identity_ignored(self, client, project_id, monkeypatch):
        monkeypatch.setattr(settings, "auth_enabled", True)
        resp = client.get(f"/api/projects/{project_id}/artifacts", headers={"X-User-Id": OWNER})
        assert resp.status_code == 401

    def test_token_for_unknown_user_rejected(self, client, project_id, monkeypatch):
        monkeypatch.setattr(settings, "auth_enabled", True)
        token = create_token("ghost", settings.jwt_secret_key)
        resp = client.get(
            f"/api/projects/{project_id}/artifacts",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401


class TestHeaderIdentityMode:

    def test_deactivated_user_rejected(self, client, db, project_id):
        from artigov.models import User

        db.get(User, OWNER).is_active = False
        db.commit()
        resp = client.get(f"/api/projects/{project_id}/artifacts", headers={"X-User-Id": OWNER})
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"

    def test_blank_header_rejected(self, client, project_id):
        resp = client.get(f"/api/projects/{project_id}/artifacts", headers={"X-User-Id": "  "})
        assert resp.status_code == 401
