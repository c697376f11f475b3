"""Tests for the artifact endpoints and their error mapping."""

from tests.conftest import EDITOR, OUTSIDER, OWNER, VIEWER, as_user


def _create(client, project_id, user=EDITOR, **body):
    payload = {"type": "PROJECT_CHARTER", "content": "Objectives"}
    payload.update(body)
    return client.post(f"/api/projects/{project_id}/artifacts", json=payload, headers=as_user(user))


class TestArtifactsApi:

    def test_create_returns_201(self, client, project_id):
        resp = _create(client, project_id)
        assert resp.status_code == 201
        data = resp.json()
        assert data["version"] == 1
        assert data["type"] == "PROJECT_CHARTER"
        assert data["approval_status"] == "draft"
        assert data["is_current"] is True
        assert data["root_artifact_id"] == data["id"]

    def test_list_current(self, client, project_id):
        _create(client, project_id)
        _create(client, project_id, type="wbs")
        resp = client.get(f"/api/projects/{project_id}/artifacts", headers=as_user(VIEWER))
        assert resp.status_code == 200
        assert resp.json()["total"] == 2

    def test_revise_and_versions(self, client, project_id):
        art_id = _create(client, project_id).json()["id"]
        resp = client.post(f"/api/artifacts/{art_id}/revisions", json={"reason": "Scope"},
                           headers=as_user(EDITOR))
        assert resp.status_code == 201
        assert resp.json()["version"] == 2

        versions = client.get(f"/api/artifacts/{art_id}/versions", headers=as_user(VIEWER)).json()
        assert [v["version"] for v in versions] == [1, 2]
        assert [v["is_current"] for v in versions] == [False, True]

    def test_restore(self, client, project_id):
        v1 = _create(client, project_id, content="first").json()
        v2 = client.post(f"/api/artifacts/{v1['id']}/revisions", json={}, headers=as_user(EDITOR)).json()
        client.put(f"/api/artifacts/{v2['id']}/content", json={"content": "second"}, headers=as_user(EDITOR))

        resp = client.post(f"/api/projects/{project_id}/artifacts/restore",
                           json={"target_artifact_id": v1["id"]}, headers=as_user(OWNER))
        assert resp.status_code == 201
        assert resp.json()["content"] == "first"
        assert resp.json()["revision_type"] == "restore"

    def test_update_content_json_and_title(self, client, project_id):
        art_id = _create(client, project_id).json()["id"]
        resp = client.put(f"/api/artifacts/{art_id}/content-json",
                          json={"content_json": {"blocks": []}}, headers=as_user(EDITOR))
        assert resp.status_code == 200
        assert resp.json()["content_json"] == {"blocks": []}

        resp = client.put(f"/api/artifacts/{art_id}/title",
                          json={"project_id": project_id, "title": "Charter 2.0"}, headers=as_user(EDITOR))
        assert resp.status_code == 200
        assert resp.json()["title"] == "Charter 2.0"

    def test_diff_and_audit(self, client, project_id):
        art_id = _create(client, project_id).json()["id"]
        diff = client.get(f"/api/artifacts/{art_id}/diff", headers=as_user(VIEWER))
        assert diff.status_code == 200
        assert diff.json()["baseline"] is None

        audit = client.get(f"/api/artifacts/{art_id}/audit", headers=as_user(VIEWER))
        assert [e["action"] for e in audit.json()] == ["create"]


class TestArtifactsApiErrors:

    def test_missing_identity_is_401(self, client, project_id):
        resp = client.get(f"/api/projects/{project_id}/artifacts")
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"

    def test_unknown_user_is_401(self, client, project_id):
        resp = client.get(f"/api/projects/{project_id}/artifacts", headers=as_user("ghost"))
        assert resp.status_code == 401

    def test_viewer_create_is_403(self, client, project_id):
        assert _create(client, project_id, user=VIEWER).status_code == 403

    def test_non_member_is_403(self, client, project_id):
        resp = client.get(f"/api/projects/{project_id}/artifacts", headers=as_user(OUTSIDER))
        assert resp.status_code == 403
        assert resp.json()["error"] == "NOT_MEMBER"

    def test_unknown_project_is_404(self, client, project_id):
        resp = client.get("/api/projects/nope/artifacts", headers=as_user(OWNER))
        assert resp.status_code == 404

    def test_unknown_artifact_is_404(self, client, project_id):
        resp = client.get("/api/artifacts/nope", headers=as_user(OWNER))
        assert resp.status_code == 404
        assert resp.json()["error"] == "ARTIFACT_NOT_FOUND"

    def test_invalid_type_is_400(self, client, project_id):
        resp = _create(client, project_id, type="memo")
        assert resp.status_code == 400
        assert resp.json()["details"]["field"] == "type"

    def test_malformed_body_is_400(self, client, project_id):
        resp = client.post(f"/api/projects/{project_id}/artifacts", json={"content": "no type"},
                           headers=as_user(EDITOR))
        assert resp.status_code == 400
        assert resp.json()["error"] == "VALIDATION_ERROR"
        assert "type" in [e["field"] for e in resp.json()["details"]["errors"]]

    def test_edit_locked_is_409(self, client, project_id):
        art_id = _create(client, project_id).json()["id"]
        client.post(f"/api/projects/{project_id}/artifacts/{art_id}/submit", headers=as_user(EDITOR))
        resp = client.put(f"/api/artifacts/{art_id}/content", json={"content": "x"}, headers=as_user(EDITOR))
        assert resp.status_code == 409
        assert resp.json()["error"] == "NOT_EDITABLE"
