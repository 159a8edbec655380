"""Tests for /api/suggestions and contact routes."""

import pytest

GOALS = "professional_context.goals"


@pytest.fixture
def batch(make_artifact, make_batch, make_suggestion, contact):
    artifact = make_artifact()
    return make_batch(
        artifact.id,
        [
            make_suggestion(GOALS, value=["mentoring", "fundraising"], confidence=0.92),
            make_suggestion("title", action="update", value="VP Engineering", confidence=0.4),
        ],
    )


class TestBatches:
    def test_get_batch(self, client, auth_headers, batch):
        res = client.get(f"/api/suggestions/{batch.id}", headers=auth_headers)
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "pending"
        assert body["field_paths"] == [GOALS, "title"]
        assert body["preselected_paths"] == [GOALS]
        assert body["confidence_scores"]["title"] == 0.4

    def test_get_batch_other_user(self, client, auth_headers_b, batch):
        assert client.get(f"/api/suggestions/{batch.id}", headers=auth_headers_b).status_code == 403

    def test_apply_partial(self, client, auth_headers, batch):
        res = client.post(
            "/api/suggestions/apply",
            json={"batch_id": batch.id, "selected_paths": [GOALS]},
            headers=auth_headers,
        )
        assert res.status_code == 200
        body = res.json()
        assert body["applied_paths"] == [GOALS]
        assert body["batch"]["status"] == "partial"
        assert body["contact"]["professional_context"]["goals"] == ["hiring", "mentoring", "fundraising"]
        assert body["contact"]["title"] == "Director of Engineering"
        assert body["contact"]["field_sources"] == {GOALS: batch.artifact_id}

    def test_apply_twice_conflicts(self, client, auth_headers, batch):
        payload = {"batch_id": batch.id, "selected_paths": []}
        assert client.post("/api/suggestions/apply", json=payload, headers=auth_headers).status_code == 200
        res = client.post("/api/suggestions/apply", json=payload, headers=auth_headers)
        assert res.status_code == 409
        assert res.json()["code"] == "RECONCILIATION_ERROR"

    def test_apply_unknown_path(self, client, auth_headers, batch):
        res = client.post(
            "/api/suggestions/apply",
            json={"batch_id": batch.id, "selected_paths": ["notes"]},
            headers=auth_headers,
        )
        assert res.status_code == 400

    def test_apply_missing_batch(self, client, auth_headers):
        res = client.post(
            "/api/suggestions/apply", json={"batch_id": "ghost", "selected_paths": []}, headers=auth_headers
        )
        assert res.status_code == 404


class TestContacts:
    def test_create_and_list(self, client, auth_headers):
        res = client.post(
            "/api/contacts",
            json={"name": "Sam Ortiz", "company": "Globex", "professional_context": {"goals": ["ship v2"]}},
            headers=auth_headers,
        )
        assert res.status_code == 201
        assert res.json()["field_sources"] == {}

        listed = client.get("/api/contacts", headers=auth_headers).json()
        assert [c["name"] for c in listed] == ["Sam Ortiz"]

    def test_create_requires_name(self, client, auth_headers):
        assert client.post("/api/contacts", json={"name": ""}, headers=auth_headers).status_code == 422

    def test_get_other_users_contact(self, client, auth_headers_b, contact):
        assert client.get("/api/contacts/contact-1", headers=auth_headers_b).status_code == 403

    def test_contact_suggestions(self, client, auth_headers, batch):
        res = client.get("/api/contacts/contact-1/suggestions", headers=auth_headers)
        assert res.status_code == 200
        assert [b["id"] for b in res.json()] == [batch.id]

        res = client.get(
            "/api/contacts/contact-1/suggestions", params={"status": "approved"}, headers=auth_headers
        )
        assert res.json() == []


class TestAuth:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_missing_token(self, client):
        assert client.get("/api/contacts").status_code in (401, 403)

    def test_bad_token(self, client):
        res = client.get("/api/contacts", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401
