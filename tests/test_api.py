"""
HTTP-level tests for the viewer API, run against the synthetic demo dataset.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client(demo_source):
    from main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    response = client.post("/auth/token", json={"username": "instructor", "password": "instructor"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def assignment_id(client, auth_headers):
    return client.get("/assignments", headers=auth_headers).json()[0]["assignment_id"]


class TestPublicEndpoints:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["demo_mode"] is True

    def test_login_rejects_bad_credentials(self, client):
        response = client.post("/auth/token", json={"username": "instructor", "password": "nope"})
        assert response.status_code == 401

    def test_login_returns_role(self, client):
        body = client.post("/auth/token", json={"username": "admin", "password": "admin"}).json()
        assert body["role"] == "admin"
        assert body["token_type"] == "bearer"


class TestAuthRequired:

    @pytest.mark.parametrize("path", [
        "/assignments",
        "/assignments/cs101/hw1-linked-lists/students",
        "/assignments/cs101/hw1-linked-lists/students/dev-a1f3/activity",
    ])
    def test_missing_token(self, client, path):
        assert client.get(path).status_code in (401, 403)

    def test_bad_token(self, client):
        response = client.get("/assignments", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401


class TestAssignments:

    def test_list_assignments(self, client, auth_headers):
        body = client.get("/assignments", headers=auth_headers).json()
        assert [a["course_id"] for a in body] == ["cs101", "cs101"]

    def test_list_students_with_slash_in_assignment_id(self, client, auth_headers, assignment_id):
        assert "/" in assignment_id
        response = client.get(f"/assignments/{assignment_id}/students", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()) == 4

    def test_unknown_assignment(self, client, auth_headers):
        response = client.get("/assignments/cs999/hw0/students", headers=auth_headers)
        assert response.status_code == 404


class TestStudentActivity:

    def _activity(self, client, headers, assignment_id, student_id):
        response = client.get(
            f"/assignments/{assignment_id}/students/{student_id}/activity", headers=headers
        )
        assert response.status_code == 200, response.text
        return response.json()

    def test_clean_sessions_use_server_totals(self, client, auth_headers, assignment_id):
        body = self._activity(client, auth_headers, assignment_id, "dev-a1f3")
        metrics = body["metrics"]
        assert body["report_available"] is True
        assert metrics["using_fallback"] is False
        assert metrics["focused_seconds"] == body["summary"]["focused_seconds_from_session_end"]
        assert metrics["session_count"] == body["summary"]["session_count"]
        assert metrics["focused_display"] != "0s"
        assert sum(row["count"] for row in body["type_distribution"]) == body["summary"]["event_count"]

    def test_empty_server_time_falls_back_to_ticks(self, client, auth_headers, assignment_id):
        body = self._activity(client, auth_headers, assignment_id, "dev-b7c2")
        assert body["metrics"]["using_fallback"] is True
        assert body["metrics"]["focused_seconds"] == body["summary"]["focused_seconds_from_ticks"]
        assert body["metrics"]["first_seen"].endswith("Z")

    def test_missing_report_still_renders(self, client, auth_headers, assignment_id):
        body = self._activity(client, auth_headers, assignment_id, "dev-e5f6")
        assert body["report_available"] is False
        assert body["integrity"]["status"] == "unknown"
        assert body["metrics"]["using_fallback"] is True
        assert body["checkpoints"]["count"] == 0

    def test_noisy_timeline_counts_unknown_types(self, client, auth_headers, assignment_id):
        body = self._activity(client, auth_headers, assignment_id, "dev-c9d4")
        assert body["summary"]["type_counts"]["CLIPBOARD_PASTE"] == 1
        assert body["metrics"]["burst_by_severity"] == body["summary"]["burst_by_severity"]

    def test_unknown_student(self, client, auth_headers, assignment_id):
        response = client.get(
            f"/assignments/{assignment_id}/students/nobody/activity", headers=auth_headers
        )
        assert response.status_code == 404


class TestTimeline:

    def _timeline(self, client, headers, assignment_id, **params):
        response = client.get(
            f"/assignments/{assignment_id}/students/dev-a1f3/timeline",
            headers=headers,
            params=params,
        )
        return response

    def test_default_newest_first(self, client, auth_headers, assignment_id):
        body = self._timeline(client, auth_headers, assignment_id).json()
        stamps = [s["ts"] for s in body["signals"]]
        assert stamps == sorted(stamps, reverse=True)
        assert body["total"] == len(stamps)
        assert "TIME_TICK" in body["signal_types"]

    def test_type_filter_and_order(self, client, auth_headers, assignment_id):
        body = self._timeline(client, auth_headers, assignment_id, type="SESSION_START", order="asc").json()
        assert {s["type"] for s in body["signals"]} == {"SESSION_START"}
        stamps = [s["ts"] for s in body["signals"]]
        assert stamps == sorted(stamps)

    def test_search(self, client, auth_headers, assignment_id):
        body = self._timeline(client, auth_headers, assignment_id, q="ckpt").json()
        assert body["signals"]
        assert all(s["type"] == "CHECKPOINT_CREATED" for s in body["signals"])

    def test_invalid_order(self, client, auth_headers, assignment_id):
        assert self._timeline(client, auth_headers, assignment_id, order="up").status_code == 400
