"""Tests for teacher assignments, invitations and the dashboard."""

from __future__ import annotations

from conftest import all_answers


def _create(teacher_client, **body):
    payload = {"child_name": "Maya", "parent_email": "mom@example.com", "grade": "3"}
    payload.update(body)
    return teacher_client.post("/api/teacher/assignments", json=payload)


class TestAssignments:
    def test_create_single(self, teacher_client):
        resp = _create(teacher_client)
        assert resp.status_code == 201
        assignment = resp.get_json()["assignments"][0]
        assert assignment["status"] == "pending"
        assert assignment["assessment_link"] == (
            f"http://testserver/assessment/start?ref={assignment['assignment_token']}&source=teacher"
        )

    def test_create_many(self, teacher_client):
        resp = teacher_client.post("/api/teacher/assignments", json={"students": [
            {"child_name": "Maya", "parent_email": "mom@example.com"},
            {"child_name": "Leo", "parent_email": "dad@example.com"},
        ]})
        assert resp.status_code == 201
        assert len(teacher_client.get("/api/teacher/assignments").get_json()["assignments"]) == 2

    def test_validation(self, teacher_client):
        resp = _create(teacher_client, parent_email="not-an-email")
        assert resp.status_code == 400
        assert resp.get_json()["details"] == ["students[0]: invalid parent_email"]
        assert _create(teacher_client, child_name="").status_code == 400

    def test_list_filters_by_status(self, teacher_client):
        _create(teacher_client)
        assert len(teacher_client.get("/api/teacher/assignments?status=pending").get_json()["assignments"]) == 1
        assert teacher_client.get("/api/teacher/assignments?status=sent").get_json()["assignments"] == []
        assert teacher_client.get("/api/teacher/assignments?status=bogus").status_code == 400

    def test_requires_login(self, client):
        resp = client.get("/api/teacher/assignments")
        assert resp.status_code == 302
        assert "returnTo=%2Fapi%2Fteacher%2Fassignments" in resp.headers["Location"]


class TestInvitations:
    def test_invitations_mark_assignments_sent(self, teacher_client):
        _create(teacher_client)
        _create(teacher_client, child_name="Leo", parent_email="dad@example.com")

        resp = teacher_client.post("/api/emails/assessment-invitations", json={"due_date": "Friday"})
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["sent"] == 2
        assert len(data["marked_sent"]) == 2

        statuses = {a["status"] for a in teacher_client.get("/api/teacher/assignments").get_json()["assignments"]}
        assert statuses == {"sent"}

    def test_selected_assignments_only(self, teacher_client):
        first = _create(teacher_client).get_json()["assignments"][0]
        _create(teacher_client, child_name="Leo", parent_email="dad@example.com")

        resp = teacher_client.post("/api/emails/assessment-invitations", json={
            "assignment_ids": [first["id"]], "template_type": "reminder",
        })
        assert resp.get_json()["marked_sent"] == [first["id"]]

    def test_nothing_to_send(self, teacher_client):
        resp = teacher_client.post("/api/emails/assessment-invitations", json={})
        assert resp.status_code == 400

    def test_thank_you_not_allowed(self, teacher_client):
        _create(teacher_client)
        resp = teacher_client.post("/api/emails/assessment-invitations", json={"template_type": "thank_you"})
        assert resp.status_code == 400


class TestCompletion:
    def test_profile_with_token_completes_assignment(self, teacher_client, client):
        token = _create(teacher_client).get_json()["assignments"][0]["assignment_token"]

        resp = client.post("/api/profiles", json={
            "child_name": "Maya", "responses": all_answers(5), "assignment_token": token,
        })
        assert resp.status_code == 201
        profile = resp.get_json()["profile"]
        assert profile["teacher_id"] == 1

        assignment = teacher_client.get("/api/teacher/assignments").get_json()["assignments"][0]
        assert assignment["status"] == "completed"
        assert assignment["profile_id"] == profile["id"]

        profiles = teacher_client.get("/api/teacher/profiles").get_json()["profiles"]
        assert [p["id"] for p in profiles] == [profile["id"]]

    def test_completed_assignments_skipped_by_invitations(self, teacher_client, client):
        token = _create(teacher_client).get_json()["assignments"][0]["assignment_token"]
        client.post("/api/profiles", json={"child_name": "Maya", "responses": {}, "assignment_token": token})
        resp = teacher_client.post("/api/emails/assessment-invitations", json={})
        assert resp.status_code == 400

    def test_invitation_link_page(self, teacher_client, client):
        token = _create(teacher_client).get_json()["assignments"][0]["assignment_token"]
        resp = client.get(f"/assessment/start?ref={token}&source=teacher")
        assert resp.status_code == 200
        assert b"teacher has invited you" in resp.data


class TestDashboard:
    def test_dashboard_lists_assignments(self, teacher_client):
        _create(teacher_client)
        resp = teacher_client.get("/teacher/dashboard")
        assert resp.status_code == 200
        assert b"Ms. Rivera" in resp.data
        assert b"mom@example.com" in resp.data

    def test_assignments_page(self, teacher_client):
        assert teacher_client.get("/teacher/assignments").status_code == 200


class TestActivity:
    def test_lists_own_events_newest_first(self, teacher_client):
        _create(teacher_client)
        events = teacher_client.get("/api/teacher/activity").get_json()["events"]
        assert [e["action"] for e in events[:2]] == ["assignments_create", "login_success"]

    def test_filter_by_action(self, teacher_client):
        _create(teacher_client)
        events = teacher_client.get("/api/teacher/activity?action=login_success").get_json()["events"]
        assert [e["action"] for e in events] == ["login_success"]

    def test_bad_limit(self, teacher_client):
        assert teacher_client.get("/api/teacher/activity?limit=lots").status_code == 400
