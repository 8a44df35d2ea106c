"""Tests for saving and resuming partially completed assessments."""

from __future__ import annotations

from datetime import datetime, timedelta


def _save(client, **overrides):
    payload = {
        "session_id": "sess-1",
        "child_name": "Maya",
        "grade": "3",
        "responses": {"1": 4, "2": 5},
        "current_question": 3,
        "parent_email": "Mom@Example.com",
    }
    payload.update(overrides)
    return client.post("/api/assessment-progress", json=payload)


class TestSaveProgress:
    def test_save(self, client):
        resp = _save(client)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["success"] is True
        assert data["session_id"] == "sess-1"
        assert data["current_question"] == 3
        assert data["expires_at"] > data["last_saved"]

    def test_session_id_generated_when_absent(self, client):
        resp = _save(client, session_id=None)
        assert resp.get_json()["session_id"]

    def test_missing_child_name(self, client):
        assert _save(client, child_name="").status_code == 400

    def test_invalid_current_question(self, client):
        assert _save(client, current_question=0).status_code == 400
        assert _save(client, current_question=29).status_code == 400
        assert _save(client, current_question="three").status_code == 400

    def test_invalid_parent_email(self, client):
        assert _save(client, parent_email="not-an-email").status_code == 400

    def test_no_login_needed(self, client):
        assert _save(client).status_code == 200


class TestLoadProgress:
    def test_load_by_session_id(self, client):
        _save(client)
        data = client.get("/api/assessment-progress?session_id=sess-1").get_json()
        assert data["found"] is True
        assert data["progress"]["responses"] == {"1": 4, "2": 5}
        assert data["progress"]["parent_email"] == "mom@example.com"

    def test_upsert_keeps_latest(self, client):
        _save(client)
        _save(client, responses={"1": 4, "2": 5, "3": 2}, current_question=4)
        data = client.get("/api/assessment-progress?session_id=sess-1").get_json()
        assert data["progress"]["current_question"] == 4
        assert len(data["progress"]["responses"]) == 3

    def test_load_by_parent_email(self, client):
        _save(client)
        data = client.get("/api/assessment-progress?parent_email=mom@example.com").get_json()
        assert data["progress"]["session_id"] == "sess-1"

    def test_not_found(self, client):
        data = client.get("/api/assessment-progress?session_id=unknown").get_json()
        assert data == {"progress": None, "found": False}

    def test_requires_a_key(self, client):
        assert client.get("/api/assessment-progress").status_code == 400

    def test_expired_session_not_returned(self, client, app):
        _save(client)
        with app.app_context():
            from database import get_db
            db = get_db()
            db.execute(
                "UPDATE assessment_progress SET expires_at=?",
                ((datetime.now() - timedelta(seconds=1)).isoformat(),),
            )
            db.commit()
        data = client.get("/api/assessment-progress?session_id=sess-1").get_json()
        assert data["found"] is False


class TestDeleteProgress:
    def test_delete(self, client):
        _save(client)
        resp = client.delete("/api/assessment-progress?session_id=sess-1")
        assert resp.get_json() == {"success": True}
        assert client.get("/api/assessment-progress?session_id=sess-1").get_json()["found"] is False

    def test_delete_requires_session_id(self, client):
        assert client.delete("/api/assessment-progress").status_code == 400


class TestRecoverProgress:
    def test_recover_lists_sessions(self, client):
        _save(client)
        _save(client, session_id="sess-2", child_name="Leo", current_question=14)
        resp = client.post("/api/assessment-progress/recover", json={"parent_email": "mom@example.com"})
        data = resp.get_json()
        assert data["found"] is True
        sessions = {s["session_id"]: s for s in data["progress_sessions"]}
        assert sessions["sess-2"]["child_name"] == "Leo"
        assert sessions["sess-2"]["progress_percentage"] == 50
        assert sessions["sess-1"]["responses_count"] == 2

    def test_recover_nothing(self, client):
        data = client.post("/api/assessment-progress/recover", json={"parent_email": "x@example.com"}).get_json()
        assert data == {"progress_sessions": [], "found": False}

    def test_recover_invalid_email(self, client):
        resp = client.post("/api/assessment-progress/recover", json={"parent_email": "nope"})
        assert resp.status_code == 400
