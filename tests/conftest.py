"""
Test fixtures for the Learning Profile service.

Provides app, client, teacher_client, and db fixtures with file-based SQLite.
Email uses the "log" backend so nothing leaves the process.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

TEACHER_EMAIL = "teacher@test.com"
TEACHER_PASSWORD = "TeacherPass1"


def all_answers(value) -> dict[str, int]:
    return {str(q): value for q in range(1, 25)}


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    app = create_app({
        "TESTING": True,
        "DATABASE": str(tmp_path / "test.db"),
        "SECRET_KEY": "test-secret-key",
        "WTF_CSRF_ENABLED": False,
        "EMAIL_BACKEND": "log",
        "BASE_URL": "http://testserver",
    })

    with app.app_context():
        from werkzeug.security import generate_password_hash
        from database import init_db, run_migrations, get_db

        init_db()
        run_migrations()

        db = get_db()
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, role, school, created_at) "
            "VALUES (1, 'Ms. Rivera', ?, ?, 'teacher', 'Lincoln Elementary', '2026-01-01')",
            (TEACHER_EMAIL, generate_password_hash(TEACHER_PASSWORD)),
        )
        db.commit()
        app._db_initialized = True

        yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def teacher_client(app):
    """Test client logged in as the seeded teacher."""
    client = app.test_client()
    with client:
        resp = client.post("/teacher/login", data={
            "email": TEACHER_EMAIL,
            "password": TEACHER_PASSWORD,
        })
        assert resp.status_code == 302
        yield client


@pytest.fixture
def db(app):
    """Direct database access for store tests."""
    with app.app_context():
        from database import get_db
        yield get_db()


@pytest.fixture
def make_profile(client):
    """Submit a completed assessment through the public API."""
    def _make(answers=None, **extra):
        payload = {"child_name": "Maya", "grade": "3", "responses": answers or all_answers(4)}
        payload.update(extra)
        resp = client.post("/api/profiles", json=payload)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()
    return _make
