"""
SQLite database layer for the Learning Profile service.

Uses raw sqlite3 with WAL mode and parameterized queries.
A schema_version table handles migrations.
"""

from __future__ import annotations

import fcntl
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from flask import current_app, g

from pg_compat import connect_pg, is_postgres_url

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent / "learning_profiles.db"


SCHEMA = """
-- Migration tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL
);

-- Staff / parent accounts
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE,
    password_hash TEXT,
    role TEXT NOT NULL DEFAULT 'teacher',
    school TEXT NOT NULL DEFAULT '',
    login_attempts INTEGER NOT NULL DEFAULT 0,
    locked_until TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT ''
);

-- Completed learning profiles
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    child_name TEXT NOT NULL,
    grade TEXT NOT NULL DEFAULT '',
    scores TEXT NOT NULL DEFAULT '{}',
    personality_label TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    raw_responses TEXT NOT NULL DEFAULT '{}',
    strengths TEXT NOT NULL DEFAULT '[]',
    growth_areas TEXT NOT NULL DEFAULT '[]',
    preferences TEXT NOT NULL DEFAULT '{}',
    quiz_type TEXT NOT NULL DEFAULT 'general',
    respondent_type TEXT NOT NULL DEFAULT 'parent',
    teacher_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
    assignment_token TEXT NOT NULL DEFAULT '',
    is_public INTEGER NOT NULL DEFAULT 1,
    share_token TEXT UNIQUE NOT NULL,
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_profiles_teacher ON profiles(teacher_id, created_at);

-- One row per respondent submission folded into a profile
CREATE TABLE IF NOT EXISTS profile_contributions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    profile_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    quiz_type TEXT NOT NULL DEFAULT 'general',
    respondent_type TEXT NOT NULL DEFAULT 'parent',
    respondent_name TEXT NOT NULL DEFAULT '',
    raw_responses TEXT NOT NULL DEFAULT '{}',
    scores TEXT NOT NULL DEFAULT '{}',
    weight REAL NOT NULL DEFAULT 1.0,
    created_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_contributions_profile ON profile_contributions(profile_id);

-- Partially completed assessments (resume across devices)
CREATE TABLE IF NOT EXISTS assessment_progress (
    session_id TEXT PRIMARY KEY,
    child_name TEXT NOT NULL,
    grade TEXT NOT NULL DEFAULT '',
    responses TEXT NOT NULL DEFAULT '{}',
    current_question INTEGER NOT NULL DEFAULT 1,
    parent_email TEXT,
    assignment_token TEXT,
    expires_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_progress_email ON assessment_progress(parent_email, updated_at);
CREATE INDEX IF NOT EXISTS idx_progress_expires ON assessment_progress(expires_at);

-- Teacher-issued assessment invitations
CREATE TABLE IF NOT EXISTS assignments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    teacher_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    child_name TEXT NOT NULL,
    grade TEXT NOT NULL DEFAULT '',
    parent_email TEXT NOT NULL,
    assignment_token TEXT UNIQUE NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    profile_id TEXT REFERENCES profiles(id) ON DELETE SET NULL,
    created_at TEXT NOT NULL DEFAULT '',
    completed_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_assignments_teacher ON assignments(teacher_id, status);
"""


MIGRATIONS: list[tuple[int, str]] = [
    # Version 1 = base schema.
    # Migration 2: Audit log
    (2, """
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            action TEXT NOT NULL,
            detail TEXT NOT NULL DEFAULT '',
            ip_address TEXT NOT NULL DEFAULT '',
            user_agent TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_audit_log_user ON audit_log(user_id, created_at);
    """),
    # Migration 3: Track when invitation emails went out
    (3, """
        ALTER TABLE assignments ADD COLUMN sent_at TEXT NOT NULL DEFAULT '';
    """),
    # Migration 4: Password reset tokens (hashed)
    (4, """
        ALTER TABLE users ADD COLUMN reset_token TEXT NOT NULL DEFAULT '';
        ALTER TABLE users ADD COLUMN reset_token_expires TEXT NOT NULL DEFAULT '';
    """),
]


def _database_url() -> str:
    return current_app.config.get("DATABASE") or str(DEFAULT_DB_PATH)


def _connect(db_url: str):
    if is_postgres_url(db_url):
        return connect_pg(db_url)
    conn = sqlite3.connect(db_url)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def get_db():
    """Per-request connection stored on flask.g.

    SQLite by default; a postgresql:// DATABASE gets the pg_compat wrapper.
    """
    if "db" not in g:
        g.db = _connect(_database_url())
    return g.db


def close_db(e=None) -> None:
    db = g.pop("db", None)
    if db is not None:
        db.close()


def schema_versions(db) -> set[int]:
    return {row["version"] for row in db.execute("SELECT version FROM schema_version").fetchall()}


def _record_version(db, version: int) -> None:
    db.execute(
        "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
        (version, datetime.now().isoformat()),
    )


def init_db() -> None:
    """Create the base tables (schema version 1)."""
    db = get_db()
    db.executescript(SCHEMA)
    if 1 not in schema_versions(db):
        _record_version(db, 1)
    db.commit()


@contextmanager
def _migration_lock(db_url: str):
    """Serialise migrations across workers sharing one SQLite file."""
    if is_postgres_url(db_url):
        yield
        return
    try:
        lock_file = open(Path(db_url).with_suffix(".migration.lock"), "w")
    except OSError:
        yield
        return
    with lock_file:
        fcntl.flock(lock_file, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_file, fcntl.LOCK_UN)


def run_migrations() -> list[int]:
    """Apply pending MIGRATIONS in order; returns the versions applied."""
    applied: list[int] = []
    with _migration_lock(_database_url()):
        db = get_db()
        done = schema_versions(db)
        for version, sql in MIGRATIONS:
            if version in done:
                continue
            try:
                db.executescript(sql)
            except sqlite3.OperationalError as e:
                # A column or table left behind by an interrupted run.
                if "duplicate column" not in str(e).lower() and "already exists" not in str(e).lower():
                    raise
            _record_version(db, version)
            db.commit()
            applied.append(version)
            logger.info("Applied schema migration %d", version)
    return applied


def init_app(app) -> None:
    """Close connections on teardown; create and migrate the schema on first request."""
    app.teardown_appcontext(close_db)

    @app.before_request
    def _ensure_schema():
        if getattr(app, "_db_initialized", False):
            return
        init_db()
        run_migrations()
        app._db_initialized = True
