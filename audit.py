"""
Audit logging — records security-relevant events.

Logins, lockouts, denied access and privacy changes are written to both the
audit_log table and structured logging.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import has_request_context, request

from database import get_db

logger = logging.getLogger(__name__)


def log_event(action: str, user_id: int | None = None, detail: str = "") -> None:
    """Insert an audit log entry and emit a structured log line.

    A failed insert is logged and otherwise ignored so the request that
    triggered it still completes.
    """
    ip = (request.remote_addr or "") if has_request_context() else ""
    ua = request.headers.get("User-Agent", "") if has_request_context() else ""

    try:
        db = get_db()
        db.execute(
            "INSERT INTO audit_log (user_id, action, detail, ip_address, user_agent, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, action, detail, ip, ua, datetime.now().isoformat()),
        )
        db.commit()
    except Exception:
        logger.exception("audit insert failed for action=%s", action)

    logger.info("audit: %s user_id=%s detail=%s ip=%s", action, user_id, detail, ip)


def recent_events(action: str | None = None, limit: int = 50, user_id: int | None = None) -> list[dict]:
    """Newest audit entries first, optionally filtered by action and/or user."""
    clauses, params = [], []
    if action:
        clauses.append("action=?")
        params.append(action)
    if user_id is not None:
        clauses.append("user_id=?")
        params.append(user_id)
    where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
    rows = get_db().execute(
        f"SELECT * FROM audit_log {where}ORDER BY id DESC LIMIT ?", (*params, limit),
    ).fetchall()
    return [dict(r) for r in rows]
