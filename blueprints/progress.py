"""Assessment progress routes — save, resume and discard partially answered assessments."""

from __future__ import annotations

import uuid
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from assessment_config import PREFERENCE_QUESTIONS, TOTAL_QUESTIONS
from db_stores import ProgressStoreDB
from email_service import is_valid_email
from helpers import json_body, missing_fields
from learning_profile import ProgressSession

bp = Blueprint("progress", __name__)

ASSESSMENT_LENGTH = TOTAL_QUESTIONS + len(PREFERENCE_QUESTIONS)


@bp.record_once
def _exempt_api_from_csrf(state: Any) -> None:
    csrf = state.app.extensions.get("csrf")
    if csrf:
        csrf.exempt(bp)


def _store() -> ProgressStoreDB:
    return ProgressStoreDB(current_app.config.get("PROGRESS_TTL_DAYS", 7))


@bp.route("/api/assessment-progress", methods=["POST"])
def api_save_progress():
    data = json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    missing = missing_fields(data, "child_name")
    if missing:
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

    responses = data.get("responses") or {}
    if not isinstance(responses, dict):
        return jsonify({"error": "responses must be an object"}), 400

    try:
        current_question = int(data.get("current_question", 1))
    except (TypeError, ValueError):
        return jsonify({"error": "current_question must be an integer"}), 400
    if not 1 <= current_question <= ASSESSMENT_LENGTH:
        return jsonify({"error": f"current_question must be between 1 and {ASSESSMENT_LENGTH}"}), 400

    parent_email = (data.get("parent_email") or "").strip().lower() or None
    if parent_email and not is_valid_email(parent_email):
        return jsonify({"error": "Invalid parent_email"}), 400

    session = _store().save(ProgressSession(
        session_id=str(data.get("session_id") or uuid.uuid4().hex),
        child_name=str(data["child_name"]).strip(),
        grade=str(data.get("grade") or ""),
        responses={str(k): v for k, v in responses.items()},
        current_question=current_question,
        parent_email=parent_email,
        assignment_token=data.get("assignment_token") or None,
    ))
    return jsonify({
        "success": True,
        "session_id": session.session_id,
        "current_question": session.current_question,
        "last_saved": session.updated_at,
        "expires_at": session.expires_at,
    })


@bp.route("/api/assessment-progress", methods=["GET"])
def api_load_progress():
    session_id = request.args.get("session_id", "").strip()
    parent_email = request.args.get("parent_email", "").strip().lower()
    if not session_id and not parent_email:
        return jsonify({"error": "session_id or parent_email is required"}), 400

    store = _store()
    store.purge_expired()
    session = store.load(session_id=session_id or None, parent_email=parent_email or None)
    return jsonify({"progress": session.to_dict() if session else None, "found": session is not None})


@bp.route("/api/assessment-progress", methods=["DELETE"])
def api_delete_progress():
    data = json_body() or {}
    session_id = request.args.get("session_id") or data.get("session_id")
    if not session_id:
        return jsonify({"error": "session_id is required"}), 400
    _store().delete(str(session_id))
    return jsonify({"success": True})


@bp.route("/api/assessment-progress/recover", methods=["POST"])
def api_recover_progress():
    """List a parent's unfinished assessments so they can resume on another device."""
    data = json_body() or {}
    parent_email = (data.get("parent_email") or "").strip().lower()
    if not is_valid_email(parent_email):
        return jsonify({"error": "A valid parent_email is required"}), 400

    sessions = _store().list_for_email(parent_email)
    return jsonify({
        "progress_sessions": [s.summary(ASSESSMENT_LENGTH) for s in sessions],
        "found": bool(sessions),
    })
