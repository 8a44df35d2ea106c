"""Teacher routes — dashboard, assessment assignments, linked profiles."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, render_template, request
from flask_login import current_user

from audit import log_event, recent_events
from db_stores import AssignmentStoreDB, ProfileStoreDB
from email_service import is_valid_email
from email_templates import generate_assessment_link
from helpers import json_body, teacher_required

bp = Blueprint("teacher", __name__)

ASSIGNMENT_STATUSES = ("pending", "sent", "completed")
MAX_ASSIGNMENTS_PER_REQUEST = 100


@bp.record_once
def _exempt_api_from_csrf(state: Any) -> None:
    csrf = state.app.extensions.get("csrf")
    if csrf:
        csrf.exempt(bp)


def _assignment_view(assignment) -> dict[str, Any]:
    base_url = current_app.config.get("BASE_URL", "http://localhost:5001")
    return {
        **assignment.to_dict(),
        "assessment_link": generate_assessment_link(assignment.assignment_token, base_url),
    }


@bp.route("/teacher/dashboard")
@teacher_required
def dashboard():
    assignments = AssignmentStoreDB(current_user.id).all()
    profiles = ProfileStoreDB().list_for_teacher(current_user.id)
    counts = {s: sum(1 for a in assignments if a.status == s) for s in ASSIGNMENT_STATUSES}
    return render_template(
        "dashboard.html",
        teacher=current_user,
        assignments=[_assignment_view(a) for a in assignments],
        profiles=profiles,
        counts=counts,
    )


@bp.route("/teacher/assignments")
@teacher_required
def assignments_page():
    return dashboard()


@bp.route("/api/teacher/assignments", methods=["POST"])
@teacher_required
def api_create_assignments():
    """Create one assignment, or several via {"students": [...]}."""
    data = json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    students = data.get("students", [data])
    if not isinstance(students, list) or not students:
        return jsonify({"error": "students must be a non-empty list"}), 400
    if len(students) > MAX_ASSIGNMENTS_PER_REQUEST:
        return jsonify({"error": f"Too many students (max {MAX_ASSIGNMENTS_PER_REQUEST})"}), 400

    errors = []
    for i, s in enumerate(students):
        if not isinstance(s, dict) or not str(s.get("child_name") or "").strip():
            errors.append(f"students[{i}]: child_name is required")
        elif not is_valid_email(str(s.get("parent_email") or "").strip().lower()):
            errors.append(f"students[{i}]: invalid parent_email")
    if errors:
        return jsonify({"error": "Invalid assignment request", "details": errors}), 400

    store = AssignmentStoreDB(current_user.id)
    created = [
        store.create(
            child_name=str(s["child_name"]).strip(),
            parent_email=str(s["parent_email"]).strip().lower(),
            grade=str(s.get("grade") or ""),
        )
        for s in students
    ]
    log_event("assignments_create", current_user.id, f"count={len(created)}")
    return jsonify({"assignments": [_assignment_view(a) for a in created]}), 201


@bp.route("/api/teacher/assignments")
@teacher_required
def api_list_assignments():
    status = request.args.get("status") or None
    if status and status not in ASSIGNMENT_STATUSES:
        return jsonify({"error": f"Unknown status: {status}"}), 400
    assignments = AssignmentStoreDB(current_user.id).all(status)
    return jsonify({"assignments": [_assignment_view(a) for a in assignments]})


@bp.route("/api/teacher/profiles")
@teacher_required
def api_teacher_profiles():
    profiles = ProfileStoreDB().list_for_teacher(current_user.id)
    return jsonify({"profiles": [p.to_dict() for p in profiles]})


@bp.route("/api/teacher/activity")
@teacher_required
def api_teacher_activity():
    """The signed-in teacher's recent audit trail."""
    try:
        limit = min(max(int(request.args.get("limit", 50)), 1), 200)
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400
    events = recent_events(request.args.get("action") or None, limit, user_id=current_user.id)
    return jsonify({"events": [
        {k: e[k] for k in ("action", "detail", "created_at")} for e in events
    ]})
