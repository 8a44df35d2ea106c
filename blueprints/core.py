"""Core routes — landing page, assessment entry, result pages, question catalogue, health."""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, abort, g, jsonify, render_template, request

from assessment_config import question_catalogue
from database import get_db
from db_stores import AssignmentStoreDB, ProfileStoreDB

logger = logging.getLogger(__name__)

bp = Blueprint("core", __name__)


@bp.record_once
def _exempt_api_from_csrf(state: Any) -> None:
    csrf = state.app.extensions.get("csrf")
    if csrf:
        csrf.exempt(bp)


@bp.route("/")
def index():
    return render_template("index.html")


@bp.route("/assessment/start")
def assessment_start():
    """Entry point for invitation links (?ref=<assignment token>)."""
    ref = request.args.get("ref", "")
    assignment = AssignmentStoreDB.by_token(ref) if ref else None
    return render_template("index.html", assignment=assignment, assignment_token=ref if assignment else "")


@bp.route("/results/<profile_id>")
def results_page(profile_id: str):
    """Public results page; private profiles are only shown to a signed-in viewer."""
    profile = ProfileStoreDB().get(profile_id)
    if not profile or (not profile.is_public and g.get("edu_session") is None):
        abort(404)
    return render_template("profile.html", profile=profile.public_view())


@bp.route("/share/<token>")
def share_page(token: str):
    profile = ProfileStoreDB().get_by_share_token(token)
    if not profile:
        abort(404)
    return render_template("profile.html", profile=profile.public_view())


@bp.route("/api/questions")
def api_questions():
    return jsonify(question_catalogue())


@bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@bp.route("/health/ready")
def health_ready():
    try:
        get_db().execute("SELECT 1").fetchone()
    except Exception as e:
        logger.error("Readiness check failed: %s", e)
        return jsonify({"status": "unavailable", "database": "error"}), 503
    return jsonify({"status": "ok", "database": "ok"})
