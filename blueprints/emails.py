"""Parent email routes — single sends, personalised bulk sends, assignment invitations."""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, current_app, jsonify
from flask_login import current_user

from audit import log_event
from db_stores import AssignmentStoreDB
from email_service import EmailService, is_valid_email, validate_bulk_emails
from email_templates import (
    SAMPLE_DATA,
    TEMPLATE_TYPES,
    format_email_html,
    generate_assessment_link,
    preview_template,
    render_email,
    validate_template,
)
from extensions import limiter
from helpers import json_body, teacher_required

logger = logging.getLogger(__name__)

bp = Blueprint("emails", __name__)


@bp.record_once
def _exempt_api_from_csrf(state: Any) -> None:
    csrf = state.app.extensions.get("csrf")
    if csrf:
        csrf.exempt(bp)


def _recipients(value: Any) -> list[str] | None:
    recipients = [value] if isinstance(value, str) else value
    if not isinstance(recipients, list) or not recipients:
        return None
    if not all(is_valid_email(r) for r in recipients):
        return None
    return recipients


@bp.route("/api/emails/send", methods=["POST"])
@teacher_required
@limiter.limit("30 per hour")
def api_send_email():
    data = json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    recipients = _recipients(data.get("to"))
    if recipients is None:
        return jsonify({"error": "to must be a valid email address or list of addresses"}), 400

    template_type = data.get("template_type")
    if template_type:
        if template_type not in TEMPLATE_TYPES:
            return jsonify({"error": f"Unknown template_type: {template_type}"}), 400
        extra = data.get("template_data") or {}
        if not isinstance(extra, dict):
            return jsonify({"error": "template_data must be an object"}), 400
        template_data = {
            "teacherName": current_user.name,
            "teacherEmail": current_user.email,
            "schoolName": current_user.school,
            **extra,
        }
        outcome = EmailService.send_templated(recipients, template_type, template_data)
    else:
        subject = str(data.get("subject") or "").strip()
        content = str(data.get("content") or "").strip()
        if not subject or not content:
            return jsonify({"error": "subject and content are required without a template_type"}), 400
        body_html = format_email_html(content)
        sent = [EmailService.send(to, subject, body_html) for to in recipients]
        return jsonify({"success": all(sent), "sent": sum(sent), "failed": len(sent) - sum(sent)})

    return jsonify(outcome.to_dict())


@bp.route("/api/emails/templates/preview", methods=["POST"])
@teacher_required
def api_preview_template():
    """Render a built-in template, or check a custom one, against sample data."""
    data = json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400

    content = data.get("content")
    if content is not None:
        if not isinstance(content, str):
            return jsonify({"error": "content must be a string"}), 400
        body = preview_template(content)
        return jsonify({
            "validation": validate_template(content),
            "body": body,
            "html": format_email_html(body),
        })

    template_type = data.get("template_type")
    if template_type not in TEMPLATE_TYPES:
        return jsonify({"error": "template_type or content is required"}), 400
    extra = data.get("template_data") or {}
    if not isinstance(extra, dict):
        return jsonify({"error": "template_data must be an object"}), 400
    subject, body = render_email(template_type, {
        **SAMPLE_DATA,
        "teacherName": current_user.name,
        "schoolName": current_user.school,
        **extra,
    })
    return jsonify({"subject": subject, "body": body, "html": format_email_html(body)})


@bp.route("/api/emails/bulk", methods=["POST"])
@teacher_required
@limiter.limit("10 per hour")
def api_send_bulk():
    data = json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    template_type = data.get("template_type") or "invitation"
    if template_type not in TEMPLATE_TYPES:
        return jsonify({"error": f"Unknown template_type: {template_type}"}), 400

    emails = data.get("emails")
    errors = validate_bulk_emails(emails)
    if errors:
        return jsonify({"error": "Invalid bulk email request", "details": errors}), 400

    outcome = EmailService.send_bulk(emails, template_type)
    log_event("email_bulk", current_user.id, f"type={template_type} sent={outcome.sent} failed={outcome.failed}")
    return jsonify(outcome.to_dict())


@bp.route("/api/emails/assessment-invitations", methods=["POST"])
@teacher_required
@limiter.limit("10 per hour")
def api_send_invitations():
    """Email parents an assessment link for each open assignment and mark them sent."""
    data = json_body() or {}
    template_type = data.get("template_type") or "invitation"
    if template_type not in ("invitation", "reminder"):
        return jsonify({"error": "template_type must be invitation or reminder"}), 400

    store = AssignmentStoreDB(current_user.id)
    open_assignments = [a for a in store.all() if a.status != "completed"]
    wanted = data.get("assignment_ids")
    if wanted is not None:
        if not isinstance(wanted, list):
            return jsonify({"error": "assignment_ids must be a list"}), 400
        open_assignments = [a for a in open_assignments if a.id in wanted]
    if not open_assignments:
        return jsonify({"error": "No open assignments to send"}), 400

    base_url = current_app.config.get("BASE_URL", "http://localhost:5001")
    emails = [
        {
            "to": a.parent_email,
            "templateData": {
                "teacherName": current_user.name,
                "teacherEmail": current_user.email,
                "schoolName": current_user.school,
                "childName": a.child_name,
                "parentEmail": a.parent_email,
                "gradeLevel": a.grade,
                "assessmentLink": generate_assessment_link(a.assignment_token, base_url),
                "dueDate": data.get("due_date") or "",
            },
        }
        for a in open_assignments
    ]
    outcome = EmailService.send_bulk(emails, template_type)

    delivered = {r.email for r in outcome.results if r.success}
    sent_ids = [a.id for a in open_assignments if a.parent_email in delivered]
    store.mark_sent(sent_ids)

    log_event("email_invitations", current_user.id, f"type={template_type} sent={outcome.sent}")
    return jsonify({**outcome.to_dict(), "marked_sent": sent_ids})
