"""Tests for EmailService transports, bulk sends and the email endpoints."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from email_service import MAX_BULK_RECIPIENTS, EmailService, is_valid_email, validate_bulk_emails


def _bulk_item(to="mom@example.com", **data):
    template_data = {"teacherName": "Ms. Rivera", "childName": "Maya", "assessmentLink": "http://x/y"}
    template_data.update(data)
    return {"to": to, "templateData": template_data}


class TestEmailValidation:
    @pytest.mark.parametrize("address,ok", [
        ("mom@example.com", True),
        ("a.b+c@school.edu", True),
        ("no-at-sign.com", False),
        ("two@@example.com", False),
        ("spaces in@example.com", False),
        ("missing@tld", False),
        (None, False),
    ])
    def test_is_valid_email(self, address, ok):
        assert is_valid_email(address) is ok

    def test_bulk_request_problems(self):
        assert validate_bulk_emails([]) == ["emails must be a non-empty list"]
        assert validate_bulk_emails([_bulk_item()]) == []
        errors = validate_bulk_emails([_bulk_item(to="bad"), _bulk_item(teacherName="")])
        assert errors == ["emails[0]: invalid email address", "emails[1]: missing teacherName"]

    def test_template_data_must_be_object(self):
        errors = validate_bulk_emails([{"to": "mom@example.com", "templateData": "oops"}])
        assert errors == ["emails[0]: templateData must be an object"]

    def test_bulk_recipient_cap(self):
        emails = [_bulk_item() for _ in range(MAX_BULK_RECIPIENTS + 1)]
        assert "Too many recipients" in validate_bulk_emails(emails)[0]


class TestEmailService:
    def test_log_backend(self, app, caplog):
        with app.test_request_context(), caplog.at_level(logging.INFO, logger="email_service"):
            assert EmailService.send("mom@example.com", "Hello", "<p>Hi</p>") is True
        assert "to=mom@example.com" in caplog.text

    def test_invalid_recipient_not_sent(self, app):
        with app.test_request_context():
            assert EmailService.send("nope", "Hello", "<p>Hi</p>") is False

    def test_smtp_backend_runs_inline_without_redis(self, app):
        app.config["EMAIL_BACKEND"] = "smtp"
        with app.test_request_context(), patch("email_service.smtplib.SMTP") as smtp_cls:
            assert EmailService.send("mom@example.com", "Hello", "<p>Hi</p>") is True
        smtp_cls.assert_called_once_with(app.config["MAIL_SERVER"], app.config["MAIL_PORT"])
        smtp = smtp_cls.return_value.__enter__.return_value
        assert smtp.send_message.call_args.args[0]["To"] == "mom@example.com"

    def test_smtp_failure_reported(self, app):
        app.config["EMAIL_BACKEND"] = "smtp"
        with app.test_request_context(), \
                patch("email_service.smtplib.SMTP", side_effect=OSError("refused")):
            result = EmailService.send_bulk([_bulk_item()], "invitation")
        assert result.sent == 0
        assert result.failed == 1
        assert result.results[0].error == "Send failed"

    def test_do_send_handles_connection_errors(self):
        with patch("email_service.smtplib.SMTP", side_effect=OSError("refused")):
            assert EmailService._do_send("mom@example.com", "s", "b", {}) is False

    def test_send_bulk_mixed(self, app):
        with app.test_request_context():
            result = EmailService.send_bulk(
                [_bulk_item(), _bulk_item(to="bad"), _bulk_item(to="dad@example.com", childName="")],
                "reminder",
            )
        assert result.to_dict()["sent"] == 1
        assert result.to_dict()["failed"] == 2
        assert result.to_dict()["total"] == 3
        assert result.success is True

    def test_send_bulk_cap(self, app):
        with app.test_request_context(), pytest.raises(ValueError):
            EmailService.send_bulk([_bulk_item()] * (MAX_BULK_RECIPIENTS + 1), "invitation")

    def test_send_templated(self, app):
        with app.test_request_context(), \
                patch.object(EmailService, "send", return_value=True) as send:
            result = EmailService.send_templated(
                ["mom@example.com", "dad@example.com"], "thank_you",
                {"teacherName": "Ms. Rivera", "childName": "Maya"},
            )
        assert result.sent == 2
        subject = send.call_args.args[1]
        assert subject == "Thank you! Maya's Learning Profile Complete"


class TestEmailEndpoints:
    def test_requires_login(self, client):
        resp = client.post("/api/emails/send", json={"to": "mom@example.com"})
        assert resp.status_code == 302

    def test_send_templated_email(self, teacher_client):
        resp = teacher_client.post("/api/emails/send", json={
            "to": ["mom@example.com"],
            "template_type": "invitation",
            "template_data": {"childName": "Maya", "assessmentLink": "http://x/y"},
        })
        assert resp.status_code == 200
        assert resp.get_json()["sent"] == 1

    def test_send_plain_email(self, teacher_client):
        resp = teacher_client.post("/api/emails/send", json={
            "to": "mom@example.com", "subject": "Field trip", "content": "See you Friday.",
        })
        assert resp.get_json() == {"success": True, "sent": 1, "failed": 0}

    def test_send_rejects_bad_address(self, teacher_client):
        resp = teacher_client.post("/api/emails/send", json={"to": "bad", "subject": "s", "content": "c"})
        assert resp.status_code == 400

    def test_bulk(self, teacher_client):
        resp = teacher_client.post("/api/emails/bulk", json={
            "template_type": "reminder",
            "emails": [_bulk_item(), _bulk_item(to="dad@example.com")],
        })
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["sent"] == 2
        assert [r["email"] for r in data["results"]] == ["mom@example.com", "dad@example.com"]

    def test_bulk_validation(self, teacher_client):
        resp = teacher_client.post("/api/emails/bulk", json={"emails": [_bulk_item(childName="")]})
        assert resp.status_code == 400
        assert resp.get_json()["details"] == ["emails[0]: missing childName"]

    def test_bulk_unknown_template(self, teacher_client):
        resp = teacher_client.post("/api/emails/bulk", json={"template_type": "x", "emails": [_bulk_item()]})
        assert resp.status_code == 400

    def test_bulk_non_object_template_data(self, teacher_client):
        resp = teacher_client.post("/api/emails/bulk", json={
            "emails": [{"to": "mom@example.com", "templateData": "oops"}],
        })
        assert resp.status_code == 400
        assert resp.get_json()["details"] == ["emails[0]: templateData must be an object"]

    def test_send_non_object_template_data(self, teacher_client):
        resp = teacher_client.post("/api/emails/send", json={
            "to": "mom@example.com", "template_type": "invitation", "template_data": ["Maya"],
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "template_data must be an object"

    def test_send_non_string_subject(self, teacher_client):
        resp = teacher_client.post("/api/emails/send", json={"to": "mom@example.com", "subject": 5, "content": ""})
        assert resp.status_code == 400


class TestTemplatePreview:
    def test_builtin_template(self, teacher_client):
        resp = teacher_client.post("/api/emails/templates/preview", json={
            "template_type": "reminder", "template_data": {"childName": "Maya"},
        })
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["subject"] == "Reminder: Maya's Learning Profile - Just 5 Minutes!"
        assert "Ms. Rivera" in data["body"]
        assert data["html"].startswith("<div")

    def test_custom_template_validated(self, teacher_client):
        resp = teacher_client.post("/api/emails/templates/preview", json={"content": "Hi {{childName}}"})
        data = resp.get_json()
        assert data["body"] == "Hi Emma"
        assert data["validation"]["is_valid"] is False
        assert "Missing required variable: {{teacherName}}" in data["validation"]["errors"]

    def test_requires_type_or_content(self, teacher_client):
        assert teacher_client.post("/api/emails/templates/preview", json={}).status_code == 400
        resp = teacher_client.post("/api/emails/templates/preview", json={"content": 42})
        assert resp.status_code == 400

    def test_requires_login(self, client):
        resp = client.post("/api/emails/templates/preview", json={"template_type": "invitation"})
        assert resp.status_code == 302
