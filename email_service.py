"""
Email service — sends parent emails via SMTP or logs to console.

Uses EMAIL_BACKEND config to choose transport:
  - "log" (default): prints email to console/log
  - "smtp": sends via SMTP using MAIL_* settings, through the task queue
"""

from __future__ import annotations

import logging
import re
import smtplib
from dataclasses import asdict, dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Iterable, Mapping

from flask import current_app

from email_templates import format_email_html, render_email

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_BULK_RECIPIENTS = 500
BULK_REQUIRED_FIELDS = ("teacherName", "childName")


def is_valid_email(address: Any) -> bool:
    return isinstance(address, str) and bool(EMAIL_RE.match(address))


@dataclass
class SendResult:
    email: str
    success: bool
    error: str = ""


@dataclass
class BulkSendResult:
    sent: int = 0
    failed: int = 0
    results: list[SendResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.sent > 0

    def record(self, email: str, success: bool, error: str = "") -> None:
        self.results.append(SendResult(email, success, error))
        if success:
            self.sent += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "sent": self.sent,
            "failed": self.failed,
            "total": len(self.results),
            "results": [asdict(r) for r in self.results],
        }


def validate_bulk_emails(emails: Any) -> list[str]:
    """Return request-level problems with a bulk payload (empty when valid)."""
    if not isinstance(emails, list) or not emails:
        return ["emails must be a non-empty list"]
    if len(emails) > MAX_BULK_RECIPIENTS:
        return [f"Too many recipients (max {MAX_BULK_RECIPIENTS})"]
    errors = []
    for i, item in enumerate(emails):
        if not isinstance(item, dict):
            errors.append(f"emails[{i}] must be an object")
            continue
        if not is_valid_email(item.get("to")):
            errors.append(f"emails[{i}]: invalid email address")
        data = item.get("templateData") or {}
        if not isinstance(data, dict):
            errors.append(f"emails[{i}]: templateData must be an object")
            continue
        missing = [f for f in BULK_REQUIRED_FIELDS if not data.get(f)]
        if missing:
            errors.append(f"emails[{i}]: missing {', '.join(missing)}")
    return errors


class EmailService:
    @staticmethod
    def send(to: str, subject: str, body_html: str) -> bool:
        """Send an email (background if RQ available, else inline).

        Returns True on success (or True if enqueued).
        """
        if not is_valid_email(to):
            logger.warning("Refusing to send email to invalid address %r", to)
            return False

        backend = current_app.config.get("EMAIL_BACKEND", "log")

        if backend == "log":
            logger.info(
                "EMAIL [to=%s] subject=%s\n%s",
                to, subject, body_html,
            )
            return True

        # Extract config for context-free background execution
        config = {
            "mail_from": current_app.config.get("MAIL_FROM", "noreply@example.com"),
            "mail_server": current_app.config.get("MAIL_SERVER", "localhost"),
            "mail_port": current_app.config.get("MAIL_PORT", 587),
            "mail_username": current_app.config.get("MAIL_USERNAME", ""),
            "mail_password": current_app.config.get("MAIL_PASSWORD", ""),
        }

        from tasks import enqueue, is_async_available
        result = enqueue(EmailService._do_send, to, subject, body_html, config)
        return True if is_async_available() else bool(result)

    @staticmethod
    def send_templated(
        to_list: Iterable[str],
        template_type: str,
        template_data: Mapping[str, Any],
    ) -> BulkSendResult:
        """Render one template and send it to every address in to_list."""
        subject, content = render_email(template_type, template_data)
        body_html = format_email_html(content)
        outcome = BulkSendResult()
        for to in to_list:
            if not is_valid_email(to):
                outcome.record(str(to), False, "Invalid email address")
                continue
            ok = EmailService.send(to, subject, body_html)
            outcome.record(to, ok, "" if ok else "Send failed")
        return outcome

    @staticmethod
    def send_bulk(emails: list[dict[str, Any]], template_type: str) -> BulkSendResult:
        """Personalised send: each item is {"to": ..., "templateData": {...}}."""
        if len(emails) > MAX_BULK_RECIPIENTS:
            raise ValueError(f"Too many recipients (max {MAX_BULK_RECIPIENTS})")

        outcome = BulkSendResult()
        for item in emails:
            to = item.get("to", "")
            data = item.get("templateData") or {}
            if not is_valid_email(to):
                outcome.record(str(to), False, "Invalid email address")
                continue
            missing = [f for f in BULK_REQUIRED_FIELDS if not data.get(f)]
            if missing:
                outcome.record(to, False, f"Missing {', '.join(missing)}")
                continue
            subject, content = render_email(template_type, data)
            ok = EmailService.send(to, subject, format_email_html(content))
            outcome.record(to, ok, "" if ok else "Send failed")

        logger.info("Bulk %s email: sent=%d failed=%d", template_type, outcome.sent, outcome.failed)
        return outcome

    @staticmethod
    def _do_send(to: str, subject: str, body_html: str, config: dict) -> bool:
        """Actual SMTP send — no Flask context required."""
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = config.get("mail_from", "noreply@example.com")
            msg["To"] = to
            msg.attach(MIMEText(body_html, "html"))

            server = config.get("mail_server", "localhost")
            port = config.get("mail_port", 587)
            username = config.get("mail_username", "")
            password = config.get("mail_password", "")

            with smtplib.SMTP(server, port) as smtp:
                smtp.starttls()
                if username and password:
                    smtp.login(username, password)
                smtp.send_message(msg)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP send to %s failed: %s", to, e)
            return False
