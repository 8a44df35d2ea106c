"""Tests for logging_config and audit logging."""

from __future__ import annotations

import json
import logging

from audit import log_event, recent_events
from logging_config import JSONFormatter, RequestIdFilter


class TestJSONFormatter:
    def test_single_line_json(self):
        record = logging.LogRecord("scoring", logging.INFO, __file__, 1, "scored %s", ("Maya",), None)
        RequestIdFilter().filter(record)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "scored Maya"
        assert entry["level"] == "INFO"
        assert entry["request_id"] == "-"


class TestRequestId:
    def test_header_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"

    def test_generated_when_absent(self, client):
        assert len(client.get("/health").headers["X-Request-ID"]) == 12


class TestAudit:
    def test_event_written(self, app):
        with app.test_request_context(headers={"User-Agent": "pytest"}):
            log_event("profile_privacy", 1, "profile=abc is_public=False")
            events = recent_events("profile_privacy")
        assert events[0]["user_id"] == 1
        assert events[0]["user_agent"] == "pytest"

    def test_outside_request(self, app):
        with app.app_context():
            log_event("maintenance", None, "purge")
            assert recent_events("maintenance")[0]["ip_address"] == ""

    def test_filter_by_user(self, app):
        with app.app_context():
            log_event("login_success", 1)
            log_event("access_denied", None, "GET /teacher/dashboard")
            assert [e["action"] for e in recent_events(user_id=1)] == ["login_success"]
            assert recent_events("access_denied", user_id=1) == []
