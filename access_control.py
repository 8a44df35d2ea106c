"""
Access gate for teacher-only routes.

Runs before every request. Paths under a protected prefix need a valid
edu-session cookie; anything else passes through untouched. Denied requests
are audit-logged and redirected to the teacher login page.
"""

from __future__ import annotations

import logging

from flask import Flask, g, request

from audit import log_event
from auth import login_redirect, read_session_cookie

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = (
    "/teacher/dashboard",
    "/teacher/assignments",
    "/api/profiles/",
    "/api/teacher/",
    "/api/emails/",
)

# (method or None for any, exact path or prefix ending in "/")
PUBLIC_ROUTES = (
    ("POST", "/api/profiles"),
    (None, "/api/share/"),
    (None, "/api/assessment-progress"),
    (None, "/api/assessment-progress/"),
    (None, "/api/questions"),
    (None, "/api/auth/session"),
    (None, "/teacher/login"),
    (None, "/teacher/register"),
    (None, "/teacher/forgot-password"),
    (None, "/teacher/reset-password/"),
)


def _matches(path: str, route: str) -> bool:
    if route.endswith("/"):
        return path.startswith(route)
    return path == route


def is_public(method: str, path: str) -> bool:
    return any(
        (allowed is None or allowed == method) and _matches(path, route)
        for allowed, route in PUBLIC_ROUTES
    )


def is_protected(method: str, path: str) -> bool:
    if is_public(method, path):
        return False
    return any(path.startswith(prefix) for prefix in PROTECTED_PREFIXES)


def init_access_control(app: Flask) -> None:
    @app.before_request
    def _require_session():
        g.edu_session = read_session_cookie(request)
        if not is_protected(request.method, request.path):
            return None
        if g.edu_session is not None:
            return None
        log_event("access_denied", None, f"{request.method} {request.path}")
        logger.warning("Unauthenticated %s %s redirected to login", request.method, request.path)
        return login_redirect(request.full_path.rstrip("?"))
