"""
Shared helpers used across blueprints.

Kept apart from app.py to break circular dependencies.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, current_app, request
from flask_login import current_user

from assessment_config import DEFAULT_CONFIG, ScoringConfig
from auth import login_manager


def current_user_id() -> int | None:
    """Return the authenticated teacher's ID, or None for anonymous callers."""
    if current_user.is_authenticated:
        return current_user.id
    return None


def teacher_required(f: Callable) -> Callable:
    """Decorator that requires a signed-in teacher."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if getattr(current_user, "role", "") != "teacher":
            abort(403)
        return f(*args, **kwargs)
    return decorated


def json_body() -> dict[str, Any] | None:
    """Parsed JSON object from the request, or None when absent or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def missing_fields(data: dict[str, Any], *names: str) -> list[str]:
    return [n for n in names if data.get(n) in (None, "")]


def scoring_config() -> ScoringConfig:
    return current_app.extensions.get("scoring_config", DEFAULT_CONFIG)


def absolute_url(path: str) -> str:
    return current_app.config.get("BASE_URL", "http://localhost:5001").rstrip("/") + path
