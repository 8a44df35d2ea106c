"""
Learning Profile — Flask Web Application

Parents and teachers answer the 6C questionnaire about a child; the service
scores it, stores a shareable profile and lets teachers invite families by email.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Flask, Response, jsonify

import database
from access_control import init_access_control
from assessment_config import DEFAULT_CONFIG, load_scoring_config
from auth import auth_bp, login_manager
from blueprints import register_blueprints
from db_stores import StoreError
from extensions import csrf, limiter

logger = logging.getLogger(__name__)


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    from config import config_by_name
    if test_config is not None:
        app.config.from_object(config_by_name["testing"])
        app.config.update(test_config)
    else:
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    # CSRF protection (JSON API blueprints exempt themselves)
    csrf.init_app(app)
    app.extensions["csrf"] = csrf
    if "csrf_token" not in app.jinja_env.globals:
        app.jinja_env.globals["csrf_token"] = lambda: ""

    from flask_compress import Compress
    Compress(app)

    # Background task processing (RQ or synchronous)
    from tasks import init_tasks
    init_tasks(app)

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    # Scoring weights / labels (optional JSON override)
    scoring_path = app.config.get("SCORING_CONFIG_PATH")
    app.extensions["scoring_config"] = load_scoring_config(scoring_path) if scoring_path else DEFAULT_CONFIG

    # Database teardown + first-request schema setup, then the access gate
    database.init_app(app)
    init_access_control(app)

    # Rate limiter (disabled in testing)
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    app.register_blueprint(auth_bp)
    login_manager.init_app(app)

    register_blueprints(app)

    @app.errorhandler(StoreError)
    def handle_store_error(e: StoreError):
        logger.exception("Storage failure: %s", e)
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found"}), 404

    # Security headers
    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "connect-src 'self'"
        )
        if not app.debug and not app.testing:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Periodic purge of expired progress sessions
    if not app.config.get("TESTING"):
        from scheduler import init_scheduler
        init_scheduler(app)

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
