"""
Blueprint registration for the Learning Profile service.

All blueprints are registered without URL prefixes; each route carries its
full path so the access gate's prefixes read the same as the routes.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.core import bp as core_bp
    from blueprints.profiles import bp as profiles_bp
    from blueprints.progress import bp as progress_bp
    from blueprints.emails import bp as emails_bp
    from blueprints.teacher import bp as teacher_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(profiles_bp)
    app.register_blueprint(progress_bp)
    app.register_blueprint(emails_bp)
    app.register_blueprint(teacher_bp)
