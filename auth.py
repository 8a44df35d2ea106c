"""
Teacher Authentication — Flask-Login blueprint plus the signed session cookie.

The session lives in the `edu-session` cookie: a JSON object
{"userId": ..., "userType": ...} signed with SECRET_KEY via itsdangerous.
Flask-Login's request_loader turns a valid cookie into current_user.
Passwords are hashed with werkzeug.security.
"""

from __future__ import annotations

import math
import secrets
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlencode

from flask import Blueprint, Request, Response, current_app, jsonify, redirect, render_template, request, url_for
from flask_login import LoginManager, UserMixin, current_user, login_user, logout_user
from itsdangerous import BadData, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from audit import log_event
from database import get_db
from email_service import EmailService
from extensions import limiter

LOCKOUT_THRESHOLD = 5
LOCKOUT_MINUTES = 15
RESET_TOKEN_HOURS = 1
COOKIE_SALT = "edu-session"
USER_TYPES = ("teacher", "parent")

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()


class User(UserMixin):
    """Wraps a DB user row for Flask-Login."""

    def __init__(self, id: int, name: str, email: str, role: str = "teacher", school: str = ""):
        self.id = id
        self.name = name
        self.email = email
        self.role = role
        self.school = school

    @property
    def is_teacher(self):
        return self.role == "teacher"

    @staticmethod
    def get(user_id: int):
        db = get_db()
        row = db.execute(
            "SELECT id, name, email, role, school FROM users WHERE id = ?", (user_id,),
        ).fetchone()
        if row:
            return User(row["id"], row["name"], row["email"], row["role"], row["school"])
        return None

    @staticmethod
    def get_by_email(email: str):
        db = get_db()
        return db.execute(
            "SELECT id, name, email, password_hash, role, school, login_attempts, locked_until "
            "FROM users WHERE email = ?", (email,),
        ).fetchone()


# ── Session cookie ───────────────────────────────────────────────────


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=COOKIE_SALT)


def encode_session(user_id: int, user_type: str) -> str:
    return _serializer().dumps({"userId": user_id, "userType": user_type})


def decode_session(value: str | None) -> dict[str, Any] | None:
    """Return {"userId", "userType"} for a valid cookie value, else None.

    Missing, tampered, expired or structurally wrong values are all None.
    """
    if not value:
        return None
    try:
        data = _serializer().loads(value, max_age=current_app.config.get("AUTH_COOKIE_MAX_AGE"))
    except BadData:
        return None
    if not isinstance(data, dict):
        return None
    user_id = data.get("userId")
    user_type = data.get("userType")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        return None
    if user_type not in USER_TYPES:
        return None
    return {"userId": user_id, "userType": user_type}


def read_session_cookie(req: Request) -> dict[str, Any] | None:
    return decode_session(req.cookies.get(current_app.config.get("AUTH_COOKIE_NAME", "edu-session")))


def issue_session_cookie(response: Response, user_id: int, user_type: str = "teacher") -> Response:
    response.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "edu-session"),
        encode_session(user_id, user_type),
        max_age=current_app.config.get("AUTH_COOKIE_MAX_AGE"),
        httponly=True,
        secure=current_app.config.get("AUTH_COOKIE_SECURE", False),
        samesite="Lax",
    )
    return response


def clear_session_cookie(response: Response) -> Response:
    response.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "edu-session"))
    return response


@login_manager.request_loader
def load_user_from_request(req: Request):
    session = read_session_cookie(req)
    if not session:
        return None
    user = User.get(session["userId"])
    if user is None or user.role != session["userType"]:
        return None
    return user


def safe_return_path(path: str | None, default: str = "/teacher/dashboard") -> str:
    """Only same-site absolute paths are followed after login."""
    if not path or not path.startswith("/") or path.startswith("//") or "\\" in path:
        return default
    return path


def login_redirect(return_to: str) -> Response:
    return redirect("/teacher/login?" + urlencode({"returnTo": return_to}))


@login_manager.unauthorized_handler
def unauthorized():
    return login_redirect(request.full_path.rstrip("?"))


def _validate_password(password: str) -> str | None:
    """Return an error message if password is too weak, else None."""
    if len(password) < 8:
        return "Password must be at least 8 characters."
    if not any(c.isupper() for c in password):
        return "Password must contain at least one uppercase letter."
    if not any(c.islower() for c in password):
        return "Password must contain at least one lowercase letter."
    if not any(c.isdigit() for c in password):
        return "Password must contain at least one digit."
    return None


# ── Routes ───────────────────────────────────────────────────────────


@auth_bp.route("/teacher/login", methods=["GET", "POST"])
@limiter.limit("5 per 15 minutes", methods=["POST"])
def login():
    return_to = safe_return_path(request.values.get("returnTo"))
    if current_user.is_authenticated:
        return redirect(return_to)

    if request.method == "POST":
        email = request.form.get("email", "").strip().lower()
        password = request.form.get("password", "")

        if not email or not password:
            return render_template("login.html", error="Email and password are required.",
                                   return_to=return_to), 400

        row = User.get_by_email(email)
        if not row:
            log_event("login_failed", None, f"email={email} reason=unknown")
            return render_template("login.html", error="Invalid email or password.",
                                   return_to=return_to), 401

        locked_until = row["locked_until"]
        if locked_until:
            try:
                remaining = (datetime.fromisoformat(locked_until) - datetime.now()).total_seconds()
            except (ValueError, TypeError):
                remaining = 0
            if remaining > 0:
                mins = math.ceil(remaining / 60)
                log_event("login_locked", row["id"], f"email={email}")
                return render_template(
                    "login.html",
                    error=f"Account temporarily locked. Try again in {mins} minute(s).",
                    return_to=return_to,
                ), 429

        if not row["password_hash"] or not check_password_hash(row["password_hash"], password):
            db = get_db()
            attempts = (row["login_attempts"] or 0) + 1
            if attempts >= LOCKOUT_THRESHOLD:
                db.execute(
                    "UPDATE users SET login_attempts=?, locked_until=? WHERE id=?",
                    (attempts, (datetime.now() + timedelta(minutes=LOCKOUT_MINUTES)).isoformat(), row["id"]),
                )
            else:
                db.execute("UPDATE users SET login_attempts=? WHERE id=?", (attempts, row["id"]))
            db.commit()
            log_event("login_failed", row["id"], f"email={email} attempts={attempts}")
            return render_template("login.html", error="Invalid email or password.",
                                   return_to=return_to), 401

        db = get_db()
        db.execute("UPDATE users SET login_attempts=0, locked_until='' WHERE id=?", (row["id"],))
        db.commit()

        login_user(User.get(row["id"]))
        log_event("login_success", row["id"])
        return issue_session_cookie(redirect(return_to), row["id"], row["role"])

    return render_template("login.html", return_to=return_to)


@auth_bp.route("/teacher/register", methods=["GET", "POST"])
@limiter.limit("3 per hour", methods=["POST"])
def register():
    if current_user.is_authenticated:
        return redirect(url_for("teacher.dashboard"))

    if request.method == "POST":
        name = request.form.get("name", "").strip()
        email = request.form.get("email", "").strip().lower()
        school = request.form.get("school", "").strip()
        password = request.form.get("password", "")
        confirm = request.form.get("confirm_password", "")

        if not name or not email or not password:
            return render_template("register.html", error="All fields are required."), 400

        if password != confirm:
            return render_template("register.html", error="Passwords do not match."), 400

        pw_error = _validate_password(password)
        if pw_error:
            return render_template("register.html", error=pw_error), 400

        if User.get_by_email(email):
            return render_template("register.html", error="An account with this email already exists."), 400

        db = get_db()
        cur = db.execute(
            "INSERT INTO users (name, email, password_hash, role, school, created_at) "
            "VALUES (?, ?, ?, 'teacher', ?, ?)",
            (name, email, generate_password_hash(password), school, datetime.now().isoformat()),
        )
        user_id = cur.lastrowid
        db.commit()

        login_user(User.get(user_id))
        log_event("register", user_id, f"email={email}")
        return issue_session_cookie(redirect(url_for("teacher.dashboard")), user_id, "teacher")

    return render_template("register.html")


@auth_bp.route("/teacher/logout", methods=["GET", "POST"])
def logout():
    uid = current_user.id if current_user.is_authenticated else None
    logout_user()
    log_event("logout", uid)
    return clear_session_cookie(redirect(url_for("auth.login")))


@auth_bp.route("/teacher/forgot-password", methods=["GET", "POST"])
@limiter.limit("3 per hour", methods=["POST"])
def forgot_password():
    if request.method == "POST":
        email = request.form.get("email", "").strip().lower()
        row = User.get_by_email(email) if email else None

        if row:
            token = secrets.token_urlsafe(32)
            expires = (datetime.now() + timedelta(hours=RESET_TOKEN_HOURS)).isoformat()
            db = get_db()
            db.execute(
                "UPDATE users SET reset_token=?, reset_token_expires=? WHERE id=?",
                (generate_password_hash(token), expires, row["id"]),
            )
            db.commit()

            base = current_app.config.get("BASE_URL", "http://localhost:5001").rstrip("/")
            reset_url = f"{base}/teacher/reset-password/{row['id']}/{token}"
            EmailService.send(
                email,
                "Reset your Learning Profile password",
                f"<p>Use the link below to choose a new password (expires in {RESET_TOKEN_HOURS} hour):</p>"
                f'<p><a href="{reset_url}">{reset_url}</a></p>'
                "<p>If you did not ask for this, you can ignore this email.</p>",
            )
            log_event("password_reset_request", row["id"])

        return render_template("forgot_password.html",
                               message="If an account exists with that email, a reset link has been sent.")

    return render_template("forgot_password.html")


def _reset_row_error(row, token: str) -> str | None:
    if not row or not row["reset_token"] or not check_password_hash(row["reset_token"], token):
        return "Invalid or expired reset link."
    try:
        if datetime.now() > datetime.fromisoformat(row["reset_token_expires"]):
            return "This reset link has expired."
    except (ValueError, TypeError):
        return "Invalid or expired reset link."
    return None


@auth_bp.route("/teacher/reset-password/<int:user_id>/<token>", methods=["GET", "POST"])
def reset_password(user_id: int, token: str):
    db = get_db()
    row = db.execute(
        "SELECT id, reset_token, reset_token_expires FROM users WHERE id=?", (user_id,),
    ).fetchone()

    error = _reset_row_error(row, token)
    if error:
        return render_template("reset_password.html", error=error, invalid=True), 400

    if request.method == "POST":
        password = request.form.get("password", "")
        if password != request.form.get("confirm_password", ""):
            return render_template("reset_password.html", error="Passwords do not match."), 400
        pw_error = _validate_password(password)
        if pw_error:
            return render_template("reset_password.html", error=pw_error), 400

        # Also lifts any lockout.
        db.execute(
            "UPDATE users SET password_hash=?, reset_token='', reset_token_expires='', "
            "login_attempts=0, locked_until='' WHERE id=?",
            (generate_password_hash(password), user_id),
        )
        db.commit()
        log_event("password_reset_complete", user_id)
        return redirect(url_for("auth.login"))

    return render_template("reset_password.html")


@auth_bp.route("/api/auth/session")
def api_session():
    """Report whether the edu-session cookie identifies a live account."""
    session = read_session_cookie(request)
    if session is None:
        return jsonify({"authenticated": False, "reason": "No valid session"})
    user = load_user_from_request(request)
    if user is None:
        return jsonify({"authenticated": False, "reason": "User not found"})
    return jsonify({
        "authenticated": True,
        **session,
        "user": {"id": user.id, "name": user.name, "email": user.email, "school": user.school},
    })
