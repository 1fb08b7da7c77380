"""
Authentication Routes

Provides:
- /auth/login
- /auth/logout
- /auth/register
- /auth/seed-admin (first system bootstrap)
- /auth/csrf-token

Rules:
- Only active users may log in.
- Self-registered users always get the PURCHASER role.
- Admin bootstrap only works while the users table is empty.
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from loguru import logger

from ...audit import log_action, serialize_model
from ...errors import ValidationError, json_error
from ...extensions import db
from ...models import ROLE_ADMIN, ROLE_PURCHASER, User
from ...utils import clean_str, is_valid_email, request_data

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 6
LOGIN_FAILED_MESSAGE = "Incorrect email or password. Please try again."


def _credential_errors(email: str | None, password: str | None) -> dict:
    errors = {}
    if not is_valid_email(email):
        errors["email"] = "Invalid email format"
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return errors


# ============================================================
# LOGIN / LOGOUT
# ============================================================

@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate a user.

    Field errors: {"error": {"email": ..., "password": ...}} (400)
    Bad credentials: {"error": {"form": ...}} (401)
    """
    data = request_data()
    email = (clean_str(data.get("email")) or "").lower()
    password = data.get("password") or ""

    errors = _credential_errors(email, password)
    if errors:
        return jsonify({"error": errors}), 400

    user = User.query.filter_by(email=email).first()
    if not user or not user.is_active or not user.check_password(password):
        logger.warning("Failed login for {email}", email=email)
        return jsonify({"error": {"form": LOGIN_FAILED_MESSAGE}}), 401

    login_user(user)
    return jsonify({"success": True, "user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Log out the current user."""
    logout_user()
    return jsonify({"success": True})


# ============================================================
# REGISTER
# ============================================================

@auth_bp.route("/register", methods=["POST"])
def register():
    """Create a PURCHASER account and log it in."""
    data = request_data()
    name = clean_str(data.get("name"))
    email = (clean_str(data.get("email")) or "").lower()
    password = data.get("password") or ""

    errors = _credential_errors(email, password)
    if not name:
        errors["name"] = "Name is required"
    if errors:
        raise ValidationError("Please check all required fields", fields=errors)

    if User.query.filter_by(email=email).first():
        return jsonify({"error": True, "emailError": True, "message": "Email is already taken"}), 409

    user = User(email=email, full_name=name, role=ROLE_PURCHASER)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()

    log_action(user, "CREATE", after=serialize_model(user))
    db.session.commit()

    login_user(user)
    logger.info("Registered user {email}", email=email)
    return jsonify({"success": True, "user": user.to_dict()}), 201


# ============================================================
# SEED FIRST ADMIN (BOOTSTRAP)
# ============================================================

@auth_bp.route("/seed-admin", methods=["POST"])
def seed_admin():
    """
    Bootstrap the FIRST admin of the system.

    Safety rule:
    - If ANY user already exists -> block
    """
    if User.query.count() > 0:
        return json_error("A user already exists in the system.", 409)

    data = request_data()
    name = clean_str(data.get("name")) or "System Administrator"
    email = (clean_str(data.get("email")) or "").lower()
    password = data.get("password") or ""

    errors = _credential_errors(email, password)
    if errors:
        raise ValidationError("Please check all required fields", fields=errors)

    user = User(email=email, full_name=name, role=ROLE_ADMIN, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()

    log_action(user, "CREATE", after=serialize_model(user))
    db.session.commit()

    return jsonify({"success": True, "user": user.to_dict()}), 201


@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token():
    """Token for the X-CSRFToken header on mutating requests."""
    return jsonify({"csrf_token": generate_csrf(), "authenticated": bool(current_user.is_authenticated)})
