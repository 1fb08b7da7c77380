"""
Profile routes (the current user's own account).

Provides:
- GET    /profile/me
- GET    /profile/password-exists
- PATCH  /profile/name
- POST   /profile/avatar         (multipart: avatar)
- POST   /profile/password       (set or change)
- DELETE /profile                (delete own account, then logout)

IMPORTANT:
- Account deletion removes the user's tickets (and everything under them)
  plus their drafts, comments and notifications. Stored files of those rows
  are removed after the commit.
"""

from __future__ import annotations

from uuid import uuid4

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, logout_user
from loguru import logger

from ... import storage
from ...audit import log_action, serialize_model
from ...errors import ValidationError
from ...extensions import db
from ...models import User
from ...utils import clean_str, request_data

profile_bp = Blueprint("profile", __name__, url_prefix="/profile")

AVATAR_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}
MIN_PASSWORD_LENGTH = 6


def _me() -> User:
    return db.session.get(User, current_user.id)


@profile_bp.route("/me", methods=["GET"])
@login_required
def me():
    user = _me()
    data = user.to_dict()
    data["has_password"] = user.has_password
    return jsonify(data)


@profile_bp.route("/password-exists", methods=["GET"])
@login_required
def password_exists():
    return jsonify({"has_password": _me().has_password})


@profile_bp.route("/name", methods=["PATCH"])
@login_required
def update_display_name():
    name = clean_str(request_data().get("name"))
    if not name:
        raise ValidationError("Name is required.", fields={"name": "Name is required"})

    user = _me()
    before = serialize_model(user)
    user.full_name = name

    db.session.flush()
    log_action(user, "UPDATE", before=before, after=serialize_model(user))
    db.session.commit()
    return jsonify({"success": True, "user": user.to_dict()})


@profile_bp.route("/avatar", methods=["POST"])
@login_required
def update_avatar():
    """Upload a new avatar; the previous one is removed."""
    file = request.files.get("avatar")
    if not file or not file.filename:
        raise ValidationError("Avatar file is required.", fields={"avatar": "Choose an image"})

    ext = storage.file_extension(file.filename)
    if ext not in AVATAR_EXTENSIONS:
        raise ValidationError("Avatar must be a PNG, JPG or WEBP image.")

    bucket = current_app.config["AVATAR_BUCKET"]
    user = _me()
    previous_path = storage.object_path_from_url(bucket, user.avatar_url)

    stored = storage.upload(bucket, f"{user.id}/avatar_{uuid4().hex}.{ext}", file)
    before = serialize_model(user)
    try:
        user.avatar_url = stored.public_url
        db.session.flush()
        log_action(user, "UPDATE", before=before, after=serialize_model(user))
        db.session.commit()
    except Exception:
        db.session.rollback()
        storage.remove(bucket, [stored.path])
        raise

    if previous_path:
        storage.remove(bucket, [previous_path])
    return jsonify({"success": True, "avatar_url": user.avatar_url})


@profile_bp.route("/password", methods=["POST"])
@login_required
def change_password():
    """
    Set a password (account without one) or change it.

    Changing requires current_password.
    """
    data = request_data()
    new_password = data.get("new_password") or ""
    user = _me()

    if user.has_password and not user.check_password(data.get("current_password") or ""):
        raise ValidationError("Current password is incorrect.", fields={"current_password": "Incorrect password"})
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "Password is too short.",
            fields={"new_password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"},
        )

    user.set_password(new_password)
    log_action(user, "UPDATE", after={"password": "changed"})
    db.session.commit()
    return jsonify({"success": True})


@profile_bp.route("", methods=["DELETE"])
@login_required
def delete_account():
    user = _me()
    user_id = user.id
    canvass_bucket = current_app.config["CANVASS_BUCKET"]
    avatar_bucket = current_app.config["AVATAR_BUCKET"]

    # Files owned by rows that the delete cascades to
    canvass_paths = set()
    for ticket in user.tickets:
        for form in ticket.canvass_forms:
            canvass_paths.update(a.path for a in form.attachments)
        for draft in ticket.drafts:
            canvass_paths.update(a.path for a in draft.attachments)
    for draft in user.canvass_drafts:
        canvass_paths.update(a.path for a in draft.attachments)
    avatar_path = storage.object_path_from_url(avatar_bucket, user.avatar_url)

    log_action(user, "DELETE", before=serialize_model(user))
    db.session.delete(user)
    db.session.commit()
    logout_user()

    storage.remove(canvass_bucket, sorted(canvass_paths))
    if avatar_path:
        storage.remove(avatar_bucket, [avatar_path])

    logger.info("User {user_id} deleted their account", user_id=user_id)
    return jsonify({"success": True})
