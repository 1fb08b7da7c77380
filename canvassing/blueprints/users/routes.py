"""
User directory routes.

Rules enforced:
- The directory with statistics is visible to managers and admins.
- Reviewer / manager option lists are open to any logged-in user (ticket creation).
- Only admins change roles, and never their own.

Audit:
- role changes logged (UPDATE)
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import func, or_

from ...audit import log_action, serialize_model
from ...errors import ValidationError, WorkflowError
from ...extensions import db
from ...models import ROLE_ADMIN, ROLE_MANAGER, ROLE_REVIEWER, USER_ROLES, User
from ...queries import purchaser_stats, reviewer_stats
from ...security import admin_required, roles_required
from ...utils import clean_str, request_data

users_bp = Blueprint("users", __name__, url_prefix="/users")


def _with_stats(user: User) -> dict:
    data = user.to_dict()
    if user.is_purchaser:
        data.update(purchaser_stats(user.id))
    elif user.is_reviewer:
        data.update(reviewer_stats(user.id))
    return data


def _options_for_role(role: str):
    users = (
        User.query.filter(User.role == role, User.is_active.is_(True))
        .order_by(User.full_name.asc())
        .all()
    )
    return jsonify([u.to_option() for u in users])


# ---------------------------------------------------------------------
# LIST USERS
# ---------------------------------------------------------------------
@users_bp.route("", methods=["GET"])
@login_required
@roles_required(ROLE_ADMIN, ROLE_MANAGER)
def list_users():
    """Query: role, search (name or email)."""
    q = User.query

    role = clean_str(request.args.get("role"))
    if role:
        q = q.filter(User.role == role.upper())

    search = clean_str(request.args.get("search"))
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(User.full_name.ilike(pattern), User.email.ilike(pattern)))

    users = q.order_by(User.full_name.asc()).all()
    return jsonify({"success": True, "users": [_with_stats(u) for u in users]})


@users_bp.route("/role-counts", methods=["GET"])
@login_required
@roles_required(ROLE_ADMIN, ROLE_MANAGER)
def role_counts():
    counts = {role: 0 for role in USER_ROLES}
    for role, count in db.session.query(User.role, func.count(User.id)).group_by(User.role).all():
        counts[role] = count
    counts["total"] = sum(counts[role] for role in USER_ROLES)
    return jsonify(counts)


@users_bp.route("/reviewers", methods=["GET"])
@login_required
def reviewers():
    return _options_for_role(ROLE_REVIEWER)


@users_bp.route("/managers", methods=["GET"])
@login_required
def managers():
    return _options_for_role(ROLE_MANAGER)


@users_bp.route("/<int:user_id>", methods=["GET"])
@login_required
def user_details(user_id: int):
    user = db.get_or_404(User, user_id, description="No user found.")
    return jsonify(_with_stats(user))


# ---------------------------------------------------------------------
# ROLE CHANGE (admin)
# ---------------------------------------------------------------------
@users_bp.route("/<int:user_id>/role", methods=["POST"])
@login_required
@admin_required
def change_role(user_id: int):
    user = db.get_or_404(User, user_id, description="No user found.")

    role = (clean_str(request_data().get("role")) or "").upper()
    if role not in USER_ROLES:
        raise ValidationError("Invalid role.", fields={"role": f"Role must be one of {', '.join(USER_ROLES)}"})
    if user.id == current_user.id:
        raise WorkflowError("You cannot change your own role.")

    before = serialize_model(user)
    user.role = role

    db.session.flush()
    log_action(user, "UPDATE", before=before, after=serialize_model(user))
    db.session.commit()

    return jsonify({"success": True, "message": "Profile role updated successfully", "user": user.to_dict()})
