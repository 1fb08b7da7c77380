"""
Notification routes.

Clients poll GET /notifications (optionally with `since` = ISO timestamp of
the newest notification they already have) instead of a push channel.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ...errors import PermissionDenied
from ...extensions import db
from ...models import Notification
from ...utils import parse_datetime, parse_optional_int

notifications_bp = Blueprint("notifications", __name__, url_prefix="/notifications")

DEFAULT_LIMIT = 50


def _own_notifications():
    return Notification.query.filter(Notification.user_id == current_user.id)


@notifications_bp.route("", methods=["GET"])
@login_required
def list_notifications():
    """Query: unread=1, since=<iso datetime>, limit."""
    q = _own_notifications()

    if request.args.get("unread") in ("1", "true", "yes"):
        q = q.filter(Notification.is_read.is_(False))

    since = parse_datetime(request.args.get("since"))
    if since is not None:
        q = q.filter(Notification.created_at > since)

    limit = parse_optional_int(request.args.get("limit")) or DEFAULT_LIMIT
    rows = (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(min(max(limit, 1), 200))
        .all()
    )
    unread_count = _own_notifications().filter(Notification.is_read.is_(False)).count()

    return jsonify(
        {
            "success": True,
            "data": [n.to_dict() for n in rows],
            "unread_count": unread_count,
        }
    )


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@login_required
def mark_read(notification_id: int):
    notification = db.get_or_404(Notification, notification_id, description="Notification not found.")
    if notification.user_id != current_user.id:
        raise PermissionDenied()

    notification.is_read = True
    db.session.commit()
    return jsonify({"success": True, "notification": notification.to_dict()})


@notifications_bp.route("/read-all", methods=["POST"])
@login_required
def mark_all_read():
    updated = (
        _own_notifications()
        .filter(Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return jsonify({"success": True, "updated": updated})
