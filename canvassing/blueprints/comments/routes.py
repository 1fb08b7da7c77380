"""
Comment routes

Provides:
- GET  /tickets/<ticket_id>/comments
- POST /tickets/<ticket_id>/comments
- PATCH /comments/<comment_id>   (author only)
- DELETE /comments/<comment_id>  (author only)

Rules:
- Only ticket participants can comment.
- Closed tickets (DONE / CANCELED / DECLINED) accept no new comments.
- Other participants are notified of new comments.
"""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ... import workflow
from ...audit import log_action, serialize_model
from ...errors import PermissionDenied, ValidationError, WorkflowError
from ...extensions import db
from ...models import COMMENT_TYPE_COMMENT, Comment, Ticket
from ...security import ticket_access_required
from ...utils import request_data

comments_bp = Blueprint("comments", __name__)


def _load_ticket(ticket_id: int, **_: object) -> Ticket:
    """Loader for decorator factories."""
    return db.get_or_404(Ticket, ticket_id, description="Ticket not found.")


def _load_own_comment(comment_id: int) -> Comment:
    comment = db.get_or_404(Comment, comment_id, description="Comment not found.")
    if comment.user_id != current_user.id:
        raise PermissionDenied("You can only change your own comments.")
    return comment


def _content() -> str:
    content = (request_data().get("content") or "").strip()
    if not content:
        raise ValidationError("Comment cannot be empty.", fields={"content": "Comment cannot be empty"})
    return content


@comments_bp.route("/tickets/<int:ticket_id>/comments", methods=["GET"])
@login_required
@ticket_access_required(_load_ticket)
def list_comments(ticket_id: int):
    ticket = _load_ticket(ticket_id)
    return jsonify([c.to_dict() for c in ticket.comments])


@comments_bp.route("/tickets/<int:ticket_id>/comments", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def add_comment(ticket_id: int):
    ticket = _load_ticket(ticket_id)
    if not ticket.is_participant(current_user):
        raise PermissionDenied("Only ticket participants can comment.")
    if ticket.status in workflow.TERMINAL_STATUSES:
        raise WorkflowError("Comments are closed for this ticket.")

    comment = Comment(
        ticket_id=ticket.id,
        user_id=current_user.id,
        content=_content(),
        type=COMMENT_TYPE_COMMENT,
    )
    db.session.add(comment)

    workflow.notify_users(
        ticket.participant_ids(),
        f"{current_user.full_name} commented on ticket {ticket.name}",
        ticket,
        exclude={current_user.id},
    )

    db.session.flush()
    log_action(comment, "CREATE", after=serialize_model(comment))
    db.session.commit()
    return jsonify({"success": True, "comment": comment.to_dict()}), 201


@comments_bp.route("/comments/<int:comment_id>", methods=["PATCH"])
@login_required
def edit_comment(comment_id: int):
    comment = _load_own_comment(comment_id)
    before = serialize_model(comment)

    comment.content = _content()
    comment.is_edited = True

    db.session.flush()
    log_action(comment, "UPDATE", before=before, after=serialize_model(comment))
    db.session.commit()
    return jsonify({"success": True, "comment": comment.to_dict()})


@comments_bp.route("/comments/<int:comment_id>", methods=["DELETE"])
@login_required
def delete_comment(comment_id: int):
    comment = _load_own_comment(comment_id)

    log_action(comment, "DELETE", before=serialize_model(comment))
    db.session.delete(comment)
    db.session.commit()
    return jsonify({"success": True})
