"""
canvassing/blueprints/tickets/routes.py

Ticket routes

Includes:
- Create / details / "my tickets" list with search, status filter and paging
- Status counts, status history
- Sharing (share + shareable users)
- Workflow actions: start canvass, reviewer and manager decisions, revision
  request, cancel, decline, and the raw status change (admin)

IMPORTANT:
- Clients are never trusted. Access control and validations are server-side.
- Workflow actions lock the ticket row before reading its status.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from loguru import logger

from ... import workflow
from ...audit import log_action, serialize_model
from ...errors import PermissionDenied, ValidationError, WorkflowError
from ...extensions import db
from ...models import (
    APPROVAL_PENDING,
    ROLE_MANAGER,
    ROLE_REVIEWER,
    Approval,
    Ticket,
    TicketSharedUser,
    User,
)
from ...queries import (
    filter_by_status,
    newest_first,
    search_tickets,
    ticket_status_counts,
    visible_tickets_query,
)
from ...security import admin_required, ticket_access_required
from ...utils import clean_str, parse_datetime, parse_optional_int, request_data, request_list

tickets_bp = Blueprint("tickets", __name__, url_prefix="/tickets")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _load_ticket(ticket_id: int, **_: object) -> Ticket:
    """Loader for decorator factories."""
    return db.get_or_404(Ticket, ticket_id, description="Ticket not found.")


def _parse_user_ids(key: str) -> list[int]:
    ids = []
    for raw in request_list(key):
        user_id = parse_optional_int(raw)
        if user_id is not None and user_id not in ids:
            ids.append(user_id)
    return ids


def _users_with_role(user_ids: list[int], role: str, label: str) -> list[User]:
    """All ids must exist and carry `role`."""
    if not user_ids:
        return []
    users = User.query.filter(User.id.in_(user_ids)).all()
    by_id = {u.id: u for u in users}
    invalid = [uid for uid in user_ids if uid not in by_id or by_id[uid].role != role]
    if invalid:
        raise ValidationError(f"Invalid {label} selected.", fields={label: f"Unknown or non-{role.lower()} users: {invalid}"})
    return [by_id[uid] for uid in user_ids]


def _workflow_response(ticket: Ticket, message: str):
    return jsonify(
        {
            "success": True,
            "message": message,
            "ticket_status": ticket.status,
            "ticket": ticket.to_dict(viewer=current_user),
        }
    )


# ---------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------
@tickets_bp.route("", methods=["POST"])
@login_required
def create_ticket():
    """
    Create a ticket with its reviewers and managers.

    Approvals start PENDING; reviewers are notified.
    """
    if not current_user.can_create_tickets():
        raise PermissionDenied("Only purchasers and admins can create tickets.")

    data = request_data()
    errors = {}

    item_name = clean_str(data.get("item_name"))
    item_description = clean_str(data.get("item_description"))
    quantity = parse_optional_int(data.get("quantity"))
    rf_date_raw = clean_str(data.get("rf_date_received"))
    rf_date_received = parse_datetime(rf_date_raw)

    if not item_name:
        errors["item_name"] = "Item name is required"
    if not item_description:
        errors["item_description"] = "Item description is required"
    if quantity is None or quantity < 1:
        errors["quantity"] = "Quantity must be at least 1"
    if rf_date_raw and rf_date_received is None:
        errors["rf_date_received"] = "Invalid date"

    reviewer_ids = _parse_user_ids("reviewers")
    manager_ids = _parse_user_ids("managers")
    if not reviewer_ids:
        errors["reviewers"] = "Select at least one reviewer"
    if not manager_ids:
        errors["managers"] = "Select at least one manager"
    if errors:
        raise ValidationError("Please check all required fields", fields=errors)

    reviewers = _users_with_role(reviewer_ids, ROLE_REVIEWER, "reviewers")
    managers = _users_with_role(manager_ids, ROLE_MANAGER, "managers")

    ticket = Ticket(
        item_name=item_name,
        item_description=item_description,
        quantity=quantity,
        specifications=clean_str(data.get("specifications")),
        notes=clean_str(data.get("notes")),
        rf_date_received=rf_date_received,
        created_by_id=current_user.id,
    )
    db.session.add(ticket)
    db.session.flush()
    ticket.assign_name()

    for user in reviewers + managers:
        ticket.approvals.append(Approval(reviewer_id=user.id, status=APPROVAL_PENDING))

    workflow.notify_users(
        (u.id for u in reviewers),
        "You've been assigned as a reviewer for this ticket",
        ticket,
    )

    db.session.flush()
    log_action(ticket, "CREATE", after=serialize_model(ticket))
    db.session.commit()

    logger.info("Ticket {name} created by user {user}", name=ticket.name, user=current_user.id)
    return jsonify({"success": True, "ticket_id": ticket.id, "ticket": ticket.to_dict(viewer=current_user)}), 201


# ---------------------------------------------------------------------
# Lists & counts
# ---------------------------------------------------------------------
@tickets_bp.route("", methods=["GET"])
@login_required
def my_tickets():
    """
    Tickets the user created, shares or reviews (admin: all).

    Query: page, page_size, search_query, status_filter (a status, REVISED, or all)
    """
    page = max(parse_optional_int(request.args.get("page")) or 1, 1)
    page_size = parse_optional_int(request.args.get("page_size")) or DEFAULT_PAGE_SIZE
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

    q = visible_tickets_query(current_user)
    q = search_tickets(q, clean_str(request.args.get("search_query")))
    q = filter_by_status(q, clean_str(request.args.get("status_filter")))

    total_count = q.count()
    tickets = newest_first(q).offset((page - 1) * page_size).limit(page_size).all()

    return jsonify({"tickets": [t.to_summary() for t in tickets], "total_count": total_count})


@tickets_bp.route("/status-counts", methods=["GET"])
@login_required
def status_counts():
    return jsonify(ticket_status_counts(current_user))


# ---------------------------------------------------------------------
# Details
# ---------------------------------------------------------------------
@tickets_bp.route("/<int:ticket_id>", methods=["GET"])
@login_required
@ticket_access_required(_load_ticket)
def ticket_details(ticket_id: int):
    ticket = _load_ticket(ticket_id)
    return jsonify(ticket.to_dict(viewer=current_user))


@tickets_bp.route("/<int:ticket_id>/reviewer-response", methods=["GET"])
@login_required
@ticket_access_required(_load_ticket)
def reviewer_response(ticket_id: int):
    """Caller's approval status on the ticket (null when not a reviewer)."""
    ticket = _load_ticket(ticket_id)
    approval = ticket.approval_for(current_user.id)
    return jsonify({"approval_status": approval.status if approval else None})


@tickets_bp.route("/<int:ticket_id>/status-history", methods=["GET"])
@login_required
@ticket_access_required(_load_ticket)
def status_history(ticket_id: int):
    ticket = _load_ticket(ticket_id)
    return jsonify([entry.to_dict() for entry in ticket.status_history])


# ---------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------
@tickets_bp.route("/<int:ticket_id>/shareable-users", methods=["GET"])
@login_required
@ticket_access_required(_load_ticket)
def shareable_users(ticket_id: int):
    """Everybody except the caller, the creator, shared users and reviewers."""
    ticket = _load_ticket(ticket_id)
    excluded = {current_user.id} | ticket.participant_ids()
    users = (
        User.query.filter(User.id.notin_(sorted(excluded)), User.is_active.is_(True))
        .order_by(User.full_name.asc())
        .all()
    )
    return jsonify([u.to_option() for u in users])


@tickets_bp.route("/<int:ticket_id>/share", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def share_ticket(ticket_id: int):
    ticket = _load_ticket(ticket_id)
    if not (current_user.is_admin or current_user.is_manager or ticket.created_by_id == current_user.id):
        raise PermissionDenied("Only the creator, a manager or an admin can share this ticket.")

    user_id = parse_optional_int(request_data().get("user_id"))
    target = db.session.get(User, user_id) if user_id is not None else None
    if target is None:
        raise ValidationError("User not found.", fields={"user_id": "Select a user to share with"})
    if target.id in ticket.participant_ids():
        raise WorkflowError("User already has access to this ticket.")

    link = TicketSharedUser(ticket=ticket, user_id=target.id, assigned_by_id=current_user.id)
    db.session.add(link)
    workflow.notify_user(target.id, f"{current_user.full_name} has shared ticket with you", ticket)

    db.session.flush()
    log_action(link, "CREATE", after=serialize_model(link))
    db.session.commit()

    return jsonify({"success": True, "shared_users": [link.to_dict() for link in ticket.shared_links]})


# ---------------------------------------------------------------------
# Workflow actions
# ---------------------------------------------------------------------
@tickets_bp.route("/<int:ticket_id>/status", methods=["POST"])
@login_required
@admin_required
def change_status(ticket_id: int):
    """Raw status change (transition rules still apply)."""
    ticket = workflow.lock_ticket(ticket_id)
    status = clean_str(request_data().get("status"))
    if not status:
        raise ValidationError("Status is required.", fields={"status": "Status is required"})

    workflow.canvass_action(ticket, current_user, status)
    db.session.commit()
    return _workflow_response(ticket, "Ticket status updated")


@tickets_bp.route("/<int:ticket_id>/start-canvass", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def start_canvass(ticket_id: int):
    ticket = workflow.lock_ticket(ticket_id)
    workflow.start_canvass(ticket, current_user)
    db.session.commit()
    return _workflow_response(ticket, "Canvassing started successfully")


@tickets_bp.route("/<int:ticket_id>/review", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def reviewer_decision(ticket_id: int):
    """Body: {"decision": "APPROVED" | "REJECTED"}"""
    ticket = workflow.lock_ticket(ticket_id)
    workflow.reviewer_decision(ticket, current_user, request_data().get("decision"))
    db.session.commit()
    return _workflow_response(ticket, "Review submitted")


@tickets_bp.route("/<int:ticket_id>/manager-review", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def manager_decision(ticket_id: int):
    """Body: {"decision": "APPROVED" | "REJECTED"}"""
    ticket = workflow.lock_ticket(ticket_id)
    workflow.manager_decision(ticket, current_user, request_data().get("decision"))
    db.session.commit()
    return _workflow_response(ticket, "Decision recorded")


@tickets_bp.route("/<int:ticket_id>/request-revision", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def request_revision(ticket_id: int):
    ticket = workflow.lock_ticket(ticket_id)
    workflow.request_revision(ticket, current_user)
    db.session.commit()
    return _workflow_response(ticket, "Revision requested")


@tickets_bp.route("/<int:ticket_id>/cancel", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def cancel_ticket(ticket_id: int):
    ticket = workflow.lock_ticket(ticket_id)
    workflow.cancel_ticket(ticket, current_user)
    db.session.commit()
    return _workflow_response(ticket, "Ticket canceled")


@tickets_bp.route("/<int:ticket_id>/decline", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def decline_ticket(ticket_id: int):
    ticket = workflow.lock_ticket(ticket_id)
    workflow.decline_ticket(ticket, current_user)
    db.session.commit()
    return _workflow_response(ticket, "Ticket declined")
