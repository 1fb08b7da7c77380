"""
canvassing/workflow.py

Ticket status progression and approval aggregation.

Every status change goes through canvass_action(), which validates the
transition and appends a TicketStatusHistory row. The named workflows
(start_canvass, reviewer_decision, manager_decision, request_revision,
cancel_ticket, decline_ticket) check the caller and the current status, then
update approvals, transition and notify.

IMPORTANT:
- Functions here only ADD/modify objects in the session. Routes own the
  transaction (commit/rollback).
- Routes load the ticket with lock_ticket() so concurrent decisions on the same
  ticket serialize (SELECT ... FOR UPDATE; ignored by SQLite).
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from loguru import logger

from .audit import log_action
from .errors import PermissionDenied, ValidationError, WorkflowError
from .extensions import db
from .models import (
    APPROVAL_APPROVED,
    APPROVAL_AWAITING_ACTION,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    Notification,
    STATUS_CANCELED,
    STATUS_DECLINED,
    STATUS_DONE,
    STATUS_FOR_APPROVAL,
    STATUS_FOR_CANVASS,
    STATUS_FOR_REVIEW,
    STATUS_FOR_REVISION,
    STATUS_REJECTED,
    STATUS_WORK_IN_PROGRESS,
    TICKET_STATUSES,
    Ticket,
    TicketStatusHistory,
)

TERMINAL_STATUSES = frozenset({STATUS_DONE, STATUS_CANCELED, STATUS_DECLINED})

OPEN_STATUSES = (
    STATUS_FOR_CANVASS,
    STATUS_WORK_IN_PROGRESS,
    STATUS_FOR_REVIEW,
    STATUS_FOR_APPROVAL,
    STATUS_FOR_REVISION,
)

ALLOWED_TRANSITIONS = {
    STATUS_FOR_CANVASS: {STATUS_WORK_IN_PROGRESS, STATUS_CANCELED, STATUS_DECLINED},
    STATUS_WORK_IN_PROGRESS: {STATUS_FOR_REVIEW, STATUS_CANCELED, STATUS_DECLINED},
    STATUS_FOR_REVIEW: {
        STATUS_FOR_APPROVAL,
        STATUS_FOR_REVISION,
        STATUS_REJECTED,
        STATUS_CANCELED,
        STATUS_DECLINED,
    },
    STATUS_FOR_APPROVAL: {
        STATUS_DONE,
        STATUS_FOR_REVISION,
        STATUS_REJECTED,
        STATUS_CANCELED,
        STATUS_DECLINED,
    },
    STATUS_FOR_REVISION: {STATUS_FOR_REVIEW, STATUS_FOR_APPROVAL, STATUS_CANCELED, STATUS_DECLINED},
    STATUS_REJECTED: {STATUS_FOR_REVISION, STATUS_CANCELED, STATUS_DECLINED},
}

DECISIONS = (APPROVAL_APPROVED, APPROVAL_REJECTED)

_BLOCKED_MESSAGES = {
    STATUS_CANCELED: "Ticket has been canceled.",
    STATUS_FOR_REVISION: "Ticket is under revision.",
    STATUS_DECLINED: "Ticket has been declined.",
    STATUS_DONE: "Ticket is already done.",
    STATUS_REJECTED: "Ticket has been rejected.",
}


def ticket_url(ticket: Ticket) -> str:
    return f"/tickets/{ticket.id}"


def lock_ticket(ticket_id: int) -> Ticket:
    """Load a ticket row for update (404 if missing)."""
    return (
        Ticket.query.filter_by(id=ticket_id)
        .with_for_update()
        .populate_existing()
        .first_or_404(description="Ticket not found.")
    )


def require_status(ticket: Ticket, *expected: str) -> None:
    if ticket.status in expected:
        return
    message = _BLOCKED_MESSAGES.get(
        ticket.status,
        f"Ticket is {ticket.status}; expected {' or '.join(expected)}.",
    )
    raise WorkflowError(message)


# ---------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------
def notify_user(user_id: int, message: str, ticket: Optional[Ticket] = None) -> Notification:
    """Queue a notification row for a user (delivered by polling)."""
    notification = Notification(
        user_id=user_id,
        message=message,
        ticket_id=ticket.id if ticket is not None else None,
        url=ticket_url(ticket) if ticket is not None else None,
    )
    db.session.add(notification)
    return notification


def notify_users(user_ids: Iterable[int], message: str, ticket: Optional[Ticket] = None, exclude=()) -> int:
    sent = 0
    skip = set(exclude)
    for user_id in sorted(set(user_ids)):
        if user_id in skip:
            continue
        notify_user(user_id, message, ticket)
        sent += 1
    return sent


# ---------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------
def canvass_action(ticket: Ticket, user, status: str) -> Optional[TicketStatusHistory]:
    """
    Move a ticket to `status` and record the change.

    Returns the history row, or None when the status is unchanged.
    """
    if status not in TICKET_STATUSES:
        raise ValidationError(f"Unknown ticket status: {status}")

    previous = ticket.status
    if previous == status:
        return None

    if previous in TERMINAL_STATUSES:
        raise WorkflowError(_BLOCKED_MESSAGES[previous])

    if status not in ALLOWED_TRANSITIONS.get(previous, ()):
        raise WorkflowError(f"Cannot move ticket from {previous} to {status}.")

    ticket.status = status
    ticket.updated_at = datetime.utcnow()

    entry = TicketStatusHistory(
        ticket=ticket,
        previous_status=previous,
        new_status=status,
        changed_by_id=user.id if user is not None else None,
    )
    db.session.add(entry)
    log_action(ticket, "STATUS", before={"status": previous}, after={"status": status})

    logger.info(
        "Ticket {ticket} moved {previous} -> {status} by user {user}",
        ticket=ticket.name or ticket.id,
        previous=previous,
        status=status,
        user=user.id if user is not None else None,
    )
    return entry


def reset_approvals(ticket: Ticket) -> None:
    now = datetime.utcnow()
    for approval in ticket.approvals:
        approval.status = APPROVAL_PENDING
        approval.review_date = now


def _set_approval(ticket: Ticket, user, status: str):
    approval = ticket.approval_for(user.id)
    approval.status = status
    approval.review_date = datetime.utcnow()
    return approval


def _require_decision(decision: str) -> str:
    decision = (decision or "").strip().upper()
    if decision not in DECISIONS:
        raise ValidationError("Decision must be APPROVED or REJECTED.")
    return decision


def _is_ticket_reviewer(ticket: Ticket, user) -> bool:
    """Non-manager reviewer assigned to the ticket."""
    return not user.is_manager and ticket.approval_for(user.id) is not None


def _is_ticket_manager(ticket: Ticket, user) -> bool:
    return user.is_manager and ticket.approval_for(user.id) is not None


# ---------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------
def start_canvass(ticket: Ticket, user) -> str:
    if not (user.is_admin or ticket.created_by_id == user.id):
        raise PermissionDenied("Only the ticket creator can start canvassing.")
    require_status(ticket, STATUS_FOR_CANVASS)
    canvass_action(ticket, user, STATUS_WORK_IN_PROGRESS)
    return ticket.status


def submit_for_review(ticket: Ticket, user) -> str:
    """Canvass submitted (or resubmitted after revision): reviewers are asked to review."""
    canvass_action(ticket, user, STATUS_FOR_REVIEW)
    message = f"The ticket {ticket.name} has a canvass submission awaiting your review."
    notify_users((a.reviewer_id for a in ticket.reviewer_approvals()), message, ticket, exclude={user.id})
    return ticket.status


def aggregate_reviewer_approvals(ticket: Ticket, actor) -> str:
    """
    Decide the ticket status from non-manager reviewer approvals.

    - all approved -> FOR APPROVAL; PENDING managers become AWAITING ACTION and are notified
    - sole reviewer rejected -> REJECTED
    - otherwise unchanged
    """
    reviewers = ticket.reviewer_approvals()

    if reviewers and all(a.status == APPROVAL_APPROVED for a in reviewers):
        canvass_action(ticket, actor, STATUS_FOR_APPROVAL)
        message = (
            f"The ticket {ticket.name} has been approved by all reviewers "
            "and is now awaiting your action."
        )
        for approval in ticket.manager_approvals():
            # Managers already awaiting were notified before
            if approval.status != APPROVAL_PENDING:
                continue
            approval.status = APPROVAL_AWAITING_ACTION
            approval.review_date = datetime.utcnow()
            notify_user(approval.reviewer_id, message, ticket)
        return ticket.status

    if len(reviewers) == 1 and reviewers[0].reviewer_id == actor.id and reviewers[0].status == APPROVAL_REJECTED:
        canvass_action(ticket, actor, STATUS_REJECTED)

    return ticket.status


def reviewer_decision(ticket: Ticket, user, decision: str) -> str:
    decision = _require_decision(decision)
    require_status(ticket, STATUS_FOR_REVIEW)
    if not _is_ticket_reviewer(ticket, user):
        raise PermissionDenied("Only reviewers assigned to this ticket can review it.")

    _set_approval(ticket, user, decision)
    return aggregate_reviewer_approvals(ticket, user)


def manager_decision(ticket: Ticket, user, decision: str) -> str:
    decision = _require_decision(decision)
    require_status(ticket, STATUS_FOR_APPROVAL)
    if not _is_ticket_manager(ticket, user):
        raise PermissionDenied("Only managers assigned to this ticket can approve it.")

    _set_approval(ticket, user, decision)
    managers = ticket.manager_approvals()

    if managers and all(a.status == APPROVAL_APPROVED for a in managers):
        canvass_action(ticket, user, STATUS_DONE)
        notify_user(ticket.created_by_id, f"The ticket {ticket.name} has been approved and is now done.", ticket)
    elif len(managers) == 1 and decision == APPROVAL_REJECTED:
        canvass_action(ticket, user, STATUS_REJECTED)
        notify_user(ticket.created_by_id, f"The ticket {ticket.name} has been rejected.", ticket)

    return ticket.status


def request_revision(ticket: Ticket, user) -> str:
    if _is_ticket_reviewer(ticket, user):
        require_status(ticket, STATUS_FOR_REVIEW)
    elif _is_ticket_manager(ticket, user):
        require_status(ticket, STATUS_FOR_APPROVAL)
    else:
        raise PermissionDenied("Only reviewers and managers on this ticket can request a revision.")

    reset_approvals(ticket)
    canvass_action(ticket, user, STATUS_FOR_REVISION)
    notify_user(ticket.created_by_id, f"The ticket {ticket.name} needs revision.", ticket)
    return ticket.status


def cancel_ticket(ticket: Ticket, user) -> str:
    allowed = user.is_admin or ticket.created_by_id == user.id or _is_ticket_manager(ticket, user)
    if not allowed:
        raise PermissionDenied("Only the creator, a manager on this ticket or an admin can cancel it.")
    if ticket.status in TERMINAL_STATUSES:
        raise WorkflowError(_BLOCKED_MESSAGES[ticket.status])

    reset_approvals(ticket)
    canvass_action(ticket, user, STATUS_CANCELED)
    return ticket.status


def decline_ticket(ticket: Ticket, user) -> str:
    if user.is_admin:
        if ticket.status in TERMINAL_STATUSES:
            raise WorkflowError(_BLOCKED_MESSAGES[ticket.status])
    elif _is_ticket_manager(ticket, user):
        require_status(ticket, STATUS_FOR_APPROVAL)
    else:
        raise PermissionDenied("Only a manager on this ticket or an admin can decline it.")

    reset_approvals(ticket)
    canvass_action(ticket, user, STATUS_DECLINED)
    notify_user(ticket.created_by_id, f"The ticket {ticket.name} has been declined.", ticket)
    return ticket.status


def record_canvass_revision(ticket: Ticket, user) -> str:
    """
    Status effects of an edited canvass form.

    Reviewer edit (FOR REVIEW OF SUBMISSIONS): counts as that reviewer's approval;
    other pending reviewers are asked to re-approve; aggregation runs.
    Creator/shared user edit (FOR REVISION): back to FOR REVIEW OF SUBMISSIONS.
    """
    ticket.is_revised = True

    if ticket.status == STATUS_FOR_REVIEW:
        _set_approval(ticket, user, APPROVAL_APPROVED)
        message = f"The ticket {ticket.name} has been revised and needs your approval."
        pending = (
            a.reviewer_id
            for a in ticket.reviewer_approvals()
            if a.status == APPROVAL_PENDING
        )
        notify_users(pending, message, ticket, exclude={user.id})
        return aggregate_reviewer_approvals(ticket, user)

    return submit_for_review(ticket, user)
