"""
canvassing/queries.py

Ticket visibility and aggregate queries shared by the tickets, dashboard and
users blueprints.

Visibility rule: admins see every ticket; everybody else sees tickets they
created, were shared with, or review (reviewers and managers alike).
"""

from __future__ import annotations

from sqlalchemy import func, or_, select

from .models import (
    Approval,
    CanvassForm,
    REVISED_BUCKET,
    STATUS_DONE,
    TICKET_STATUSES,
    Ticket,
    TicketSharedUser,
)
from .workflow import OPEN_STATUSES


def _shared_ticket_ids(user_id: int):
    return select(TicketSharedUser.ticket_id).where(TicketSharedUser.user_id == user_id)


def _reviewed_ticket_ids(user_id: int):
    return select(Approval.ticket_id).where(Approval.reviewer_id == user_id)


def visible_tickets_query(user):
    """Tickets the user may see."""
    if user.is_admin:
        return Ticket.query
    return Ticket.query.filter(
        or_(
            Ticket.created_by_id == user.id,
            Ticket.id.in_(_shared_ticket_ids(user.id)),
            Ticket.id.in_(_reviewed_ticket_ids(user.id)),
        )
    )


def search_tickets(q, search: str | None):
    """Case-insensitive match on ticket code, item name or description."""
    if not search:
        return q
    pattern = f"%{search}%"
    return q.filter(
        or_(
            func.coalesce(Ticket.name, "").ilike(pattern),
            Ticket.item_name.ilike(pattern),
            Ticket.item_description.ilike(pattern),
        )
    )


def filter_by_status(q, status_filter: str | None):
    """Status filter; REVISED selects revised tickets; empty/"all" disables."""
    if not status_filter or status_filter.lower() == "all":
        return q
    if status_filter == REVISED_BUCKET:
        return q.filter(Ticket.is_revised.is_(True))
    return q.filter(Ticket.status == status_filter)


def newest_first(q):
    return q.order_by(Ticket.created_at.desc(), Ticket.id.desc())


def ticket_status_counts(user) -> dict:
    """
    Count per status over tickets the user created or reviews.

    REVISED counts revised tickets on top of their real status; "total" is the
    number of unique tickets.
    """
    q = Ticket.query.filter(
        or_(
            Ticket.created_by_id == user.id,
            Ticket.id.in_(_reviewed_ticket_ids(user.id)),
        )
    )

    counts = {status: 0 for status in TICKET_STATUSES}
    rows = q.with_entities(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status).all()
    for status, count in rows:
        counts[status] = count

    counts[REVISED_BUCKET] = q.filter(Ticket.is_revised.is_(True)).count()
    counts["total"] = q.count()
    return counts


def dashboard_counts(q) -> dict:
    """Open / completed / revised counts over a ticket query."""
    return {
        "open_count": q.filter(Ticket.status.in_(OPEN_STATUSES)).count(),
        "completed_count": q.filter(Ticket.status == STATUS_DONE).count(),
        "revised_count": q.filter(Ticket.is_revised.is_(True)).count(),
    }


def purchaser_stats(user_id: int) -> dict:
    created = Ticket.query.filter(Ticket.created_by_id == user_id)
    return {
        "ticket_count": created.count(),
        "revised_ticket_count": created.filter(Ticket.is_revised.is_(True)).count(),
    }


def reviewer_stats(user_id: int) -> dict:
    reviewed = Approval.query.filter(Approval.reviewer_id == user_id).count()
    revised = (
        Ticket.query.filter(
            Ticket.id.in_(select(CanvassForm.ticket_id).where(CanvassForm.revised_by_id == user_id))
        ).count()
    )
    return {
        "tickets_reviewed_by_user_count": reviewed,
        "tickets_revised_by_user_count": revised,
    }
