"""
canvassing/security.py

Access control helpers for the canvassing API.

Key rules:
- Clients are never trusted; all permission checks are server-side.
- Admin: full access.
- Ticket visibility: participants only (creator, shared users, reviewers and
  managers assigned to the ticket).
- Role gates (e.g. user directory for managers/admins) are explicit decorators.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
- Forbidden responses are JSON: {"error": true, "message": "..."} with 403.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from flask_login import current_user

from .errors import json_error

FORBIDDEN_MESSAGE = "You do not have permission to perform this action."


def _forbidden(message: str = FORBIDDEN_MESSAGE):
    """Consistent 403 JSON response."""
    return json_error(message, 403)


def is_admin() -> bool:
    """Return True if current user is authenticated and admin."""
    return bool(current_user.is_authenticated and getattr(current_user, "is_admin", False))


def can_view_ticket(ticket) -> bool:
    if not current_user.is_authenticated:
        return False
    return is_admin() or ticket.is_participant(current_user)


def admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: admin-only."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        if not is_admin():
            return _forbidden()
        return view_func(*args, **kwargs)

    return wrapper


def roles_required(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator factory: current user's role must be one of `roles`.

    Usage:
        @roles_required(ROLE_ADMIN, ROLE_MANAGER)
        def list_users(): ...
    """
    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            if not current_user.is_authenticated or current_user.role not in roles:
                return _forbidden()
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


def ticket_access_required(get_ticket_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator factory: VIEW permission for a ticket.

    Admin: always allowed.
    Non-admin: must be a participant of the ticket.

    Usage:
        @ticket_access_required(lambda ticket_id: Ticket.query.get_or_404(ticket_id))
        def details(ticket_id): ...
    """
    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            ticket = get_ticket_func(**kwargs)

            if not can_view_ticket(ticket):
                return _forbidden("You do not have access to this ticket.")

            return view_func(*args, **kwargs)

        return wrapper

    return decorator
