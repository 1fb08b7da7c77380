"""Dashboard: visible tickets with open / completed / revised counts."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ...queries import dashboard_counts, newest_first, visible_tickets_query
from ...utils import parse_optional_int

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")

DEFAULT_LIMIT = 50


@dashboard_bp.route("", methods=["GET"])
@login_required
def dashboard():
    q = visible_tickets_query(current_user)
    limit = parse_optional_int(request.args.get("limit")) or DEFAULT_LIMIT
    tickets = newest_first(q).limit(min(max(limit, 1), 500)).all()

    data = {"tickets": [t.to_summary() for t in tickets]}
    data.update(dashboard_counts(q))
    return jsonify(data)
