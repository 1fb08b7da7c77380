"""Shared fixtures: app on in-memory SQLite, seeded team, per-user clients."""

from __future__ import annotations

import pytest

from canvassing import create_app
from canvassing.extensions import db
from canvassing.models import ROLE_ADMIN, ROLE_MANAGER, ROLE_PURCHASER, ROLE_REVIEWER, User

from helpers import canvass_payload, upload

PASSWORD = "secret123"

TEAM = {
    "admin": ("admin@example.com", "Ada Admin", ROLE_ADMIN),
    "manager": ("manager@example.com", "Max Manager", ROLE_MANAGER),
    "manager2": ("manager2@example.com", "Mia Manager", ROLE_MANAGER),
    "reviewer": ("reviewer@example.com", "Rex Reviewer", ROLE_REVIEWER),
    "reviewer2": ("reviewer2@example.com", "Ria Reviewer", ROLE_REVIEWER),
    "purchaser": ("purchaser@example.com", "Pat Purchaser", ROLE_PURCHASER),
    "outsider": ("outsider@example.com", "Oli Outsider", ROLE_PURCHASER),
}


@pytest.fixture()
def app(tmp_path):
    app = create_app("config.TestingConfig", {"UPLOAD_ROOT": str(tmp_path / "uploads")})
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def users(app) -> dict[str, int]:
    """Seeded team; returns ids keyed by nickname."""
    ids = {}
    with app.app_context():
        for key, (email, full_name, role) in TEAM.items():
            user = User(email=email, full_name=full_name, role=role)
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.flush()
            ids[key] = user.id
        db.session.commit()
    return ids


@pytest.fixture()
def login(app, users):
    """login("reviewer") -> a test client with that user's session."""

    def _login(key: str):
        client = app.test_client()
        response = client.post("/auth/login", json={"email": TEAM[key][0], "password": PASSWORD})
        assert response.status_code == 200, response.get_data(as_text=True)
        return client

    return _login


@pytest.fixture()
def make_ticket(login, users):
    """Create a ticket as the purchaser; returns its id."""

    def _make(reviewers=("reviewer",), managers=("manager",), creator="purchaser", **fields):
        payload = {
            "item_name": "Laptop",
            "item_description": "14 inch business laptop",
            "quantity": 2,
            "specifications": "16GB RAM",
            "rf_date_received": "2025-03-10",
            "reviewers": [users[key] for key in reviewers],
            "managers": [users[key] for key in managers],
        }
        payload.update(fields)
        response = login(creator).post("/tickets", json=payload)
        assert response.status_code == 201, response.get_data(as_text=True)
        return response.get_json()["ticket_id"]

    return _make


@pytest.fixture()
def submitted_ticket(make_ticket, login):
    """Ticket moved to FOR REVIEW OF SUBMISSIONS with a canvass form."""

    def _submit(**kwargs):
        ticket_id = make_ticket(**kwargs)
        purchaser = login(kwargs.get("creator", "purchaser"))
        response = purchaser.post(f"/tickets/{ticket_id}/start-canvass")
        assert response.status_code == 200, response.get_data(as_text=True)

        response = purchaser.post(
            f"/canvass/{ticket_id}",
            data=canvass_payload(
                canvass_sheet=upload(b"sheet", "sheet.pdf"),
                quotation_1=upload(b"quote-1", "quote1.pdf"),
            ),
            content_type="multipart/form-data",
        )
        assert response.status_code == 201, response.get_data(as_text=True)
        return ticket_id

    return _submit
