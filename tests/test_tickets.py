"""Ticket creation, listing, counts and sharing."""

from __future__ import annotations

import re

from canvassing.extensions import db
from canvassing.models import (
    APPROVAL_PENDING,
    Notification,
    STATUS_FOR_CANVASS,
    STATUS_WORK_IN_PROGRESS,
    Ticket,
)


def test_create_ticket_assigns_name_and_approvals(app, login, users, make_ticket) -> None:
    ticket_id = make_ticket(reviewers=("reviewer", "reviewer2"), managers=("manager",))

    with app.app_context():
        ticket = db.session.get(Ticket, ticket_id)
        assert re.fullmatch(rf"{ticket_id:05d}-\d{{6}}", ticket.name)
        assert ticket.status == STATUS_FOR_CANVASS
        assert ticket.reviewer_ids == {users["reviewer"], users["reviewer2"], users["manager"]}
        assert {a.status for a in ticket.approvals} == {APPROVAL_PENDING}

        notified = {n.user_id for n in Notification.query.filter_by(ticket_id=ticket_id)}
        assert notified == {users["reviewer"], users["reviewer2"]}
        message = Notification.query.filter_by(user_id=users["reviewer"]).one().message
        assert message == "You've been assigned as a reviewer for this ticket"


def test_create_ticket_requires_reviewer_and_manager(login, users) -> None:
    response = login("purchaser").post(
        "/tickets",
        json={"item_name": "Chair", "item_description": "Office chair", "quantity": 1, "reviewers": [], "managers": []},
    )

    assert response.status_code == 400
    fields = response.get_json()["fields"]
    assert set(fields) >= {"reviewers", "managers"}


def test_create_ticket_rejects_wrong_roles(login, users) -> None:
    response = login("purchaser").post(
        "/tickets",
        json={
            "item_name": "Chair",
            "item_description": "Office chair",
            "quantity": 1,
            "reviewers": [users["manager"]],
            "managers": [users["manager"]],
        },
    )

    assert response.status_code == 400
    assert "reviewers" in response.get_json()["fields"]


def test_reviewer_cannot_create_ticket(login, users) -> None:
    response = login("reviewer").post(
        "/tickets",
        json={
            "item_name": "Chair",
            "item_description": "Office chair",
            "quantity": 1,
            "reviewers": [users["reviewer2"]],
            "managers": [users["manager"]],
        },
    )

    assert response.status_code == 403


def test_ticket_details_visible_to_participants_only(login, make_ticket) -> None:
    ticket_id = make_ticket()

    details = login("reviewer").get(f"/tickets/{ticket_id}")
    assert details.status_code == 200
    body = details.get_json()
    assert body["ticket_created_by_name"] == "Pat Purchaser"
    assert body["approval_status"] == APPROVAL_PENDING
    assert {r["reviewer_role"] for r in body["reviewers"]} == {"REVIEWER", "MANAGER"}

    assert login("outsider").get(f"/tickets/{ticket_id}").status_code == 403
    assert login("admin").get(f"/tickets/{ticket_id}").status_code == 200


def test_ticket_details_missing_ticket(login, users) -> None:
    response = login("admin").get("/tickets/999")

    assert response.status_code == 404
    assert response.get_json()["message"] == "Ticket not found."


def test_reviewer_response(login, make_ticket) -> None:
    ticket_id = make_ticket()

    assert login("reviewer").get(f"/tickets/{ticket_id}/reviewer-response").get_json() == {
        "approval_status": APPROVAL_PENDING
    }
    assert login("purchaser").get(f"/tickets/{ticket_id}/reviewer-response").get_json() == {
        "approval_status": None
    }


def test_my_tickets_search_filter_and_paging(login, make_ticket) -> None:
    first = make_ticket(item_name="Projector")
    make_ticket(item_name="Printer")
    make_ticket(item_name="Paper", item_description="A4 reams")

    purchaser = login("purchaser")
    purchaser.post(f"/tickets/{first}/start-canvass")

    everything = purchaser.get("/tickets?page_size=2").get_json()
    assert everything["total_count"] == 3
    assert len(everything["tickets"]) == 2

    second_page = purchaser.get("/tickets?page=2&page_size=2").get_json()
    assert len(second_page["tickets"]) == 1

    found = purchaser.get("/tickets?search_query=reams").get_json()
    assert [t["ticket_item_name"] for t in found["tickets"]] == ["Paper"]

    wip = purchaser.get("/tickets", query_string={"status_filter": STATUS_WORK_IN_PROGRESS}).get_json()
    assert [t["ticket_id"] for t in wip["tickets"]] == [first]

    assert purchaser.get("/tickets?status_filter=all").get_json()["total_count"] == 3
    assert login("outsider").get("/tickets").get_json() == {"tickets": [], "total_count": 0}
    assert login("admin").get("/tickets").get_json()["total_count"] == 3


def test_status_counts(app, login, make_ticket) -> None:
    first = make_ticket()
    make_ticket()
    login("purchaser").post(f"/tickets/{first}/start-canvass")

    with app.app_context():
        db.session.get(Ticket, first).is_revised = True
        db.session.commit()

    counts = login("purchaser").get("/tickets/status-counts").get_json()
    assert counts[STATUS_FOR_CANVASS] == 1
    assert counts[STATUS_WORK_IN_PROGRESS] == 1
    assert counts["REVISED"] == 1
    assert counts["total"] == 2

    reviewer_counts = login("reviewer").get("/tickets/status-counts").get_json()
    assert reviewer_counts["total"] == 2


def test_share_ticket(app, login, users, make_ticket) -> None:
    ticket_id = make_ticket()
    purchaser = login("purchaser")

    options = purchaser.get(f"/tickets/{ticket_id}/shareable-users").get_json()
    option_ids = {o["value"] for o in options}
    assert users["outsider"] in option_ids
    assert users["admin"] in option_ids
    assert not option_ids & {users["purchaser"], users["reviewer"], users["manager"]}

    response = purchaser.post(f"/tickets/{ticket_id}/share", json={"user_id": users["outsider"]})
    assert response.status_code == 200, response.get_data(as_text=True)
    assert [u["user_id"] for u in response.get_json()["shared_users"]] == [users["outsider"]]

    # Shared user can now see the ticket and is no longer offered
    assert login("outsider").get(f"/tickets/{ticket_id}").status_code == 200
    options = purchaser.get(f"/tickets/{ticket_id}/shareable-users").get_json()
    assert users["outsider"] not in {o["value"] for o in options}

    with app.app_context():
        notification = Notification.query.filter_by(user_id=users["outsider"]).one()
        assert notification.message == "Pat Purchaser has shared ticket with you"
        assert notification.url == f"/tickets/{ticket_id}"

    again = purchaser.post(f"/tickets/{ticket_id}/share", json={"user_id": users["outsider"]})
    assert again.status_code == 409


def test_reviewer_cannot_share(login, users, make_ticket) -> None:
    ticket_id = make_ticket()

    response = login("reviewer").post(f"/tickets/{ticket_id}/share", json={"user_id": users["outsider"]})

    assert response.status_code == 403


def test_admin_status_counts_cover_only_own_tickets(login, make_ticket) -> None:
    make_ticket()
    make_ticket()

    counts = login("admin").get("/tickets/status-counts").get_json()

    assert counts[STATUS_FOR_CANVASS] == 0
    assert counts["total"] == 0

    make_ticket(creator="admin")
    counts = login("admin").get("/tickets/status-counts").get_json()
    assert counts[STATUS_FOR_CANVASS] == 1
    assert counts["total"] == 1
