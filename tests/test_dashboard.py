from __future__ import annotations

from canvassing.models import STATUS_FOR_CANVASS


def test_dashboard_counts_visible_tickets(login, make_ticket) -> None:
    open_id = make_ticket()
    canceled_id = make_ticket()
    login("purchaser").post(f"/tickets/{canceled_id}/cancel")

    body = login("purchaser").get("/dashboard").get_json()

    assert [t["ticket_id"] for t in body["tickets"]] == [canceled_id, open_id]
    assert body["open_count"] == 1
    assert body["completed_count"] == 0
    assert body["revised_count"] == 0


def test_dashboard_for_reviewer_and_outsider(login, make_ticket) -> None:
    ticket_id = make_ticket()

    reviewer = login("reviewer").get("/dashboard").get_json()
    assert [(t["ticket_id"], t["ticket_status"]) for t in reviewer["tickets"]] == [(ticket_id, STATUS_FOR_CANVASS)]

    outsider = login("outsider").get("/dashboard").get_json()
    assert outsider == {"tickets": [], "open_count": 0, "completed_count": 0, "revised_count": 0}


def test_dashboard_requires_login(client) -> None:
    response = client.get("/dashboard")

    assert response.status_code == 401
    assert response.get_json()["message"] == "User not authenticated."
