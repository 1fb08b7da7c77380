"""Ticket status progression and approval aggregation."""

from __future__ import annotations

import pytest

from canvassing import workflow
from canvassing.errors import ValidationError, WorkflowError
from canvassing.extensions import db
from canvassing.models import (
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
    Ticket,
    TicketStatusHistory,
    User,
)

AWAITING_MESSAGE = "The ticket {name} has been approved by all reviewers and is now awaiting your action."


def _approvals(app, ticket_id: int) -> dict[int, str]:
    with app.app_context():
        ticket = db.session.get(Ticket, ticket_id)
        return {a.reviewer_id: a.status for a in ticket.approvals}


def _status(app, ticket_id: int) -> str:
    with app.app_context():
        return db.session.get(Ticket, ticket_id).status


# ---------------------------------------------------------------------
# canvass_action
# ---------------------------------------------------------------------
def test_canvass_action_records_history(app, users, make_ticket) -> None:
    ticket_id = make_ticket()

    with app.app_context():
        ticket = db.session.get(Ticket, ticket_id)
        user = db.session.get(User, users["purchaser"])

        entry = workflow.canvass_action(ticket, user, STATUS_WORK_IN_PROGRESS)
        db.session.commit()

        assert entry.previous_status == STATUS_FOR_CANVASS
        assert entry.new_status == STATUS_WORK_IN_PROGRESS
        assert entry.changed_by_id == user.id

        # Same status: no-op, no extra history row
        assert workflow.canvass_action(ticket, user, STATUS_WORK_IN_PROGRESS) is None
        assert TicketStatusHistory.query.filter_by(ticket_id=ticket_id).count() == 1


def test_canvass_action_rejects_unknown_and_illegal_moves(app, users, make_ticket) -> None:
    ticket_id = make_ticket()

    with app.app_context():
        ticket = db.session.get(Ticket, ticket_id)
        user = db.session.get(User, users["admin"])

        with pytest.raises(ValidationError):
            workflow.canvass_action(ticket, user, "ARCHIVED")

        with pytest.raises(WorkflowError):
            workflow.canvass_action(ticket, user, STATUS_DONE)

        workflow.canvass_action(ticket, user, STATUS_CANCELED)
        with pytest.raises(WorkflowError, match="Ticket has been canceled."):
            workflow.canvass_action(ticket, user, STATUS_WORK_IN_PROGRESS)


def test_admin_status_endpoint_enforces_transitions(app, login, make_ticket) -> None:
    ticket_id = make_ticket()
    admin = login("admin")

    bad = admin.post(f"/tickets/{ticket_id}/status", json={"status": STATUS_DONE})
    assert bad.status_code == 409
    assert bad.get_json()["error"] is True

    ok = admin.post(f"/tickets/{ticket_id}/status", json={"status": STATUS_WORK_IN_PROGRESS})
    assert ok.status_code == 200
    assert ok.get_json()["ticket_status"] == STATUS_WORK_IN_PROGRESS

    assert login("purchaser").post(f"/tickets/{ticket_id}/status", json={"status": STATUS_CANCELED}).status_code == 403

    history = admin.get(f"/tickets/{ticket_id}/status-history").get_json()
    assert [(h["previous_status"], h["new_status"]) for h in history] == [
        (STATUS_FOR_CANVASS, STATUS_WORK_IN_PROGRESS)
    ]


# ---------------------------------------------------------------------
# start canvass
# ---------------------------------------------------------------------
def test_start_canvass_only_by_creator(app, login, make_ticket) -> None:
    ticket_id = make_ticket()

    assert login("reviewer").post(f"/tickets/{ticket_id}/start-canvass").status_code == 403

    response = login("purchaser").post(f"/tickets/{ticket_id}/start-canvass")
    assert response.status_code == 200
    assert response.get_json()["message"] == "Canvassing started successfully"
    assert _status(app, ticket_id) == STATUS_WORK_IN_PROGRESS

    again = login("purchaser").post(f"/tickets/{ticket_id}/start-canvass")
    assert again.status_code == 409


# ---------------------------------------------------------------------
# reviewer & manager decisions
# ---------------------------------------------------------------------
def test_full_approval_chain(app, login, users, submitted_ticket) -> None:
    ticket_id = submitted_ticket(reviewers=("reviewer", "reviewer2"), managers=("manager",))
    assert _status(app, ticket_id) == STATUS_FOR_REVIEW

    # Manager cannot act before the reviewers are done
    early = login("manager").post(f"/tickets/{ticket_id}/manager-review", json={"decision": "APPROVED"})
    assert early.status_code == 409

    first = login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})
    assert first.status_code == 200
    assert first.get_json()["ticket_status"] == STATUS_FOR_REVIEW

    second = login("reviewer2").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})
    assert second.get_json()["ticket_status"] == STATUS_FOR_APPROVAL

    approvals = _approvals(app, ticket_id)
    assert approvals[users["manager"]] == APPROVAL_AWAITING_ACTION

    with app.app_context():
        ticket = db.session.get(Ticket, ticket_id)
        messages = [n.message for n in Notification.query.filter_by(user_id=users["manager"])]
        assert messages == [AWAITING_MESSAGE.format(name=ticket.name)]

    done = login("manager").post(f"/tickets/{ticket_id}/manager-review", json={"decision": "APPROVED"})
    assert done.status_code == 200
    assert done.get_json()["ticket_status"] == STATUS_DONE

    with app.app_context():
        creator_messages = [n.message for n in Notification.query.filter_by(user_id=users["purchaser"])]
        assert any("is now done" in m for m in creator_messages)


def test_single_reviewer_rejection_rejects_ticket(app, login, submitted_ticket) -> None:
    ticket_id = submitted_ticket()

    response = login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "REJECTED"})

    assert response.get_json()["ticket_status"] == STATUS_REJECTED


def test_one_of_many_reviewers_rejecting_keeps_status(app, login, users, submitted_ticket) -> None:
    ticket_id = submitted_ticket(reviewers=("reviewer", "reviewer2"))

    response = login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "REJECTED"})

    assert response.get_json()["ticket_status"] == STATUS_FOR_REVIEW
    assert _approvals(app, ticket_id)[users["reviewer"]] == APPROVAL_REJECTED


def test_review_requires_valid_decision_and_reviewer(login, submitted_ticket) -> None:
    ticket_id = submitted_ticket()

    assert login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "MAYBE"}).status_code == 400
    assert login("purchaser").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"}).status_code == 403
    assert login("manager").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"}).status_code == 403


def test_managers_already_awaiting_are_not_notified_twice(app, users, submitted_ticket) -> None:
    ticket_id = submitted_ticket(managers=("manager", "manager2"))

    with app.app_context():
        ticket = db.session.get(Ticket, ticket_id)
        reviewer = db.session.get(User, users["reviewer"])
        ticket.approval_for(users["manager2"]).status = APPROVAL_AWAITING_ACTION
        ticket.approval_for(users["reviewer"]).status = APPROVAL_APPROVED

        workflow.aggregate_reviewer_approvals(ticket, reviewer)
        db.session.commit()

        assert ticket.status == STATUS_FOR_APPROVAL
        assert Notification.query.filter_by(user_id=users["manager"]).count() == 1
        assert Notification.query.filter_by(user_id=users["manager2"]).count() == 0


def test_multiple_managers_need_all_approvals(app, login, submitted_ticket) -> None:
    ticket_id = submitted_ticket(managers=("manager", "manager2"))
    login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})

    first = login("manager").post(f"/tickets/{ticket_id}/manager-review", json={"decision": "APPROVED"})
    assert first.get_json()["ticket_status"] == STATUS_FOR_APPROVAL

    rejected = login("manager2").post(f"/tickets/{ticket_id}/manager-review", json={"decision": "REJECTED"})
    assert rejected.get_json()["ticket_status"] == STATUS_FOR_APPROVAL

    assert login("manager2").post(f"/tickets/{ticket_id}/manager-review", json={"decision": "APPROVED"}).get_json()[
        "ticket_status"
    ] == STATUS_DONE


def test_single_manager_rejection(app, login, submitted_ticket) -> None:
    ticket_id = submitted_ticket()
    login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})

    response = login("manager").post(f"/tickets/{ticket_id}/manager-review", json={"decision": "REJECTED"})

    assert response.get_json()["ticket_status"] == STATUS_REJECTED


# ---------------------------------------------------------------------
# revision, cancel, decline
# ---------------------------------------------------------------------
def test_request_revision_resets_approvals(app, login, users, submitted_ticket) -> None:
    ticket_id = submitted_ticket(reviewers=("reviewer", "reviewer2"))
    login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})

    response = login("reviewer2").post(f"/tickets/{ticket_id}/request-revision")

    assert response.status_code == 200
    assert response.get_json()["ticket_status"] == STATUS_FOR_REVISION
    assert set(_approvals(app, ticket_id).values()) == {APPROVAL_PENDING}

    blocked = login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})
    assert blocked.status_code == 409
    assert blocked.get_json()["message"] == "Ticket is under revision."


def test_cancel_ticket(app, login, submitted_ticket) -> None:
    ticket_id = submitted_ticket()

    assert login("reviewer").post(f"/tickets/{ticket_id}/cancel").status_code == 403

    response = login("purchaser").post(f"/tickets/{ticket_id}/cancel")
    assert response.get_json()["ticket_status"] == STATUS_CANCELED

    blocked = login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})
    assert blocked.status_code == 409
    assert blocked.get_json()["message"] == "Ticket has been canceled."


def test_decline_ticket_by_manager(app, login, users, submitted_ticket) -> None:
    ticket_id = submitted_ticket()

    # Not yet awaiting the manager
    assert login("manager").post(f"/tickets/{ticket_id}/decline").status_code == 409

    login("reviewer").post(f"/tickets/{ticket_id}/review", json={"decision": "APPROVED"})
    response = login("manager").post(f"/tickets/{ticket_id}/decline")

    assert response.get_json()["ticket_status"] == STATUS_DECLINED
    assert set(_approvals(app, ticket_id).values()) == {APPROVAL_PENDING}
    with app.app_context():
        messages = [n.message for n in Notification.query.filter_by(user_id=users["purchaser"])]
        assert any("has been declined" in m for m in messages)
