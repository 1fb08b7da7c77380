"""Own-account routes: name, avatar, password, deletion."""

from __future__ import annotations

from pathlib import Path

from canvassing.extensions import db
from canvassing.models import Ticket, User

from conftest import PASSWORD, TEAM
from helpers import upload


def test_me_and_password_exists(login) -> None:
    client = login("purchaser")

    me = client.get("/profile/me").get_json()
    assert me["user_full_name"] == "Pat Purchaser"
    assert me["has_password"] is True
    assert client.get("/profile/password-exists").get_json() == {"has_password": True}


def test_update_display_name(login) -> None:
    client = login("purchaser")

    assert client.patch("/profile/name", json={"name": "  "}).status_code == 400

    response = client.patch("/profile/name", json={"name": "Patricia Purchaser"})
    assert response.status_code == 200
    assert response.get_json()["user"]["user_initials"] == "PP"
    assert client.get("/profile/me").get_json()["user_full_name"] == "Patricia Purchaser"


def test_avatar_upload_replaces_previous(app, login) -> None:
    client = login("purchaser")
    avatars = Path(app.config["UPLOAD_ROOT"]) / app.config["AVATAR_BUCKET"]

    first = client.post(
        "/profile/avatar",
        data={"avatar": upload(b"first", "me.png")},
        content_type="multipart/form-data",
    )
    assert first.status_code == 200, first.get_data(as_text=True)

    second = client.post(
        "/profile/avatar",
        data={"avatar": upload(b"second", "me.jpg")},
        content_type="multipart/form-data",
    )
    assert second.status_code == 200
    url = second.get_json()["avatar_url"]
    assert url.startswith("/files/avatars/")

    stored = [p for p in avatars.rglob("*") if p.is_file()]
    assert [p.read_bytes() for p in stored] == [b"second"]
    assert client.get(url).data == b"second"


def test_avatar_rejects_non_images(login) -> None:
    client = login("purchaser")

    response = client.post(
        "/profile/avatar",
        data={"avatar": upload(b"%PDF", "me.pdf")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert client.post("/profile/avatar", data={}, content_type="multipart/form-data").status_code == 400


def test_change_password(login, client) -> None:
    purchaser = login("purchaser")

    wrong = purchaser.post("/profile/password", json={"current_password": "nope", "new_password": "another1"})
    assert wrong.status_code == 400
    assert "current_password" in wrong.get_json()["fields"]

    short = purchaser.post("/profile/password", json={"current_password": PASSWORD, "new_password": "abc"})
    assert short.status_code == 400

    ok = purchaser.post("/profile/password", json={"current_password": PASSWORD, "new_password": "another1"})
    assert ok.status_code == 200

    email = TEAM["purchaser"][0]
    assert client.post("/auth/login", json={"email": email, "password": PASSWORD}).status_code == 401
    assert client.post("/auth/login", json={"email": email, "password": "another1"}).status_code == 200


def test_delete_account_removes_tickets_and_files(app, login, users, client, submitted_ticket) -> None:
    ticket_id = submitted_ticket()
    purchaser = login("purchaser")
    purchaser.post(
        "/profile/avatar",
        data={"avatar": upload(b"face", "me.png")},
        content_type="multipart/form-data",
    )
    root = Path(app.config["UPLOAD_ROOT"])
    assert any(p.is_file() for p in root.rglob("*"))

    response = purchaser.delete("/profile")

    assert response.status_code == 200
    assert not any(p.is_file() for p in root.rglob("*"))
    with app.app_context():
        assert db.session.get(User, users["purchaser"]) is None
        assert db.session.get(Ticket, ticket_id) is None

    login_again = client.post("/auth/login", json={"email": TEAM["purchaser"][0], "password": PASSWORD})
    assert login_again.status_code == 401
    assert purchaser.get("/profile/me").status_code == 401
