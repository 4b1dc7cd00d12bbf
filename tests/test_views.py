import json

import pytest

from santaswap.services.draw import get_assignment
from santaswap.services.event_store import EventStore
from santaswap.services.hints import HINT_FALLBACK
from tests._support.helpers import ADMIN_NAME, ADMIN_PASSWORD, follow_cycle, login


def read_event(app):
    with app.app_context():
        return app.extensions["santaswap.events"].read()


@pytest.fixture
def admin(app):
    c = app.test_client()
    assert login(c, ADMIN_NAME, ADMIN_PASSWORD).status_code == 302
    return c


@pytest.fixture
def ana(app):
    c = app.test_client()
    assert login(c, "ana", "pw").status_code == 302
    return c


@pytest.fixture
def bruno(app):
    c = app.test_client()
    assert login(c, "BRUNO", "pw").status_code == 302
    return c


def test_anonymous_home_goes_to_login(client):
    resp = client.get("/")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/auth/login")


def test_empty_fields_rejected(client, app):
    resp = login(client, "  ", "pw")
    assert resp.status_code == 400
    assert "Name and password are required." in resp.get_data(as_text=True)
    assert read_event(app).users == []


def test_register_lands_in_lobby(client, app):
    resp = login(client, "  juan   perez ", "pw", follow_redirects=True)
    body = resp.get_data(as_text=True)
    assert resp.status_code == 200
    assert "Juan Perez" in body
    assert "Participants (1)" in body
    assert [u.name for u in read_event(app).users] == ["Juan Perez"]


def test_wrong_password_for_existing_name(ana, app):
    other = app.test_client()
    resp = login(other, "Ana", "not-it")
    assert resp.status_code == 400
    assert "password does not match" in resp.get_data(as_text=True)
    assert len(read_event(app).users) == 1


def test_admin_wrong_password(client, app):
    resp = login(client, "gerardo", "guess")
    assert resp.status_code == 400
    assert "Incorrect administrator password." in resp.get_data(as_text=True)
    assert read_event(app).users == []


def test_non_admin_cannot_draw(ana, bruno, app):
    resp = ana.post("/admin/draw", data={"confirm": "yes"})
    assert resp.headers["Location"].endswith("/lobby")
    assert read_event(app).is_draw_complete is False


def test_draw_requires_confirmation(admin, ana, app):
    admin.post("/admin/draw")
    assert read_event(app).is_draw_complete is False


def test_draw_requires_two_people(admin, app):
    resp = admin.post("/admin/draw", data={"confirm": "yes"}, follow_redirects=True)
    assert "At least 2 people are needed" in resp.get_data(as_text=True)
    assert read_event(app).is_draw_complete is False


def test_full_draw_flow(admin, ana, bruno, app):
    resp = admin.post("/admin/draw", data={"confirm": "yes"})
    assert resp.headers["Location"].endswith("/result")

    event = read_event(app)
    assert event.is_draw_complete is True
    assert sorted(follow_cycle(event.assignments)) == ["Ana", "Bruno", "Gerardo"]

    # Ana's lobby notices the draw and moves her to the result
    resp = ana.get("/lobby")
    assert resp.headers["Location"].endswith("/result")
    body = ana.get("/result").get_data(as_text=True)
    assert get_assignment(event, "Ana") in body
    assert HINT_FALLBACK in body


def test_second_draw_is_blocked_by_the_view(admin, ana, app):
    admin.post("/admin/draw", data={"confirm": "yes"})
    first = read_event(app).assignments

    resp = admin.post("/admin/draw", data={"confirm": "yes"}, follow_redirects=True)

    assert "already been done" in resp.get_data(as_text=True)
    assert read_event(app).assignments == first


def test_interleaved_draw_requests_draw_once(admin, ana, app, monkeypatch):
    other_admin = app.test_client()
    login(other_admin, ADMIN_NAME, ADMIN_PASSWORD)

    writes = []
    replace_assignments = EventStore.replace_assignments

    def counting_replace(self, assignments, is_draw_complete):
        writes.append(assignments)
        return replace_assignments(self, assignments, is_draw_complete)

    # The other admin's whole draw lands right after this request's first read.
    read = EventStore.read
    interleaved = []

    def read_then_other_draw(self):
        event = read(self)
        if not interleaved:
            interleaved.append(True)
            other_admin.post("/admin/draw", data={"confirm": "yes"})
        return event

    monkeypatch.setattr(EventStore, "replace_assignments", counting_replace)
    monkeypatch.setattr(EventStore, "read", read_then_other_draw)

    admin.post("/admin/draw", data={"confirm": "yes"})
    monkeypatch.undo()

    assert len(writes) == 1
    assert read_event(app).assignments == writes[0]


def test_snapshot_api_hides_assignments_after_draw(admin, ana, app):
    admin.post("/admin/draw", data={"confirm": "yes"})
    for c in (ana, app.test_client()):
        data = c.get("/api/event").get_json()
        assert "assignments" not in data["event"]
        assert data["event"]["isDrawComplete"] is True


def test_registration_closed_after_draw(admin, ana, app):
    admin.post("/admin/draw", data={"confirm": "yes"})
    resp = login(app.test_client(), "Carla", "pw")
    assert resp.status_code == 400
    assert "no new registrations" in resp.get_data(as_text=True)
    assert len(read_event(app).users) == 2


def test_reset_sends_participants_back_to_lobby(admin, ana, app):
    admin.post("/admin/draw", data={"confirm": "yes"})
    ana.get("/result")
    with ana.session_transaction() as s:
        assert "hint" in s

    resp = admin.post("/admin/reset", data={"confirm": "yes"})
    assert resp.headers["Location"].endswith("/auth/login")
    assert read_event(app).to_dict() == {"users": [], "assignments": [], "isDrawComplete": False}

    # Admin is logged out; Ana keeps her identity and is moved back to the lobby
    assert admin.get("/lobby").headers["Location"].endswith("/auth/login")
    resp = ana.get("/result")
    assert resp.headers["Location"].endswith("/lobby")
    with ana.session_transaction() as s:
        assert "hint" not in s
        assert s["screen"] == "LOBBY"


def test_admin_removes_participant(admin, ana, bruno, app):
    resp = admin.post("/admin/participants/Bruno/delete", data={"confirm": "yes"}, follow_redirects=True)
    assert "Removed Bruno." in resp.get_data(as_text=True)
    assert [u.name for u in read_event(app).users] == ["Gerardo", "Ana"]


def test_remove_without_confirmation_is_ignored(admin, ana, app):
    admin.post("/admin/participants/Ana/delete")
    assert [u.name for u in read_event(app).users] == ["Gerardo", "Ana"]


def test_non_admin_cannot_remove(ana, bruno, app):
    ana.post("/admin/participants/Bruno/delete", data={"confirm": "yes"})
    assert len(read_event(app).users) == 2


def test_logout_clears_identity(ana):
    resp = ana.get("/auth/logout")
    assert resp.headers["Location"].endswith("/auth/login")
    assert ana.get("/").headers["Location"].endswith("/auth/login")


def test_snapshot_api_hides_passwords(ana):
    data = ana.get("/api/event").get_json()
    assert data["event"] == {"users": [{"name": "Ana"}], "isDrawComplete": False}
    assert data["screen"] == "LOBBY"


def test_snapshot_api_anonymous_screen(client):
    assert client.get("/api/event").get_json()["screen"] == "LOGIN"


def test_stream_starts_with_current_snapshot(ana):
    resp = ana.get("/api/event/stream")
    assert resp.mimetype == "text/event-stream"

    chunk = next(iter(resp.response))
    text = chunk.decode() if isinstance(chunk, bytes) else chunk
    resp.close()

    assert text.startswith("event: snapshot\n")
    payload = json.loads(text.split("data: ", 1)[1])
    assert payload["screen"] == "LOBBY"
    assert payload["event"]["users"] == [{"name": "Ana"}]


def test_setup_needed_page(unprovisioned_app):
    resp = unprovisioned_app.test_client().get("/")
    assert resp.status_code == 503
    assert "db upgrade" in resp.get_data(as_text=True)


def test_login_when_not_provisioned_shows_setup_page(unprovisioned_app):
    resp = login(unprovisioned_app.test_client(), "Ana", "pw")
    assert resp.status_code == 503
    assert "One last step" in resp.get_data(as_text=True)


def test_health(client):
    assert client.get("/health").get_json() == {"status": "healthy"}
