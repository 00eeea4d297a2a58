"""WebSocket alert feed tests."""

import pytest
from starlette.websockets import WebSocketDisconnect

from safewatch.db.session import SessionLocal
from safewatch.models.user import ROLE_RESPONDER
from safewatch.services.safety_service import SafetyService


def _token(client, email, role="seeker"):
    client.post(
        "/auth/register",
        json={"email": email, "password": "pass", "full_name": "W", "role": role},
    )
    return client.post("/auth/login", json={"email": email, "password": "pass"}).json()["access_token"]


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _ready(ws):
    ws.send_text("ping")
    assert ws.receive_json() == {"event": "pong"}


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, event, data, user_ids=None, roles=None):
        self.events.append((event, data, user_ids, roles))


def test_ws_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws") as ws:
            ws.receive_text()


def test_ws_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?token=garbage") as ws:
            ws.receive_text()


def test_ws_heartbeat(client):
    token = _token(client, "ws_1@test.com")
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_text("ping")
        assert ws.receive_text() == '{"event":"pong"}'


def test_alert_events_reach_owner_and_responders_only(client):
    owner = _token(client, "ws_owner@test.com")
    bystander = _token(client, "ws_bystander@test.com")
    responder = _token(client, "ws_responder@test.com", role=ROLE_RESPONDER)

    with client.websocket_connect(f"/ws?token={owner}") as owner_ws, client.websocket_connect(
        f"/ws?token={bystander}"
    ) as bystander_ws, client.websocket_connect(f"/ws?token={responder}") as responder_ws:
        for ws in (owner_ws, bystander_ws, responder_ws):
            _ready(ws)

        r = client.post(
            "/alerts",
            headers=_auth(owner),
            json={"location": {"latitude": 1.0, "longitude": 2.0}},
        )
        assert r.status_code == 201
        alert_id = r.json()["id"]

        for ws in (responder_ws, owner_ws):
            msg = ws.receive_json()
            assert msg["event"] == "alert.created"
            assert msg["data"]["id"] == alert_id
            assert msg["data"]["latitude"] == 1.0

        # Another seeker's alert never reaches this socket
        _ready(bystander_ws)

        r = client.post(f"/alerts/{alert_id}/respond", headers=_auth(responder), json={"action": "respond"})
        assert r.status_code == 200

        for ws in (responder_ws, owner_ws):
            first, second = ws.receive_json(), ws.receive_json()
            assert first["event"] == "alert.updated"
            assert first["data"]["status"] == "acknowledged"
            assert second["event"] == "alert.response"
            assert second["data"]["alert_id"] == alert_id
            assert second["data"]["action"] == "respond"

        _ready(bystander_ws)


def test_emergency_event_carries_call_plan(setup_db, scheduler, seeker, fix_at):
    publisher = RecordingPublisher()
    service = SafetyService(SessionLocal, scheduler, publisher=publisher)
    try:
        alert = service.trigger_alert(seeker.id, location=fix_at())
        scheduler.advance(600)
    finally:
        service.shutdown()

    names = [event for event, *_ in publisher.events]
    assert names[0] == "alert.created"
    # four batch bumps, then the emergency status change
    assert names.count("alert.updated") == 5
    assert names[-1] == "alert.emergency"

    event, data, user_ids, roles = publisher.events[-1]
    assert data["alert"]["id"] == alert.id
    assert data["alert"]["emergency_escalated"] is True
    assert data["plan"]["emergency_number"] == service.config.emergency_number
    assert data["plan"]["primary_contact"] is None
    assert user_ids == [seeker.id]
    assert roles == (ROLE_RESPONDER,)


def test_response_event_is_addressed_to_alert_owner(setup_db, scheduler, seeker, responder, fix_at):
    publisher = RecordingPublisher()
    service = SafetyService(SessionLocal, scheduler, publisher=publisher)
    try:
        alert = service.trigger_alert(seeker.id, location=fix_at())
        service.respond_to_alert(alert.id, responder.id, "acknowledge")
    finally:
        service.shutdown()

    event, data, user_ids, roles = publisher.events[-1]
    assert event == "alert.response"
    assert data["responder_id"] == responder.id
    assert user_ids == [seeker.id]
    assert roles == (ROLE_RESPONDER,)
