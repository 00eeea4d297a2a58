"""Journey monitoring, live share and location API tests."""

DESTINATION = {"name": "Home", "latitude": 52.36, "longitude": 4.8852, "transport": "walk"}


def _register(client, email, role="seeker"):
    client.post(
        "/auth/register",
        json={"email": email, "password": "pass", "full_name": email.split("@")[0], "role": role},
    )
    token = client.post("/auth/login", json={"email": email, "password": "pass"}).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_start_status_stop(client):
    s = _register(client, "jr_s1@test.com")
    r = client.post("/journey/start", headers=s, json=DESTINATION)
    assert r.status_code == 200
    assert r.json()["state"] == "moving"
    assert r.json()["movement_threshold_ms"] == 120_000

    again = client.post("/journey/start", headers=s, json={**DESTINATION, "name": "Gym", "transport": "car"})
    assert again.json()["destination"]["name"] == "Home"

    status = client.get("/journey/status", headers=s).json()
    assert status["is_active"] is True

    r = client.post("/journey/stop", headers=s)
    assert r.status_code == 200
    assert r.json()["is_active"] is False
    assert r.json()["state"] == "inactive"


def test_start_with_denied_permission(client):
    s = _register(client, "jr_s2@test.com")
    r = client.post("/location/permission", headers=s, json={"granted": False})
    assert r.json()["permission"] == "denied"
    r = client.post("/journey/start", headers=s, json=DESTINATION)
    assert r.status_code == 403


def test_responder_cannot_start_journey(client):
    rsp = _register(client, "jr_r3@test.com", "responder")
    assert client.post("/journey/start", headers=rsp, json=DESTINATION).status_code == 403


def test_invalid_transport_rejected(client):
    s = _register(client, "jr_s4@test.com")
    r = client.post("/journey/start", headers=s, json={**DESTINATION, "transport": "teleport"})
    assert r.status_code == 422


def test_movement_update(client):
    s = _register(client, "jr_s5@test.com")
    client.post("/journey/start", headers=s, json=DESTINATION)
    r = client.post("/journey/movement", headers=s, json={"has_movement": True})
    assert r.status_code == 200
    assert r.json()["state"] == "moving"
    assert r.json()["last_movement"] is not None
    client.post("/journey/stop", headers=s)


def test_location_status_tracks_last_fix(client):
    s = _register(client, "jr_s6@test.com")
    assert client.get("/location", headers=s).json() == {"permission": "unknown", "last_fix": None}
    client.post("/location", headers=s, json={"latitude": 1.5, "longitude": 2.5, "accuracy": 8})
    body = client.get("/location", headers=s).json()
    assert body["permission"] == "granted"
    assert body["last_fix"]["latitude"] == 1.5
    assert client.post("/location/error", headers=s, json={"message": "timeout"}).status_code == 204


def test_shared_journey_feed(client):
    s = _register(client, "jr_s7@test.com")
    share = client.post("/journey/share", headers=s, json={"destination": DESTINATION})
    assert share.status_code == 200
    token = share.json()["share_token"]
    assert len(token) == 32

    client.post(
        "/location",
        headers=s,
        json={"latitude": 52.37, "longitude": 4.89, "timestamp": "2026-01-01T10:00:00Z"},
    )
    # Inside the publish interval: dropped
    client.post(
        "/location",
        headers=s,
        json={"latitude": 52.371, "longitude": 4.89, "timestamp": "2026-01-01T10:00:05Z"},
    )
    client.post(
        "/location",
        headers=s,
        json={"latitude": 52.372, "longitude": 4.89, "timestamp": "2026-01-01T10:00:20Z"},
    )

    # Public: no auth header
    feed = client.get(f"/journey/feed/{token}")
    assert feed.status_code == 200
    body = feed.json()
    assert body["destination_name"] == "Home"
    assert body["is_active"] is True
    assert [p["lat"] for p in body["points"]] == [52.372, 52.37]

    assert client.delete("/journey/share", headers=s).json() == {"ended": 1}
    assert client.get(f"/journey/feed/{token}").json()["is_active"] is False


def test_stopping_journey_ends_share(client):
    s = _register(client, "jr_s8@test.com")
    client.post("/journey/start", headers=s, json=DESTINATION)
    token = client.post("/journey/share", headers=s, json={"destination": DESTINATION}).json()["share_token"]
    client.post("/journey/stop", headers=s)
    body = client.get(f"/journey/feed/{token}").json()
    assert body["is_active"] is False
    assert body["ended_at"] is not None


def test_unknown_feed_token(client):
    assert client.get("/journey/feed/deadbeef").status_code == 404


def test_unsafe_countdown_api(client):
    s = _register(client, "jr_s9@test.com")
    r = client.post("/unsafe/start", headers=s)
    assert r.status_code == 200
    assert r.json()["active"] is True
    assert r.json()["phase"] == "countdown"

    r = client.post("/unsafe/cancel", headers=s)
    assert r.json()["active"] is False
    assert client.get("/unsafe/status", headers=s).json()["active"] is False
