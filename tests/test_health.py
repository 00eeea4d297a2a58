"""Health endpoint tests."""


def test_health_returns_ok(client):
    """GET /health reports status ok and the feed connection count."""
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["ws_connections"] == 0
