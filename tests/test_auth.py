"""Auth API tests."""


def test_register_login_me(client):
    r = client.post(
        "/auth/register",
        json={
            "email": "auth_s@test.com",
            "password": "pass",
            "full_name": "Ana",
            "phone_number": "+31611111111",
        },
    )
    assert r.status_code == 200
    assert r.json()["role"] == "seeker"

    token = client.post("/auth/login", json={"email": "auth_s@test.com", "password": "pass"}).json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["phone_number"] == "+31611111111"


def test_duplicate_email_rejected(client):
    body = {"email": "auth_dup@test.com", "password": "pass", "full_name": "Dup"}
    assert client.post("/auth/register", json=body).status_code == 200
    r = client.post("/auth/register", json=body)
    assert r.status_code == 400


def test_wrong_password(client):
    client.post(
        "/auth/register",
        json={"email": "auth_pw@test.com", "password": "pass", "full_name": "Pw"},
    )
    r = client.post("/auth/login", json={"email": "auth_pw@test.com", "password": "nope"})
    assert r.status_code == 401


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401
    r = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
