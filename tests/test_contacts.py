"""Emergency contacts API tests."""


def _register(client, email, role="seeker"):
    client.post(
        "/auth/register",
        json={"email": email, "password": "pass", "full_name": email.split("@")[0], "role": role},
    )
    token = client.post("/auth/login", json={"email": email, "password": "pass"}).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_primary_contact_listed_first(client):
    s = _register(client, "ct_s1@test.com")
    client.post("/contacts", headers=s, json={"name": "Sam", "phone": "+31600000001"})
    client.post("/contacts", headers=s, json={"name": "Kim", "phone": "+31600000002", "is_primary": True})

    names = [c["name"] for c in client.get("/contacts", headers=s).json()]
    assert names == ["Kim", "Sam"]

    plan = client.get("/alerts/emergency-plan", headers=s).json()
    assert plan["emergency_number"] == "112"
    assert plan["primary_contact"]["name"] == "Kim"


def test_new_primary_demotes_previous(client):
    s = _register(client, "ct_s2@test.com")
    client.post("/contacts", headers=s, json={"name": "A", "phone": "+31600000003", "is_primary": True})
    client.post("/contacts", headers=s, json={"name": "B", "phone": "+31600000004", "is_primary": True})
    contacts = client.get("/contacts", headers=s).json()
    assert [c["name"] for c in contacts if c["is_primary"]] == ["B"]


def test_first_contact_used_when_none_primary(client):
    s = _register(client, "ct_s3@test.com")
    assert client.get("/alerts/emergency-plan", headers=s).json()["primary_contact"] is None
    client.post("/contacts", headers=s, json={"name": "First", "phone": "+31600000005"})
    client.post("/contacts", headers=s, json={"name": "Second", "phone": "+31600000006"})
    plan = client.get("/alerts/emergency-plan", headers=s).json()
    assert plan["primary_contact"]["name"] == "First"


def test_cannot_delete_someone_elses_contact(client):
    s = _register(client, "ct_s4@test.com")
    other = _register(client, "ct_s4b@test.com")
    contact_id = client.post("/contacts", headers=s, json={"name": "Lee", "phone": "+31600000007"}).json()["id"]

    assert client.delete(f"/contacts/{contact_id}", headers=other).status_code == 404
    assert client.delete(f"/contacts/{contact_id}", headers=s).status_code == 204
    assert client.get("/contacts", headers=s).json() == []
