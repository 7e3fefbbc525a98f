from __future__ import annotations

from app.models.member import Member


def _create_key(client, headers, name="Chatbot"):
    response = client.post("/api-keys", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _check_phone(client, key, phone):
    headers = {"X-API-Key": key} if key else {}
    return client.get("/external/check-phone", params={"phone": phone}, headers=headers)


def test_admin_creates_key_and_sees_only_a_preview_afterwards(client, world, auth_headers):
    a = world.a
    headers = auth_headers(a.admin, a.matrix)
    created = _create_key(client, headers)
    assert created["key"].startswith("vd_")
    assert created["is_active"] is True
    assert created["created_by"]["id"] == a.admin.id

    listed = client.get("/api-keys", headers=headers).json()
    assert [item["id"] for item in listed] == [created["id"]]
    assert "key" not in listed[0]
    assert listed[0]["key_preview"] == f"{created['key'][:10]}...{created['key'][-4:]}"

    assert client.get("/api-keys", headers=auth_headers(world.b.admin, world.b.matrix)).json() == []


def test_api_key_management_is_admin_only(client, world, auth_headers):
    a = world.a
    key = _create_key(client, auth_headers(a.admin, a.matrix))
    headers = auth_headers(a.pastor, a.matrix)
    calls = [
        client.get("/api-keys", headers=headers),
        client.post("/api-keys", json={"name": "Outra"}, headers=headers),
        client.patch(f"/api-keys/{key['id']}/toggle", headers=headers),
        client.delete(f"/api-keys/{key['id']}", headers=headers),
    ]
    assert [call.status_code for call in calls] == [403] * len(calls)


def test_keys_of_another_matrix_cannot_be_changed(client, world, auth_headers):
    key = _create_key(client, auth_headers(world.a.admin, world.a.matrix))
    headers = auth_headers(world.b.admin, world.b.matrix)

    toggled = client.patch(f"/api-keys/{key['id']}/toggle", headers=headers)
    assert toggled.status_code == 403
    assert toggled.json()["code"] == "tenant_mismatch"
    assert client.delete(f"/api-keys/{key['id']}", headers=headers).status_code == 403
    assert client.delete("/api-keys/99999", headers=headers).status_code == 404


def test_check_phone_matches_members_of_the_key_matrix(client, db_session, world, auth_headers):
    a, b = world.a, world.b
    db_session.get(Member, a.attendees[0].id).phone = "5511987654321"
    db_session.get(Member, b.attendees[0].id).phone = "5521912345678"
    db_session.commit()
    key = _create_key(client, auth_headers(a.admin, a.matrix))["key"]

    assert _check_phone(client, key, "+55 (11) 98765-4321").json() == {"exists": True}
    # Same number written without the mobile 9.
    assert _check_phone(client, key, "55 11 8765-4321").json() == {"exists": True}
    assert _check_phone(client, key, "5521912345678").json() == {"exists": False}
    assert _check_phone(client, key, "sem numero").json() == {"exists": False}

    listed = client.get("/api-keys", headers=auth_headers(a.admin, a.matrix)).json()
    assert listed[0]["last_used_at"] is not None


def test_check_phone_requires_an_active_key(client, world, auth_headers):
    headers = auth_headers(world.a.admin, world.a.matrix)
    key = _create_key(client, headers)

    missing = _check_phone(client, None, "5511987654321")
    assert missing.status_code == 401
    assert missing.json()["code"] == "unauthenticated"
    assert _check_phone(client, "vd_desconhecida", "5511987654321").status_code == 401
    # A session token is not an API key.
    assert client.get("/external/check-phone", params={"phone": "1"}, headers=headers).status_code == 401

    disabled = client.patch(f"/api-keys/{key['id']}/toggle", headers=headers)
    assert disabled.json()["is_active"] is False
    assert _check_phone(client, key["key"], "5511987654321").status_code == 401

    enabled = client.patch(f"/api-keys/{key['id']}/toggle", headers=headers)
    assert enabled.json()["is_active"] is True
    assert _check_phone(client, key["key"], "5511987654321").status_code == 200

    assert client.delete(f"/api-keys/{key['id']}", headers=headers).status_code == 204
    assert _check_phone(client, key["key"], "5511987654321").status_code == 401
