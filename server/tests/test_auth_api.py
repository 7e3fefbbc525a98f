from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from app.models.matrix import member_matrices
from app.models.refresh_token import RefreshToken


@pytest.fixture()
def login(client, password):
    def _login(email, password=password, origin=None):
        headers = {"Origin": origin} if origin else {}
        return client.post("/auth/login", json={"email": email, "password": password}, headers=headers)

    return _login


def test_login_with_single_matrix_opens_session(client, login, world):
    response = login(world.a.leader.email)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["token"]
    assert body["refresh_token"]
    assert body["member"]["id"] == world.a.leader.id
    assert body["permission"]["leader"] is True
    assert body["permission"]["celula_ids"] == [world.a.celula.id]

    me = client.get("/members/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == world.a.leader.email


def test_login_with_several_matrices_requires_selection(client, login, db_session, world):
    admin = world.a.admin
    admin.matrices.append(world.b.matrix)
    db_session.commit()

    response = login(admin.email)
    body = response.json()
    assert response.status_code == 200
    assert body["token"] is None
    assert {item["id"] for item in body["matrices"]} == {world.a.matrix.id, world.b.matrix.id}

    selection = body["matrix_selection_token"]
    selected = client.post("/auth/select-matrix", json={"token": selection, "matrix_id": world.b.matrix.id})
    assert selected.status_code == 200
    # Administrator role lives in the first matrix only.
    assert selected.json()["permission"]["is_admin"] is False

    outsider = client.post("/auth/select-matrix", json={"token": selection, "matrix_id": 99999})
    assert outsider.status_code == 403


def test_select_matrix_rejects_session_tokens(client, world, auth_headers):
    session_token = auth_headers(world.a.admin, world.a.matrix)["Authorization"].split(" ", 1)[1]
    response = client.post("/auth/select-matrix", json={"token": session_token, "matrix_id": world.a.matrix.id})
    assert response.status_code == 401


def test_login_through_matrix_domain(client, login, db_session, world):
    admin = world.a.admin
    admin.matrices.append(world.b.matrix)
    db_session.commit()

    response = login(admin.email, origin=f"https://{world.b.domain}")
    assert response.status_code == 200
    assert response.json()["token"]
    assert response.json()["matrix_selection_token"] is None


def test_login_on_foreign_domain_is_rejected(client, login, world):
    response = login(world.a.leader.email, origin=f"https://{world.b.domain}")
    assert response.status_code == 403
    assert response.json()["code"] == "tenant_mismatch"


def test_login_with_wrong_password(client, login, world):
    response = login(world.a.leader.email, password="errada-123")
    assert response.status_code == 401
    unknown = login("ninguem@videira.test")
    assert unknown.status_code == 401


def test_login_without_system_access(client, login, db_session, world):
    world.a.plain.has_system_access = False
    db_session.commit()
    response = login(world.a.plain.email)
    assert response.status_code == 403


def test_login_without_password_leads_to_set_password(client, login, db_session, world):
    member = world.a.plain
    member.password = None
    db_session.commit()

    response = login(member.email, password="qualquer-coisa")
    assert response.status_code == 200
    body = response.json()
    assert body["token"] is None
    url = body["set_password_url"]
    token = parse_qs(urlparse(url).query)["token"][0]

    stored = client.post("/auth/set-password", json={"token": token, "password": "nova-senha-9"})
    assert stored.status_code == 200

    relogin = login(member.email, password="nova-senha-9")
    assert relogin.status_code == 200
    assert relogin.json()["token"]


def test_set_password_rejects_other_purposes(client, world, auth_headers):
    session_token = auth_headers(world.a.admin, world.a.matrix)["Authorization"].split(" ", 1)[1]
    response = client.post("/auth/set-password", json={"token": session_token, "password": "nova-senha-9"})
    assert response.status_code == 401


def test_refresh_returns_current_profile_and_permission(client, world, auth_headers):
    response = client.get("/auth/refresh", headers=auth_headers(world.a.discipulador, world.a.matrix))
    assert response.status_code == 200
    body = response.json()
    assert body["member"]["id"] == world.a.discipulador.id
    assert body["permission"]["discipulador"] is True


def test_refresh_token_rotation(client, login, db_session, world):
    body = login(world.a.leader.email).json()
    headers = {"Authorization": f"Bearer {body['token']}"}

    rotated = client.post("/auth/refresh-token", json={"refresh_token": body["refresh_token"]}, headers=headers)
    assert rotated.status_code == 200
    new_body = rotated.json()
    assert new_body["refresh_token"] != body["refresh_token"]

    reused = client.post("/auth/refresh-token", json={"refresh_token": body["refresh_token"]}, headers=headers)
    assert reused.status_code == 401

    db_session.expire_all()
    old = db_session.query(RefreshToken).filter(RefreshToken.token == body["refresh_token"]).one()
    assert old.is_revoked is True


def test_refresh_token_requires_access_token_of_same_member(client, login, world, auth_headers):
    body = login(world.a.leader.email).json()
    missing = client.post("/auth/refresh-token", json={"refresh_token": body["refresh_token"]})
    assert missing.status_code == 401
    other = client.post(
        "/auth/refresh-token",
        json={"refresh_token": body["refresh_token"]},
        headers=auth_headers(world.a.vice, world.a.matrix),
    )
    assert other.status_code == 401


def test_refresh_token_after_matrix_revocation(client, login, db_session, world):
    body = login(world.a.leader.email).json()
    db_session.execute(
        member_matrices.delete().where(
            member_matrices.c.member_id == world.a.leader.id,
            member_matrices.c.matrix_id == world.a.matrix.id,
        )
    )
    db_session.commit()

    response = client.post(
        "/auth/refresh-token",
        json={"refresh_token": body["refresh_token"]},
        headers={"Authorization": f"Bearer {body['token']}"},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "tenant_mismatch"


def test_logout_revokes_refresh_tokens(client, login, db_session, world):
    first = login(world.a.leader.email).json()
    second = login(world.a.leader.email).json()
    headers = {"Authorization": f"Bearer {first['token']}"}

    single = client.post("/auth/logout", json={"refresh_token": first["refresh_token"]}, headers=headers)
    assert single.status_code == 200
    db_session.expire_all()
    tokens = {row.token: row.is_revoked for row in db_session.query(RefreshToken).all()}
    assert tokens[first["refresh_token"]] is True
    assert tokens[second["refresh_token"]] is False

    everything = client.post("/auth/logout", json={}, headers=headers)
    assert everything.status_code == 200
    db_session.expire_all()
    assert all(row.is_revoked for row in db_session.query(RefreshToken).all())


def test_logout_cannot_revoke_someone_elses_token(client, login, world, auth_headers):
    victim = login(world.a.leader.email).json()
    response = client.post(
        "/auth/logout",
        json={"refresh_token": victim["refresh_token"]},
        headers=auth_headers(world.a.vice, world.a.matrix),
    )
    assert response.status_code == 401


def test_matrix_lookup_by_domain_is_public(client, world):
    found = client.get(f"/matrices/domain/www.{world.a.domain}")
    assert found.status_code == 200
    assert found.json()["id"] == world.a.matrix.id
    assert client.get("/matrices/domain/desconhecido.test").json() is None
