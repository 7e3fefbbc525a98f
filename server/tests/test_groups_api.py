from __future__ import annotations


def _create_group(client, headers, name="Finanças da Casa"):
    response = client.post("/groups", json={"name": name, "description": "Orçamento"}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _role_id(client, group_id, headers, name):
    roles = client.get(f"/groups/{group_id}/roles", headers=headers).json()
    return next(role["id"] for role in roles if role["name"] == name)


def _invite_and_accept(client, group_id, owner_headers, invitee, invitee_headers, role_name):
    role_id = _role_id(client, group_id, owner_headers, role_name)
    invited = client.post(
        f"/groups/{group_id}/members", json={"member_id": invitee.id, "role_id": role_id}, headers=owner_headers
    )
    assert invited.status_code == 201, invited.text
    accepted = client.post(f"/groups/invitations/{invited.json()['id']}/accept", headers=invitee_headers)
    assert accepted.status_code == 200
    return accepted.json()


def test_new_group_gets_default_roles_and_owner_membership(client, world, auth_headers):
    headers = auth_headers(world.a.leader, world.a.matrix)
    group_id = _create_group(client, headers)

    roles = client.get(f"/groups/{group_id}/roles", headers=headers).json()
    by_name = {role["name"]: role for role in roles}
    assert set(by_name) == {"Dono", "Membro", "Leitor"}
    assert all(value for key, value in by_name["Dono"].items() if key.startswith("can_"))
    assert by_name["Membro"]["can_manage_own_transactions"] is True
    assert by_name["Membro"]["can_manage_categories"] is False
    assert by_name["Leitor"]["can_view_budgets"] is True
    assert by_name["Leitor"]["can_manage_own_accounts"] is False

    detail = client.get(f"/groups/{group_id}", headers=headers).json()
    assert [item["member"]["id"] for item in detail["members"]] == [world.a.leader.id]
    assert detail["members"][0]["role"]["name"] == "Dono"
    assert detail["my_permissions"]["can_manage_group"] is True

    mine = client.get("/groups", headers=headers).json()
    assert [group["id"] for group in mine] == [group_id]


def test_invitation_flow(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    guest = world.a.vice
    guest_headers = auth_headers(guest, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    reader_role = _role_id(client, group_id, owner_headers, "Leitor")

    invited = client.post(
        f"/groups/{group_id}/members", json={"member_id": guest.id, "role_id": reader_role}, headers=owner_headers
    )
    assert invited.status_code == 201
    assert invited.json()["status"] == "PENDING"

    duplicate = client.post(
        f"/groups/{group_id}/members", json={"member_id": guest.id, "role_id": reader_role}, headers=owner_headers
    )
    assert duplicate.status_code == 409

    assert client.get(f"/groups/{group_id}", headers=guest_headers).status_code == 403
    pending = client.get("/groups/invitations", headers=guest_headers).json()
    assert [item["group"]["id"] for item in pending] == [group_id]

    accepted = client.post(f"/groups/invitations/{pending[0]['id']}/accept", headers=guest_headers)
    assert accepted.status_code == 200
    assert accepted.json()["role"]["name"] == "Leitor"
    assert client.get("/groups/invitations", headers=guest_headers).json() == []
    again = client.post(f"/groups/invitations/{pending[0]['id']}/accept", headers=guest_headers)
    assert again.status_code == 404

    permissions = client.get(f"/groups/{group_id}/permissions", headers=guest_headers).json()
    assert permissions["can_view_categories"] is True
    assert permissions["can_manage_group"] is False

    member_again = client.post(
        f"/groups/{group_id}/members", json={"member_id": guest.id, "role_id": reader_role}, headers=owner_headers
    )
    assert member_again.status_code == 409


def test_invitation_can_be_declined_or_cancelled(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    role_id = _role_id(client, group_id, owner_headers, "Membro")

    first = client.post(
        f"/groups/{group_id}/members", json={"member_id": world.a.vice.id, "role_id": role_id}, headers=owner_headers
    ).json()
    declined = client.post(
        f"/groups/invitations/{first['id']}/decline", headers=auth_headers(world.a.vice, world.a.matrix)
    )
    assert declined.status_code == 204

    second = client.post(
        f"/groups/{group_id}/members", json={"member_id": world.a.pastor.id, "role_id": role_id}, headers=owner_headers
    ).json()
    stranger = client.delete(f"/groups/invitations/{second['id']}", headers=auth_headers(world.a.pastor, world.a.matrix))
    assert stranger.status_code == 403
    cancelled = client.delete(f"/groups/invitations/{second['id']}", headers=owner_headers)
    assert cancelled.status_code == 204
    assert client.get("/groups/invitations", headers=auth_headers(world.a.pastor, world.a.matrix)).json() == []


def test_invitation_only_for_someone_elses_pending_invite(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    role_id = _role_id(client, group_id, owner_headers, "Membro")
    invitation = client.post(
        f"/groups/{group_id}/members", json={"member_id": world.a.vice.id, "role_id": role_id}, headers=owner_headers
    ).json()

    hijack = client.post(
        f"/groups/invitations/{invitation['id']}/accept", headers=auth_headers(world.a.pastor, world.a.matrix)
    )
    assert hijack.status_code == 404


def test_invite_rejects_owner_and_role_from_other_group(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    other_group = _create_group(client, owner_headers, name="Outro Grupo")
    foreign_role = _role_id(client, other_group, owner_headers, "Membro")
    own_role = _role_id(client, group_id, owner_headers, "Membro")

    owner = client.post(
        f"/groups/{group_id}/members", json={"member_id": world.a.leader.id, "role_id": own_role}, headers=owner_headers
    )
    assert owner.status_code == 409
    wrong_role = client.post(
        f"/groups/{group_id}/members", json={"member_id": world.a.vice.id, "role_id": foreign_role}, headers=owner_headers
    )
    assert wrong_role.status_code == 404


def test_only_managers_change_the_group(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    member_headers = auth_headers(world.a.vice, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    _invite_and_accept(client, group_id, owner_headers, world.a.vice, member_headers, "Membro")

    assert client.put(f"/groups/{group_id}", json={"name": "Tomado"}, headers=member_headers).status_code == 403
    assert client.post(f"/groups/{group_id}/roles", json={"name": "Novo"}, headers=member_headers).status_code == 403
    assert client.delete(f"/groups/{group_id}", headers=member_headers).status_code == 403

    renamed = client.put(f"/groups/{group_id}", json={"name": "Casa"}, headers=owner_headers)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Casa"


def test_manager_role_is_not_owner(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    manager_headers = auth_headers(world.a.vice, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    created = client.post(
        f"/groups/{group_id}/roles",
        json={"name": "Gestor", "can_manage_group": True},
        headers=owner_headers,
    )
    assert created.status_code == 201
    role_id = created.json()["id"]
    invitation = client.post(
        f"/groups/{group_id}/members", json={"member_id": world.a.vice.id, "role_id": role_id}, headers=owner_headers
    ).json()
    client.post(f"/groups/invitations/{invitation['id']}/accept", headers=manager_headers)

    reader_role = _role_id(client, group_id, manager_headers, "Leitor")
    demote_owner = client.put(
        f"/groups/{group_id}/members/{world.a.leader.id}/role", json={"role_id": reader_role}, headers=manager_headers
    )
    assert demote_owner.status_code == 400
    remove_owner = client.delete(f"/groups/{group_id}/members/{world.a.leader.id}", headers=manager_headers)
    assert remove_owner.status_code == 400
    assert client.delete(f"/groups/{group_id}", headers=manager_headers).status_code == 403


def test_role_in_use_cannot_be_deleted(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    member_headers = auth_headers(world.a.vice, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    _invite_and_accept(client, group_id, owner_headers, world.a.vice, member_headers, "Leitor")
    reader_role = _role_id(client, group_id, owner_headers, "Leitor")
    member_role = _role_id(client, group_id, owner_headers, "Membro")

    blocked = client.delete(f"/groups/{group_id}/roles/{reader_role}", headers=owner_headers)
    assert blocked.status_code == 400
    assert "1 member(s)" in blocked.json()["detail"]

    moved = client.put(
        f"/groups/{group_id}/members/{world.a.vice.id}/role", json={"role_id": member_role}, headers=owner_headers
    )
    assert moved.status_code == 200
    assert moved.json()["role"]["name"] == "Membro"
    assert client.delete(f"/groups/{group_id}/roles/{reader_role}", headers=owner_headers).status_code == 204


def test_role_names_are_unique_per_group(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    assert client.post(f"/groups/{group_id}/roles", json={"name": "Leitor"}, headers=owner_headers).status_code == 409


def test_member_can_leave_but_not_remove_others(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    vice_headers = auth_headers(world.a.vice, world.a.matrix)
    pastor_headers = auth_headers(world.a.pastor, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    _invite_and_accept(client, group_id, owner_headers, world.a.vice, vice_headers, "Membro")
    _invite_and_accept(client, group_id, owner_headers, world.a.pastor, pastor_headers, "Membro")

    assert client.delete(f"/groups/{group_id}/members/{world.a.pastor.id}", headers=vice_headers).status_code == 403
    assert client.delete(f"/groups/{group_id}/members/{world.a.vice.id}", headers=vice_headers).status_code == 204
    assert client.get(f"/groups/{group_id}", headers=vice_headers).status_code == 403


def test_group_categories_follow_role_flags(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    reader_headers = auth_headers(world.a.vice, world.a.matrix)
    outsider_headers = auth_headers(world.a.pastor, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    _invite_and_accept(client, group_id, owner_headers, world.a.vice, reader_headers, "Leitor")

    created = client.post(
        f"/groups/{group_id}/categories", json={"name": "Mercado", "type": "EXPENSE"}, headers=owner_headers
    )
    assert created.status_code == 201, created.text
    assert created.json()["group_id"] == group_id

    listed = client.get(f"/groups/{group_id}/categories", headers=reader_headers)
    assert listed.status_code == 200
    assert [item["name"] for item in listed.json()] == ["Mercado"]

    denied = client.post(f"/groups/{group_id}/categories", json={"name": "Lazer"}, headers=reader_headers)
    assert denied.status_code == 403
    assert client.get(f"/groups/{group_id}/categories", headers=outsider_headers).status_code == 403
    assert client.get(f"/categories/{created.json()['id']}", headers=outsider_headers).status_code == 403
    update = client.put(f"/categories/{created.json()['id']}", json={"name": "Feira"}, headers=reader_headers)
    assert update.status_code == 403


def test_category_with_group_in_body_is_checked(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    response = client.post(
        "/categories",
        json={"name": "Invasão", "group_id": group_id},
        headers=auth_headers(world.a.pastor, world.a.matrix),
    )
    assert response.status_code == 403


def test_personal_categories_are_private(client, world, auth_headers):
    mine = auth_headers(world.a.leader, world.a.matrix)
    theirs = auth_headers(world.a.vice, world.a.matrix)

    created = client.post("/categories", json={"name": "Salário", "type": "INCOME"}, headers=mine)
    assert created.status_code == 201
    category_id = created.json()["id"]
    assert created.json()["group_id"] is None

    assert [item["id"] for item in client.get("/categories", headers=mine).json()] == [category_id]
    assert client.get("/categories", headers=theirs).json() == []
    assert client.get(f"/categories/{category_id}", headers=theirs).status_code == 404
    assert client.delete(f"/categories/{category_id}", headers=theirs).status_code == 404

    renamed = client.put(f"/categories/{category_id}", json={"name": "Renda"}, headers=mine)
    assert renamed.json()["name"] == "Renda"
    assert client.delete(f"/categories/{category_id}", headers=mine).status_code == 204
    assert client.get(f"/categories/{category_id}", headers=mine).status_code == 404


def test_missing_group_is_not_found(client, world, auth_headers):
    headers = auth_headers(world.a.leader, world.a.matrix)
    assert client.get("/groups/4242", headers=headers).status_code == 404
    assert client.get("/groups/4242/categories", headers=headers).status_code == 404


def test_group_subcategories_follow_role_flags(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    reader_headers = auth_headers(world.a.vice, world.a.matrix)
    outsider_headers = auth_headers(world.a.pastor, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    _invite_and_accept(client, group_id, owner_headers, world.a.vice, reader_headers, "Leitor")
    category = client.post(f"/groups/{group_id}/categories", json={"name": "Mercado"}, headers=owner_headers).json()

    created = client.post(
        f"/groups/{group_id}/subcategories", json={"name": "Hortifruti", "category_id": category["id"]}, headers=owner_headers
    )
    assert created.status_code == 201, created.text
    subcategory = created.json()
    assert subcategory["group_id"] == group_id
    assert subcategory["type"] == "EXPENSE"

    listed = client.get(f"/groups/{group_id}/subcategories", headers=reader_headers)
    assert [item["name"] for item in listed.json()] == ["Hortifruti"]
    filtered = client.get("/subcategories", params={"group_id": group_id, "category_id": category["id"]}, headers=reader_headers)
    assert [item["id"] for item in filtered.json()] == [subcategory["id"]]
    assert client.get(f"/subcategories/{subcategory['id']}", headers=reader_headers).status_code == 200

    denied = client.post(
        f"/groups/{group_id}/subcategories", json={"name": "Padaria", "category_id": category["id"]}, headers=reader_headers
    )
    assert denied.status_code == 403
    assert client.put(f"/subcategories/{subcategory['id']}", json={"name": "Feira"}, headers=reader_headers).status_code == 403
    assert client.delete(f"/subcategories/{subcategory['id']}", headers=reader_headers).status_code == 403
    assert client.get(f"/subcategories/{subcategory['id']}", headers=outsider_headers).status_code == 403
    assert client.get(f"/groups/{group_id}/subcategories", headers=outsider_headers).status_code == 403


def test_subcategory_stays_in_the_scope_of_its_category(client, world, auth_headers):
    owner_headers = auth_headers(world.a.leader, world.a.matrix)
    group_id = _create_group(client, owner_headers)
    group_category = client.post(f"/groups/{group_id}/categories", json={"name": "Casa"}, headers=owner_headers).json()
    personal_category = client.post("/categories", json={"name": "Pessoal"}, headers=owner_headers).json()

    mixed = client.post(
        f"/groups/{group_id}/subcategories",
        json={"name": "Aluguel", "category_id": personal_category["id"]},
        headers=owner_headers,
    )
    assert mixed.status_code == 400

    personal = client.post(
        "/subcategories", json={"name": "Academia", "category_id": personal_category["id"]}, headers=owner_headers
    )
    assert personal.status_code == 201
    assert personal.json()["group_id"] is None
    moved = client.put(
        f"/subcategories/{personal.json()['id']}", json={"category_id": group_category["id"]}, headers=owner_headers
    )
    assert moved.status_code == 400


def test_personal_subcategories_are_private(client, world, auth_headers):
    mine = auth_headers(world.a.leader, world.a.matrix)
    theirs = auth_headers(world.a.vice, world.a.matrix)
    category = client.post("/categories", json={"name": "Salário", "type": "INCOME"}, headers=mine).json()

    created = client.post("/subcategories", json={"name": "Bônus", "category_id": category["id"]}, headers=mine)
    assert created.status_code == 201
    subcategory_id = created.json()["id"]
    assert created.json()["type"] == "INCOME"

    assert [item["id"] for item in client.get("/subcategories", headers=mine).json()] == [subcategory_id]
    assert client.get("/subcategories", headers=theirs).json() == []
    assert client.get(f"/subcategories/{subcategory_id}", headers=theirs).status_code == 404
    assert client.post(
        "/subcategories", json={"name": "Intrusa", "category_id": category["id"]}, headers=theirs
    ).status_code == 404

    described = client.put(f"/subcategories/{subcategory_id}", json={"description": "Anual"}, headers=mine)
    assert described.json()["description"] == "Anual"
    assert client.delete(f"/categories/{category['id']}", headers=mine).status_code == 204
    assert client.get(f"/subcategories/{subcategory_id}", headers=mine).status_code == 404
