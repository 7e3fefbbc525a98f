from __future__ import annotations

from datetime import date

from app.models.hierarchy import Celula
from app.models.member import Member
from app.models.report import Report


def _celula_payload(world_matrix, **overrides):
    payload = {
        "name": "Celula Nova",
        "leader_member_id": world_matrix.other_leader.id,
        "discipulado_id": world_matrix.discipulado.id,
        "weekday": 2,
        "time": "20:00",
    }
    payload.update(overrides)
    return payload


def test_leader_lists_only_own_celula(client, world, auth_headers):
    response = client.get("/celulas", headers=auth_headers(world.a.leader, world.a.matrix))
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [world.a.celula.id]


def test_admin_lists_every_celula_of_the_matrix_only(client, world, auth_headers):
    response = client.get("/celulas", headers=auth_headers(world.a.admin, world.a.matrix))
    ids = {item["id"] for item in response.json()}
    assert ids == {world.a.celula.id, world.a.other_celula.id}


def test_get_celula_of_another_matrix_is_forbidden(client, world, auth_headers):
    response = client.get(f"/celulas/{world.b.celula.id}", headers=auth_headers(world.a.admin, world.a.matrix))
    assert response.status_code == 403
    assert response.json()["code"] == "tenant_mismatch"


def test_get_missing_celula_is_not_found(client, world, auth_headers):
    response = client.get("/celulas/99999", headers=auth_headers(world.a.admin, world.a.matrix))
    assert response.status_code == 404


def test_leader_cannot_read_sibling_celula(client, world, auth_headers):
    response = client.get(f"/celulas/{world.a.other_celula.id}", headers=auth_headers(world.a.leader, world.a.matrix))
    assert response.status_code == 403
    assert response.json()["code"] == "insufficient_authority"


def test_discipulador_creates_celula_in_own_discipulado(client, world, auth_headers):
    headers = auth_headers(world.a.discipulador, world.a.matrix)
    response = client.post("/celulas", json=_celula_payload(world.a), headers=headers)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["leader"]["id"] == world.a.other_leader.id
    assert body["discipulado_id"] == world.a.discipulado.id


def test_create_celula_validates_schedule_and_eligibility(client, world, auth_headers):
    headers = auth_headers(world.a.admin, world.a.matrix)
    bad_weekday = client.post("/celulas", json=_celula_payload(world.a, weekday=7), headers=headers)
    assert bad_weekday.status_code == 400
    bad_time = client.post("/celulas", json=_celula_payload(world.a, time="25:00"), headers=headers)
    assert bad_time.status_code == 400
    not_a_leader = client.post(
        "/celulas",
        json=_celula_payload(world.a, leader_member_id=world.a.attendees[0].id),
        headers=headers,
    )
    assert not_a_leader.status_code == 400
    assert "Required at least: Líder" in not_a_leader.json()["detail"]
    duplicate = client.post(
        "/celulas",
        json=_celula_payload(world.a, name=world.a.celula.name.upper()),
        headers=headers,
    )
    assert duplicate.status_code == 409


def test_create_celula_rejects_foreign_references(client, world, auth_headers):
    headers = auth_headers(world.a.admin, world.a.matrix)
    foreign_discipulado = client.post(
        "/celulas",
        json=_celula_payload(world.a, discipulado_id=world.b.discipulado.id),
        headers=headers,
    )
    assert foreign_discipulado.status_code == 403
    foreign_leader = client.post(
        "/celulas",
        json=_celula_payload(world.a, leader_member_id=world.b.leader.id),
        headers=headers,
    )
    assert foreign_leader.status_code == 403
    assert foreign_leader.json()["code"] == "tenant_mismatch"


def test_discipulador_cannot_create_in_foreign_discipulado(client, world, auth_headers):
    response = client.post(
        "/celulas",
        json=_celula_payload(world.a, discipulado_id=world.a.other_discipulado.id),
        headers=auth_headers(world.a.discipulador, world.a.matrix),
    )
    assert response.status_code == 403


def test_cross_matrix_update_is_rejected_and_nothing_changes(client, db_session, world, auth_headers):
    target = world.b.celula
    response = client.put(
        f"/celulas/{target.id}",
        json={"name": "Invadida"},
        headers=auth_headers(world.a.admin, world.a.matrix),
    )
    assert response.status_code == 403
    assert response.json()["code"] == "tenant_mismatch"

    db_session.expire_all()
    assert db_session.get(Celula, target.id).name == "Celula Videira norte"


def test_leader_updates_own_celula_schedule(client, world, auth_headers):
    response = client.put(
        f"/celulas/{world.a.celula.id}",
        json={"weekday": 6, "time": "09:15"},
        headers=auth_headers(world.a.leader, world.a.matrix),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["weekday"] == 6
    assert body["time"] == "09:15"
    assert body["vice_leader"]["id"] == world.a.vice.id


def test_update_can_clear_vice_leader(client, world, auth_headers):
    response = client.put(
        f"/celulas/{world.a.celula.id}",
        json={"vice_leader_member_id": None},
        headers=auth_headers(world.a.admin, world.a.matrix),
    )
    assert response.status_code == 200
    assert response.json()["vice_leader"] is None


def test_vice_leader_cannot_become_leader_while_still_vice(client, db_session, world, auth_headers):
    a = world.a
    headers = auth_headers(a.admin, a.matrix)
    assigned = client.put(
        f"/celulas/{a.celula.id}", json={"vice_leader_member_id": a.other_leader.id}, headers=headers
    )
    assert assigned.status_code == 200

    promoted = client.put(f"/celulas/{a.celula.id}", json={"leader_member_id": a.other_leader.id}, headers=headers)
    assert promoted.status_code == 400
    db_session.expire_all()
    celula = db_session.get(Celula, a.celula.id)
    assert celula.leader_member_id == a.leader.id
    assert celula.vice_leader_member_id == a.other_leader.id

    swapped = client.put(
        f"/celulas/{a.celula.id}",
        json={"leader_member_id": a.other_leader.id, "vice_leader_member_id": None},
        headers=headers,
    )
    assert swapped.status_code == 200
    assert swapped.json()["leader"]["id"] == a.other_leader.id
    assert swapped.json()["vice_leader"] is None


def test_leader_cannot_move_celula_to_another_discipulado(client, world, auth_headers):
    response = client.put(
        f"/celulas/{world.a.celula.id}",
        json={"discipulado_id": world.a.other_discipulado.id},
        headers=auth_headers(world.a.leader, world.a.matrix),
    )
    assert response.status_code == 403


def test_multiply_moves_selected_members_and_promotes_new_leader(client, db_session, world, auth_headers):
    a = world.a
    moving = [a.attendees[0].id, a.attendees[2].id]
    response = client.post(
        f"/celulas/{a.celula.id}/multiply",
        json={
            "member_ids": moving,
            "new_celula_name": "Celula Broto",
            "new_leader_member_id": a.attendees[0].id,
            "old_leader_member_id": a.leader.id,
        },
        headers=auth_headers(a.leader, a.matrix),
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["moved_count"] == 2
    assert body["moved_member_ids"] == sorted(moving)
    new_id = body["new_celula"]["id"]
    assert body["new_celula"]["leader"]["id"] == a.attendees[0].id
    assert body["new_celula"]["discipulado_id"] == a.discipulado.id

    db_session.expire_all()
    promoted = db_session.get(Member, a.attendees[0].id)
    assert promoted.ministry_type == "LEADER"
    assert promoted.celula_id == new_id
    assert db_session.get(Member, a.attendees[2].id).celula_id == new_id
    assert db_session.get(Member, a.attendees[1].id).celula_id == a.celula.id
    assert db_session.get(Member, a.leader.id).celula_id == a.celula.id


def test_multiply_with_outsider_changes_nothing(client, db_session, world, auth_headers):
    a = world.a
    response = client.post(
        f"/celulas/{a.celula.id}/multiply",
        json={
            "member_ids": [a.attendees[0].id, a.plain.id],
            "new_celula_name": "Celula Broto",
            "new_leader_member_id": a.attendees[0].id,
        },
        headers=auth_headers(a.admin, a.matrix),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "precondition_failed"

    db_session.expire_all()
    assert db_session.query(Celula).filter(Celula.name == "Celula Broto").count() == 0
    attendee = db_session.get(Member, a.attendees[0].id)
    assert attendee.celula_id == a.celula.id
    assert attendee.ministry_type == "MEMBER"


def test_multiply_rejects_members_of_another_matrix(client, world, auth_headers):
    a = world.a
    response = client.post(
        f"/celulas/{a.celula.id}/multiply",
        json={
            "member_ids": [a.attendees[0].id, world.b.attendees[0].id],
            "new_celula_name": "Celula Broto",
            "new_leader_member_id": a.attendees[0].id,
        },
        headers=auth_headers(a.admin, a.matrix),
    )
    assert response.status_code == 403
    assert response.json()["code"] == "tenant_mismatch"


def test_multiply_requires_authority_over_the_celula(client, world, auth_headers):
    a = world.a
    response = client.post(
        f"/celulas/{a.celula.id}/multiply",
        json={
            "member_ids": [a.attendees[0].id],
            "new_celula_name": "Celula Broto",
            "new_leader_member_id": a.attendees[0].id,
        },
        headers=auth_headers(a.other_leader, a.matrix),
    )
    assert response.status_code == 403


def test_multiply_rejects_wrong_old_leader_and_duplicates(client, world, auth_headers):
    a = world.a
    headers = auth_headers(a.admin, a.matrix)
    wrong_leader = client.post(
        f"/celulas/{a.celula.id}/multiply",
        json={
            "member_ids": [a.attendees[0].id],
            "new_celula_name": "Celula Broto",
            "new_leader_member_id": a.attendees[0].id,
            "old_leader_member_id": a.other_leader.id,
        },
        headers=headers,
    )
    assert wrong_leader.status_code == 400
    duplicates = client.post(
        f"/celulas/{a.celula.id}/multiply",
        json={
            "member_ids": [a.attendees[0].id, a.attendees[0].id],
            "new_celula_name": "Celula Broto",
            "new_leader_member_id": a.attendees[0].id,
        },
        headers=headers,
    )
    assert duplicates.status_code == 422


def test_delete_blocked_while_members_remain(client, db_session, world, auth_headers):
    a = world.a
    headers = auth_headers(a.discipulador, a.matrix)
    client.post(f"/celulas/{a.celula.id}/reports", json={"member_ids": [a.attendees[0].id]}, headers=headers)

    blocked = client.delete(f"/celulas/{a.celula.id}", headers=headers)
    assert blocked.status_code == 400
    assert "members" in blocked.json()["detail"]

    db_session.query(Member).filter(Member.celula_id == a.celula.id).update(
        {Member.celula_id: None}, synchronize_session=False
    )
    db_session.commit()

    deleted = client.delete(f"/celulas/{a.celula.id}", headers=headers)
    assert deleted.status_code == 204
    db_session.expire_all()
    assert db_session.get(Celula, a.celula.id) is None
    assert db_session.query(Report).filter(Report.celula_id == a.celula.id).count() == 0


def test_leader_cannot_delete_own_celula(client, db_session, world, auth_headers):
    a = world.a
    db_session.query(Member).filter(Member.celula_id == a.celula.id).update(
        {Member.celula_id: None}, synchronize_session=False
    )
    db_session.commit()
    response = client.delete(f"/celulas/{a.celula.id}", headers=auth_headers(a.leader, a.matrix))
    assert response.status_code == 403


def test_delete_celula_of_another_matrix_is_forbidden(client, world, auth_headers):
    response = client.delete(f"/celulas/{world.b.celula.id}", headers=auth_headers(world.a.admin, world.a.matrix))
    assert response.status_code == 403


def test_celula_mutations_reject_other_matrix_ids(client, world, auth_headers):
    a, b = world.a, world.b
    headers = auth_headers(a.admin, a.matrix)
    foreign = b.celula.id
    calls = [
        client.get(f"/celulas/{foreign}/members", headers=headers),
        client.post(f"/celulas/{foreign}/leaders-in-training/{b.vice.id}", headers=headers),
        client.delete(f"/celulas/{foreign}/leaders-in-training/{b.vice.id}", headers=headers),
        client.get(f"/celulas/{foreign}/reports", headers=headers),
        client.post(f"/celulas/{foreign}/reports", json={"member_ids": []}, headers=headers),
        client.post(
            f"/celulas/{foreign}/multiply",
            json={"member_ids": [b.attendees[0].id], "new_celula_name": "X", "new_leader_member_id": b.attendees[0].id},
            headers=headers,
        ),
    ]
    assert [call.status_code for call in calls] == [403] * len(calls)


def test_leaders_in_training_rules(client, world, make_member, auth_headers):
    a = world.a
    headers = auth_headers(a.leader, a.matrix)
    trainee = make_member("Aprendiz", a.matrix, ministry=a.ministries["LEADER_IN_TRAINING"])

    added = client.post(f"/celulas/{a.celula.id}/leaders-in-training/{trainee.id}", headers=headers)
    assert added.status_code == 200
    assert [item["id"] for item in added.json()["leaders_in_training"]] == [trainee.id]

    again = client.post(f"/celulas/{a.celula.id}/leaders-in-training/{trainee.id}", headers=headers)
    assert again.status_code == 409
    own_leader = client.post(f"/celulas/{a.celula.id}/leaders-in-training/{a.leader.id}", headers=headers)
    assert own_leader.status_code == 400
    plain_member = client.post(f"/celulas/{a.celula.id}/leaders-in-training/{a.attendees[1].id}", headers=headers)
    assert plain_member.status_code == 400

    removed = client.delete(f"/celulas/{a.celula.id}/leaders-in-training/{trainee.id}", headers=headers)
    assert removed.status_code == 200
    assert removed.json()["leaders_in_training"] == []
    missing = client.delete(f"/celulas/{a.celula.id}/leaders-in-training/{trainee.id}", headers=headers)
    assert missing.status_code == 404


def test_leader_in_training_cannot_be_made_leader(client, world, make_member, auth_headers):
    a = world.a
    headers = auth_headers(a.admin, a.matrix)
    candidate = make_member("Futuro Lider", a.matrix, ministry=a.ministries["LEADER"])
    assert client.post(f"/celulas/{a.celula.id}/leaders-in-training/{candidate.id}", headers=headers).status_code == 200

    response = client.put(f"/celulas/{a.celula.id}", json={"leader_member_id": candidate.id}, headers=headers)
    assert response.status_code == 400


def test_same_day_report_replaces_previous(client, world, auth_headers):
    a = world.a
    headers = auth_headers(a.leader, a.matrix)
    day = date(2026, 3, 4).isoformat()

    first = client.post(
        f"/celulas/{a.celula.id}/reports",
        json={"member_ids": [a.attendees[0].id], "report_date": day},
        headers=headers,
    )
    assert first.status_code == 201
    second = client.post(
        f"/celulas/{a.celula.id}/reports",
        json={"member_ids": [a.attendees[1].id, a.attendees[2].id], "report_date": day},
        headers=headers,
    )
    assert second.status_code == 201

    reports = client.get(f"/celulas/{a.celula.id}/reports", headers=headers).json()
    assert len(reports) == 1
    assert {item["id"] for item in reports[0]["attendees"]} == {a.attendees[1].id, a.attendees[2].id}


def test_report_attendees_must_belong_to_matrix(client, world, auth_headers):
    a = world.a
    response = client.post(
        f"/celulas/{a.celula.id}/reports",
        json={"member_ids": [world.b.attendees[0].id]},
        headers=auth_headers(a.leader, a.matrix),
    )
    assert response.status_code == 403
