from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from app.core.errors import Conflict, InsufficientAuthority, NotFound, PreconditionFailed
from app.models.hierarchy import Celula
from app.models.member import Member
from app.models.ministry import Ministry
from app.models.report import Report
from app.schemas.hierarchy import CelulaCreate, CelulaMultiplyRequest, CelulaUpdate
from app.services import ministry_policy, tenant
from app.services.hierarchy import ensure_unique_hierarchy_name, load_eligible_member, require_discipulado_authority
from app.services.permissions import FullPermission, has_discipulado_authority, require_celula_access

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def validate_weekday(weekday: Optional[int]) -> None:
    if weekday is not None and not 0 <= weekday <= 6:
        raise PreconditionFailed("Weekday must be between 0 (Sunday) and 6 (Saturday)")


def validate_time(value: Optional[str]) -> None:
    if value and not TIME_PATTERN.match(value):
        raise PreconditionFailed("Time must use the HH:mm format (e.g. 19:30)")


def _celula_query(db: Session):
    return db.query(Celula).options(
        selectinload(Celula.leader),
        selectinload(Celula.vice_leader),
        selectinload(Celula.leaders_in_training),
    )


def load_celula(db: Session, celula_id: int, permission: FullPermission) -> Celula:
    """Tenant check first so a foreign celula reads as forbidden, never as accessible."""

    tenant.validate_celula_belongs_to_matrix(db, celula_id, permission.matrix_id)
    require_celula_access(permission, celula_id)
    return _celula_query(db).filter(Celula.id == celula_id).one()


def list_celulas(db: Session, permission: FullPermission) -> list[Celula]:
    query = _celula_query(db).filter(Celula.matrix_id == permission.matrix_id)
    if not permission.is_admin:
        if not permission.celula_ids:
            return []
        query = query.filter(Celula.id.in_(permission.celula_ids))
    return query.order_by(Celula.name.asc()).all()


def list_celula_members(db: Session, celula_id: int, permission: FullPermission) -> list[Member]:
    load_celula(db, celula_id, permission)
    return (
        db.query(Member)
        .options(selectinload(Member.roles), selectinload(Member.ministry_position))
        .filter(Member.celula_id == celula_id)
        .order_by(Member.name.asc())
        .all()
    )


def create_celula(db: Session, payload: CelulaCreate, permission: FullPermission) -> Celula:
    matrix_id = permission.matrix_id
    validate_weekday(payload.weekday)
    validate_time(payload.time)

    tenant.validate_discipulado_belongs_to_matrix(db, payload.discipulado_id, matrix_id)
    require_discipulado_authority(db, permission, payload.discipulado_id)
    ensure_unique_hierarchy_name(db, Celula, payload.name, matrix_id)

    load_eligible_member(db, payload.leader_member_id, matrix_id, "leader")
    if payload.vice_leader_member_id is not None:
        if payload.vice_leader_member_id == payload.leader_member_id:
            raise PreconditionFailed("Leader and vice leader must be different members")
        load_eligible_member(db, payload.vice_leader_member_id, matrix_id, "viceLeader")

    celula = Celula(
        name=payload.name.strip(),
        weekday=payload.weekday,
        time=payload.time,
        leader_member_id=payload.leader_member_id,
        vice_leader_member_id=payload.vice_leader_member_id,
        discipulado_id=payload.discipulado_id,
        matrix_id=matrix_id,
    )
    db.add(celula)
    db.commit()
    logger.info("celula_created", extra={"celula_id": celula.id, "matrix_id": matrix_id})
    return _celula_query(db).filter(Celula.id == celula.id).one()


def update_celula(db: Session, celula_id: int, payload: CelulaUpdate, permission: FullPermission) -> Celula:
    matrix_id = permission.matrix_id
    celula = load_celula(db, celula_id, permission)
    fields = payload.model_fields_set

    if payload.name is not None:
        ensure_unique_hierarchy_name(db, Celula, payload.name, matrix_id, exclude_id=celula.id)
        celula.name = payload.name.strip()
    if "weekday" in fields:
        validate_weekday(payload.weekday)
        celula.weekday = payload.weekday
    if "time" in fields:
        validate_time(payload.time)
        celula.time = payload.time or None

    if payload.leader_member_id is not None and payload.leader_member_id != celula.leader_member_id:
        load_eligible_member(db, payload.leader_member_id, matrix_id, "leader")
        if any(trainee.id == payload.leader_member_id for trainee in celula.leaders_in_training):
            raise PreconditionFailed("A leader in training cannot also be the celula leader")
        celula.leader_member_id = payload.leader_member_id

    if "vice_leader_member_id" in fields:
        if payload.vice_leader_member_id is not None:
            if payload.vice_leader_member_id == celula.leader_member_id:
                raise PreconditionFailed("Leader and vice leader must be different members")
            load_eligible_member(db, payload.vice_leader_member_id, matrix_id, "viceLeader")
        celula.vice_leader_member_id = payload.vice_leader_member_id

    if celula.vice_leader_member_id is not None and celula.vice_leader_member_id == celula.leader_member_id:
        raise PreconditionFailed("Leader and vice leader must be different members")

    if payload.discipulado_id is not None and payload.discipulado_id != celula.discipulado_id:
        tenant.validate_discipulado_belongs_to_matrix(db, payload.discipulado_id, matrix_id)
        require_discipulado_authority(db, permission, payload.discipulado_id)
        celula.discipulado_id = payload.discipulado_id

    db.commit()
    return _celula_query(db).filter(Celula.id == celula_id).populate_existing().one()


def delete_celula(db: Session, celula_id: int, permission: FullPermission) -> None:
    """Delete a celula with no members; its reports go with it.

    The member count is taken with the celula row locked and the delete runs in
    the same transaction, and ``members.celula_id`` restricts deletes at the
    database level as well.
    """

    tenant.validate_celula_belongs_to_matrix(db, celula_id, permission.matrix_id)
    try:
        celula = db.query(Celula).filter(Celula.id == celula_id).with_for_update().one()
        require_discipulado_authority(db, permission, celula.discipulado_id)
        member_count = db.query(Member.id).filter(Member.celula_id == celula_id).count()
        if member_count:
            raise PreconditionFailed(
                "This celula has members attached and cannot be deleted",
                members=member_count,
            )
        db.query(Report).filter(Report.celula_id == celula_id).delete(synchronize_session=False)
        db.delete(celula)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("celula_deleted", extra={"celula_id": celula_id, "matrix_id": permission.matrix_id})


def _require_multiply_authority(db: Session, permission: FullPermission, celula: Celula) -> None:
    if permission.is_admin or permission.member_id in (celula.leader_member_id, celula.vice_leader_member_id):
        return
    discipulado = celula.discipulado
    if has_discipulado_authority(permission, discipulado.id, discipulado.rede_id):
        return
    raise InsufficientAuthority("Only the leader, vice leader, discipulador, pastor or an administrator can multiply")


def _leader_ministry(db: Session, matrix_id: int) -> Ministry:
    ministry = (
        db.query(Ministry)
        .filter(Ministry.matrix_id == matrix_id, Ministry.type == ministry_policy.MinistryType.LEADER.value)
        .order_by(Ministry.priority.asc())
        .first()
    )
    if ministry is None:
        raise PreconditionFailed("No LEADER ministry position is configured for this matrix")
    return ministry


def multiply_celula(
    db: Session, celula_id: int, payload: CelulaMultiplyRequest, permission: FullPermission
) -> tuple[Celula, list[int]]:
    """Split a celula: create a new one and move the selected members into it.

    Either every step lands or none does. Every requested member must currently
    belong to the original celula.
    """

    matrix_id = permission.matrix_id
    tenant.validate_celula_belongs_to_matrix(db, celula_id, matrix_id)
    original = db.get(Celula, celula_id)
    _require_multiply_authority(db, permission, original)

    if payload.old_leader_member_id is not None and payload.old_leader_member_id != original.leader_member_id:
        raise PreconditionFailed("Old leader does not match the celula leader")

    requested = set(payload.member_ids)
    tenant.validate_members_belong_to_matrix(db, requested, matrix_id)
    tenant.validate_member_belongs_to_matrix(db, payload.new_leader_member_id, matrix_id)
    ensure_unique_hierarchy_name(db, Celula, payload.new_celula_name, matrix_id)

    try:
        in_celula = {
            member_id
            for (member_id,) in db.query(Member.id)
            .filter(Member.id.in_(requested), Member.celula_id == celula_id)
            .with_for_update()
        }
        outsiders = sorted(requested - in_celula)
        if outsiders:
            raise PreconditionFailed("Some members do not belong to the original celula", member_ids=outsiders)

        leader = db.get(Member, payload.new_leader_member_id)
        promoted = False
        if not ministry_policy.can_be_leader(leader.ministry_type):
            leader.ministry_position_id = _leader_ministry(db, matrix_id).id
            promoted = True

        new_celula = Celula(
            name=payload.new_celula_name.strip(),
            leader_member_id=leader.id,
            discipulado_id=original.discipulado_id,
            matrix_id=matrix_id,
        )
        db.add(new_celula)
        db.flush()

        db.query(Member).filter(Member.id.in_(in_celula)).update(
            {Member.celula_id: new_celula.id}, synchronize_session=False
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    moved = sorted(in_celula)
    logger.info(
        "celula_multiplied",
        extra={
            "celula_id": celula_id,
            "new_celula_id": new_celula.id,
            "moved": len(moved),
            "leader_promoted": promoted,
        },
    )
    return _celula_query(db).filter(Celula.id == new_celula.id).one(), moved


def add_leader_in_training(db: Session, celula_id: int, member_id: int, permission: FullPermission) -> Celula:
    celula = load_celula(db, celula_id, permission)
    if member_id == celula.leader_member_id:
        raise PreconditionFailed("The celula leader cannot be a leader in training")
    member = load_eligible_member(db, member_id, permission.matrix_id, "viceLeader")
    if any(trainee.id == member_id for trainee in celula.leaders_in_training):
        raise Conflict("Member is already a leader in training of this celula")
    celula.leaders_in_training.append(member)
    db.commit()
    logger.info("celula_trainee_added", extra={"celula_id": celula_id, "member_id": member_id})
    return _celula_query(db).filter(Celula.id == celula_id).populate_existing().one()


def remove_leader_in_training(db: Session, celula_id: int, member_id: int, permission: FullPermission) -> Celula:
    celula = load_celula(db, celula_id, permission)
    trainee = next((item for item in celula.leaders_in_training if item.id == member_id), None)
    if trainee is None:
        raise NotFound("Member is not a leader in training of this celula")
    celula.leaders_in_training.remove(trainee)
    db.commit()
    logger.info("celula_trainee_removed", extra={"celula_id": celula_id, "member_id": member_id})
    return _celula_query(db).filter(Celula.id == celula_id).populate_existing().one()
