from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.core.errors import Conflict, InsufficientAuthority, PreconditionFailed
from app.models.hierarchy import Celula, Discipulado, Rede
from app.models.member import Member
from app.schemas.hierarchy import DiscipuladoCreate, DiscipuladoUpdate, RedeCreate, RedeUpdate
from app.services import ministry_policy, tenant
from app.services.permissions import FullPermission, has_discipulado_authority, require_admin

logger = logging.getLogger(__name__)

_ROLE_LABELS = {
    "pastor": "Pastor",
    "discipulador": "Discipulador",
    "leader": "Líder",
    "viceLeader": "Líder em Treinamento",
}


def load_eligible_member(
    db: Session,
    member_id: int,
    matrix_id: int,
    role: ministry_policy.HierarchyRole,
) -> Member:
    """Load a member about to take a hierarchy role, checking tenant and ministry standing."""

    tenant.validate_member_belongs_to_matrix(db, member_id, matrix_id)
    member = db.get(Member, member_id)
    ministry_type = member.ministry_type
    if not ministry_policy.is_eligible_for(ministry_type, role):
        raise PreconditionFailed(
            f"Member cannot be {_ROLE_LABELS[role]}. Current ministry level: "
            f"{ministry_policy.ministry_type_label(ministry_type)}. "
            f"Required at least: {ministry_policy.ministry_type_label(ministry_policy.get_minimum_ministry_type_for(role).value)}.",
            member_id=member_id,
        )
    return member


def ensure_unique_hierarchy_name(
    db: Session, model, name: str, matrix_id: int, exclude_id: Optional[int] = None
) -> None:
    query = db.query(model.id).filter(func.lower(model.name) == name.strip().lower(), model.matrix_id == matrix_id)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise Conflict("Name already in use in this matrix", name=name)


# Redes


def list_redes(db: Session, matrix_id: int) -> list[Rede]:
    return (
        db.query(Rede)
        .options(selectinload(Rede.pastor))
        .filter(Rede.matrix_id == matrix_id)
        .order_by(Rede.name.asc())
        .all()
    )


def create_rede(db: Session, payload: RedeCreate, permission: FullPermission) -> Rede:
    require_admin(permission)
    matrix_id = permission.matrix_id
    ensure_unique_hierarchy_name(db, Rede, payload.name, matrix_id)
    if payload.pastor_member_id is not None:
        load_eligible_member(db, payload.pastor_member_id, matrix_id, "pastor")
    rede = Rede(name=payload.name.strip(), pastor_member_id=payload.pastor_member_id, matrix_id=matrix_id)
    db.add(rede)
    db.commit()
    db.refresh(rede)
    logger.info("rede_created", extra={"rede_id": rede.id, "matrix_id": matrix_id})
    return rede


def update_rede(db: Session, rede_id: int, payload: RedeUpdate, permission: FullPermission) -> Rede:
    require_admin(permission)
    matrix_id = permission.matrix_id
    tenant.validate_rede_belongs_to_matrix(db, rede_id, matrix_id)
    rede = db.get(Rede, rede_id)
    if payload.name is not None:
        ensure_unique_hierarchy_name(db, Rede, payload.name, matrix_id, exclude_id=rede.id)
        rede.name = payload.name.strip()
    if "pastor_member_id" in payload.model_fields_set:
        if payload.pastor_member_id is not None:
            load_eligible_member(db, payload.pastor_member_id, matrix_id, "pastor")
        rede.pastor_member_id = payload.pastor_member_id
    db.commit()
    db.refresh(rede)
    return rede


def delete_rede(db: Session, rede_id: int, permission: FullPermission) -> None:
    require_admin(permission)
    tenant.validate_rede_belongs_to_matrix(db, rede_id, permission.matrix_id)
    attached = db.query(Discipulado.id).filter(Discipulado.rede_id == rede_id).count()
    if attached:
        raise PreconditionFailed("Rede has discipulados attached", discipulados=attached)
    db.query(Rede).filter(Rede.id == rede_id).delete(synchronize_session=False)
    db.commit()
    logger.info("rede_deleted", extra={"rede_id": rede_id, "matrix_id": permission.matrix_id})


# Discipulados


def list_discipulados(db: Session, matrix_id: int) -> list[Discipulado]:
    return (
        db.query(Discipulado)
        .options(selectinload(Discipulado.discipulador))
        .outerjoin(Member, Member.id == Discipulado.discipulador_member_id)
        .filter(Discipulado.matrix_id == matrix_id)
        .order_by(Member.name.asc(), Discipulado.id.asc())
        .all()
    )


def _require_rede_authority(permission: FullPermission, rede_id: int) -> None:
    if not (permission.is_admin or rede_id in permission.rede_ids):
        raise InsufficientAuthority("Only administrators or the rede pastor can manage its discipulados")


def create_discipulado(db: Session, payload: DiscipuladoCreate, permission: FullPermission) -> Discipulado:
    matrix_id = permission.matrix_id
    tenant.validate_rede_belongs_to_matrix(db, payload.rede_id, matrix_id)
    _require_rede_authority(permission, payload.rede_id)
    if payload.discipulador_member_id is not None:
        load_eligible_member(db, payload.discipulador_member_id, matrix_id, "discipulador")
    discipulado = Discipulado(
        rede_id=payload.rede_id,
        discipulador_member_id=payload.discipulador_member_id,
        matrix_id=matrix_id,
    )
    db.add(discipulado)
    db.commit()
    db.refresh(discipulado)
    logger.info("discipulado_created", extra={"discipulado_id": discipulado.id, "matrix_id": matrix_id})
    return discipulado


def update_discipulado(
    db: Session, discipulado_id: int, payload: DiscipuladoUpdate, permission: FullPermission
) -> Discipulado:
    matrix_id = permission.matrix_id
    tenant.validate_discipulado_belongs_to_matrix(db, discipulado_id, matrix_id)
    discipulado = db.get(Discipulado, discipulado_id)
    _require_rede_authority(permission, discipulado.rede_id)

    if payload.rede_id is not None and payload.rede_id != discipulado.rede_id:
        tenant.validate_rede_belongs_to_matrix(db, payload.rede_id, matrix_id)
        _require_rede_authority(permission, payload.rede_id)
        discipulado.rede_id = payload.rede_id
    if "discipulador_member_id" in payload.model_fields_set:
        if payload.discipulador_member_id is not None:
            load_eligible_member(db, payload.discipulador_member_id, matrix_id, "discipulador")
        discipulado.discipulador_member_id = payload.discipulador_member_id
    db.commit()
    db.refresh(discipulado)
    return discipulado


def delete_discipulado(db: Session, discipulado_id: int, permission: FullPermission) -> None:
    tenant.validate_discipulado_belongs_to_matrix(db, discipulado_id, permission.matrix_id)
    discipulado = db.get(Discipulado, discipulado_id)
    _require_rede_authority(permission, discipulado.rede_id)
    attached = db.query(Celula.id).filter(Celula.discipulado_id == discipulado_id).count()
    if attached:
        raise PreconditionFailed("Discipulado has celulas attached", celulas=attached)
    db.delete(discipulado)
    db.commit()
    logger.info("discipulado_deleted", extra={"discipulado_id": discipulado_id, "matrix_id": permission.matrix_id})


def require_discipulado_authority(db: Session, permission: FullPermission, discipulado_id: int) -> Discipulado:
    discipulado = db.get(Discipulado, discipulado_id)
    if not has_discipulado_authority(permission, discipulado.id, discipulado.rede_id):
        raise InsufficientAuthority("Only administrators, the discipulador or the rede pastor can do this")
    return discipulado

