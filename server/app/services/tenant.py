from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFound, TenantMismatch
from app.models.api_key import ApiKey
from app.models.hierarchy import Celula, Discipulado, Rede
from app.models.matrix import member_matrices
from app.models.ministry import Ministry, WinnerPath
from app.models.role import Role


def _validate_belongs(db: Session, model, entity_id: int, matrix_id: int, label: str) -> None:
    owner_matrix_id = db.execute(select(model.matrix_id).where(model.id == entity_id)).scalar_one_or_none()
    if owner_matrix_id is None:
        raise NotFound(f"{label} not found", entity=model.__tablename__, entity_id=entity_id)
    if owner_matrix_id != matrix_id:
        raise TenantMismatch(entity=model.__tablename__, entity_id=entity_id)


def validate_celula_belongs_to_matrix(db: Session, celula_id: int, matrix_id: int) -> None:
    _validate_belongs(db, Celula, celula_id, matrix_id, "Celula")


def validate_discipulado_belongs_to_matrix(db: Session, discipulado_id: int, matrix_id: int) -> None:
    _validate_belongs(db, Discipulado, discipulado_id, matrix_id, "Discipulado")


def validate_rede_belongs_to_matrix(db: Session, rede_id: int, matrix_id: int) -> None:
    _validate_belongs(db, Rede, rede_id, matrix_id, "Rede")


def validate_ministry_belongs_to_matrix(db: Session, ministry_id: int, matrix_id: int) -> None:
    _validate_belongs(db, Ministry, ministry_id, matrix_id, "Ministry")


def validate_role_belongs_to_matrix(db: Session, role_id: int, matrix_id: int) -> None:
    _validate_belongs(db, Role, role_id, matrix_id, "Role")


def validate_winner_path_belongs_to_matrix(db: Session, winner_path_id: int, matrix_id: int) -> None:
    _validate_belongs(db, WinnerPath, winner_path_id, matrix_id, "Winner path")


def member_belongs_to_matrix(db: Session, member_id: int, matrix_id: int) -> bool:
    row = db.execute(
        select(member_matrices.c.member_id).where(
            member_matrices.c.member_id == member_id,
            member_matrices.c.matrix_id == matrix_id,
        )
    ).first()
    return row is not None


def validate_member_belongs_to_matrix(db: Session, member_id: int, matrix_id: int) -> None:
    """Membership lives in the member/matrix join, so a foreign member is simply absent."""

    if not member_belongs_to_matrix(db, member_id, matrix_id):
        raise TenantMismatch(entity="members", entity_id=member_id)


def validate_members_belong_to_matrix(db: Session, member_ids: Iterable[int], matrix_id: int) -> None:
    wanted = set(member_ids)
    if not wanted:
        return
    found = set(
        db.execute(
            select(member_matrices.c.member_id).where(
                member_matrices.c.member_id.in_(wanted),
                member_matrices.c.matrix_id == matrix_id,
            )
        ).scalars()
    )
    missing = wanted - found
    if missing:
        raise TenantMismatch(entity="members", entity_ids=sorted(missing))


def validate_api_key_belongs_to_matrix(db: Session, api_key_id: int, matrix_id: int) -> None:
    _validate_belongs(db, ApiKey, api_key_id, matrix_id, "API key")
