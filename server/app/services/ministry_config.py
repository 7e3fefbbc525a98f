from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import Conflict
from app.models.ministry import Ministry, WinnerPath
from app.models.role import Role
from app.schemas.config import (
    MinistryCreate,
    MinistryUpdate,
    RoleCreate,
    RoleUpdate,
    WinnerPathCreate,
    WinnerPathUpdate,
)
from app.services import tenant

logger = logging.getLogger(__name__)


def _ensure_unique_name(
    db: Session, model, name: str, matrix_id: int, label: str, exclude_id: int | None = None
) -> None:
    query = db.query(model.id).filter(func.lower(model.name) == name.strip().lower(), model.matrix_id == matrix_id)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise Conflict(f"{label} with this name already exists", name=name)


def _next_priority(db: Session, model, matrix_id: int) -> int:
    current = db.query(func.max(model.priority)).filter(model.matrix_id == matrix_id).scalar()
    return 0 if current is None else current + 1


# Ministries


def list_ministries(db: Session, matrix_id: int) -> list[Ministry]:
    return db.query(Ministry).filter(Ministry.matrix_id == matrix_id).order_by(Ministry.priority.asc()).all()


def get_ministry(db: Session, ministry_id: int, matrix_id: int) -> Ministry:
    tenant.validate_ministry_belongs_to_matrix(db, ministry_id, matrix_id)
    return db.get(Ministry, ministry_id)


def create_ministry(db: Session, payload: MinistryCreate, matrix_id: int) -> Ministry:
    _ensure_unique_name(db, Ministry, payload.name, matrix_id, "Ministry")
    ministry = Ministry(
        name=payload.name.strip(),
        type=payload.type.value,
        priority=_next_priority(db, Ministry, matrix_id),
        matrix_id=matrix_id,
    )
    db.add(ministry)
    db.commit()
    db.refresh(ministry)
    logger.info("ministry_created", extra={"ministry_id": ministry.id, "matrix_id": matrix_id})
    return ministry


def update_ministry(db: Session, ministry_id: int, payload: MinistryUpdate, matrix_id: int) -> Ministry:
    ministry = get_ministry(db, ministry_id, matrix_id)
    if payload.name is not None:
        _ensure_unique_name(db, Ministry, payload.name, matrix_id, "Ministry", exclude_id=ministry.id)
        ministry.name = payload.name.strip()
    if payload.type is not None:
        ministry.type = payload.type.value
    db.commit()
    db.refresh(ministry)
    return ministry


def update_ministry_priority(db: Session, ministry_id: int, priority: int, matrix_id: int) -> Ministry:
    ministry = get_ministry(db, ministry_id, matrix_id)
    ministry.priority = priority
    db.commit()
    db.refresh(ministry)
    return ministry


def delete_ministry(db: Session, ministry_id: int, matrix_id: int) -> None:
    ministry = get_ministry(db, ministry_id, matrix_id)
    db.delete(ministry)
    db.commit()
    logger.info("ministry_deleted", extra={"ministry_id": ministry_id, "matrix_id": matrix_id})


# Roles


def list_roles(db: Session, matrix_id: int) -> list[Role]:
    return db.query(Role).filter(Role.matrix_id == matrix_id).order_by(Role.name.asc()).all()


def get_role(db: Session, role_id: int, matrix_id: int) -> Role:
    tenant.validate_role_belongs_to_matrix(db, role_id, matrix_id)
    return db.get(Role, role_id)


def create_role(db: Session, payload: RoleCreate, matrix_id: int) -> Role:
    _ensure_unique_name(db, Role, payload.name, matrix_id, "Role")
    role = Role(name=payload.name.strip(), is_admin=payload.is_admin, matrix_id=matrix_id)
    db.add(role)
    db.commit()
    db.refresh(role)
    logger.info("role_created", extra={"role_id": role.id, "matrix_id": matrix_id, "is_admin": role.is_admin})
    return role


def update_role(db: Session, role_id: int, payload: RoleUpdate, matrix_id: int) -> Role:
    role = get_role(db, role_id, matrix_id)
    if payload.name is not None:
        _ensure_unique_name(db, Role, payload.name, matrix_id, "Role", exclude_id=role.id)
        role.name = payload.name.strip()
    if payload.is_admin is not None:
        role.is_admin = payload.is_admin
    db.commit()
    db.refresh(role)
    return role


def delete_role(db: Session, role_id: int, matrix_id: int) -> None:
    role = get_role(db, role_id, matrix_id)
    db.delete(role)
    db.commit()
    logger.info("role_deleted", extra={"role_id": role_id, "matrix_id": matrix_id})


# Winner paths


def list_winner_paths(db: Session, matrix_id: int) -> list[WinnerPath]:
    return db.query(WinnerPath).filter(WinnerPath.matrix_id == matrix_id).order_by(WinnerPath.priority.asc()).all()


def get_winner_path(db: Session, winner_path_id: int, matrix_id: int) -> WinnerPath:
    tenant.validate_winner_path_belongs_to_matrix(db, winner_path_id, matrix_id)
    return db.get(WinnerPath, winner_path_id)


def create_winner_path(db: Session, payload: WinnerPathCreate, matrix_id: int) -> WinnerPath:
    _ensure_unique_name(db, WinnerPath, payload.name, matrix_id, "Winner path")
    winner_path = WinnerPath(
        name=payload.name.strip(),
        priority=_next_priority(db, WinnerPath, matrix_id),
        matrix_id=matrix_id,
    )
    db.add(winner_path)
    db.commit()
    db.refresh(winner_path)
    return winner_path


def update_winner_path(db: Session, winner_path_id: int, payload: WinnerPathUpdate, matrix_id: int) -> WinnerPath:
    winner_path = get_winner_path(db, winner_path_id, matrix_id)
    _ensure_unique_name(db, WinnerPath, payload.name, matrix_id, "Winner path", exclude_id=winner_path.id)
    winner_path.name = payload.name.strip()
    db.commit()
    db.refresh(winner_path)
    return winner_path


def update_winner_path_priority(db: Session, winner_path_id: int, priority: int, matrix_id: int) -> WinnerPath:
    winner_path = get_winner_path(db, winner_path_id, matrix_id)
    winner_path.priority = priority
    db.commit()
    db.refresh(winner_path)
    return winner_path


def delete_winner_path(db: Session, winner_path_id: int, matrix_id: int) -> None:
    winner_path = get_winner_path(db, winner_path_id, matrix_id)
    db.delete(winner_path)
    db.commit()
