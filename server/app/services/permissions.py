"""Resolve what an authenticated member may act on.

The discipleship hierarchy is a strict tree (rede -> discipulado -> celula)
where every node only knows its parent. Authority flows downwards: pastoring a
rede grants every discipulado under it and every celula under those, and
discipling a discipulado grants every celula under it. The resolver walks the
tree with one query per level and merges the results into sets, so a celula
reachable through several paths is counted once.

Permissions are recomputed from the database on every call and never cached.
Callers resolve once per request and treat the result as an immutable
snapshot for the rest of that request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import InsufficientAuthority
from app.models.hierarchy import Celula, Discipulado, Rede, celula_leaders_in_training
from app.models.member import Member
from app.models.ministry import Ministry
from app.models.role import Role, member_roles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FullPermission:
    member_id: Optional[int] = None
    matrix_id: Optional[int] = None
    is_admin: bool = False
    ministry_position_id: Optional[int] = None
    ministry_type: Optional[str] = None
    celula_ids: tuple[int, ...] = ()
    discipulado_ids: tuple[int, ...] = ()
    rede_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class SimplifiedPermission:
    is_admin: bool = False
    vice_leader: bool = False
    leader: bool = False
    discipulador: bool = False
    pastor: bool = False
    celula_ids: tuple[int, ...] = ()


@dataclass
class _HierarchyClosure:
    is_admin: bool = False
    ministry_position_id: Optional[int] = None
    ministry_type: Optional[str] = None
    led_celula_ids: set[int] = field(default_factory=set)
    vice_led_celula_ids: set[int] = field(default_factory=set)
    training_celula_ids: set[int] = field(default_factory=set)
    discipulado_ids_direct: set[int] = field(default_factory=set)
    rede_ids: set[int] = field(default_factory=set)
    discipulado_ids: set[int] = field(default_factory=set)
    celula_ids: set[int] = field(default_factory=set)


def _ids(db: Session, statement) -> set[int]:
    return set(db.execute(statement).scalars())


def _scoped(statement, model, matrix_id: Optional[int]):
    if matrix_id is None:
        return statement
    return statement.where(model.matrix_id == matrix_id)


def _load_closure(db: Session, member_id: int, matrix_id: Optional[int]) -> _HierarchyClosure:
    closure = _HierarchyClosure()

    row = db.execute(
        select(Member.ministry_position_id, Ministry.type)
        .outerjoin(Ministry, Ministry.id == Member.ministry_position_id)
        .where(Member.id == member_id)
    ).first()
    if row is None:
        return closure
    closure.ministry_position_id, closure.ministry_type = row

    admin_roles = _scoped(
        select(Role.id)
        .join(member_roles, member_roles.c.role_id == Role.id)
        .where(member_roles.c.member_id == member_id, Role.is_admin.is_(True)),
        Role,
        matrix_id,
    )
    closure.is_admin = db.execute(admin_roles.limit(1)).first() is not None

    closure.led_celula_ids = _ids(
        db, _scoped(select(Celula.id).where(Celula.leader_member_id == member_id), Celula, matrix_id)
    )
    closure.vice_led_celula_ids = _ids(
        db, _scoped(select(Celula.id).where(Celula.vice_leader_member_id == member_id), Celula, matrix_id)
    )
    closure.training_celula_ids = _ids(
        db,
        _scoped(
            select(Celula.id)
            .join(celula_leaders_in_training, celula_leaders_in_training.c.celula_id == Celula.id)
            .where(celula_leaders_in_training.c.member_id == member_id),
            Celula,
            matrix_id,
        ),
    )
    closure.discipulado_ids_direct = _ids(
        db,
        _scoped(select(Discipulado.id).where(Discipulado.discipulador_member_id == member_id), Discipulado, matrix_id),
    )
    closure.rede_ids = _ids(db, _scoped(select(Rede.id).where(Rede.pastor_member_id == member_id), Rede, matrix_id))

    closure.discipulado_ids = set(closure.discipulado_ids_direct)
    if closure.rede_ids:
        closure.discipulado_ids |= _ids(
            db, _scoped(select(Discipulado.id).where(Discipulado.rede_id.in_(closure.rede_ids)), Discipulado, matrix_id)
        )

    closure.celula_ids = closure.led_celula_ids | closure.vice_led_celula_ids | closure.training_celula_ids
    if closure.discipulado_ids:
        closure.celula_ids |= _ids(
            db, _scoped(select(Celula.id).where(Celula.discipulado_id.in_(closure.discipulado_ids)), Celula, matrix_id)
        )
    return closure


def _sorted(values: Iterable[int]) -> tuple[int, ...]:
    return tuple(sorted(set(values)))


def load_permission_for_member(db: Session, member_id: int, matrix_id: Optional[int] = None) -> FullPermission:
    """Full permission used by hierarchy-sensitive operations.

    When ``matrix_id`` is given, only roles and hierarchy nodes of that matrix
    count. A member with no relationship at all resolves to an empty permission.
    """

    closure = _load_closure(db, member_id, matrix_id)
    permission = FullPermission(
        member_id=member_id,
        matrix_id=matrix_id,
        is_admin=closure.is_admin,
        ministry_position_id=closure.ministry_position_id,
        ministry_type=closure.ministry_type,
        celula_ids=_sorted(closure.celula_ids),
        discipulado_ids=_sorted(closure.discipulado_ids),
        rede_ids=_sorted(closure.rede_ids),
    )
    logger.debug(
        "permission_resolved",
        extra={
            "member_id": member_id,
            "matrix_id": matrix_id,
            "is_admin": permission.is_admin,
            "celulas": len(permission.celula_ids),
        },
    )
    return permission


def load_simplified_permission_for_member(
    db: Session, member_id: int, matrix_id: Optional[int] = None
) -> SimplifiedPermission:
    """Coarse capability flags for login and token refresh responses."""

    closure = _load_closure(db, member_id, matrix_id)
    return SimplifiedPermission(
        is_admin=closure.is_admin,
        vice_leader=bool(closure.vice_led_celula_ids or closure.training_celula_ids),
        leader=bool(closure.led_celula_ids),
        discipulador=bool(closure.discipulado_ids_direct),
        pastor=bool(closure.rede_ids),
        celula_ids=_sorted(closure.celula_ids),
    )


def require_admin(permission: Optional[FullPermission], message: str | None = None) -> None:
    if permission is None or not permission.is_admin:
        raise InsufficientAuthority(message or "Administrator privileges required")


def has_celula_access(permission: Optional[FullPermission], celula_id: Optional[int]) -> bool:
    if permission is None:
        return False
    if permission.is_admin:
        return True
    return celula_id is not None and celula_id in permission.celula_ids


def require_celula_access(permission: Optional[FullPermission], celula_id: Optional[int]) -> None:
    if not has_celula_access(permission, celula_id):
        raise InsufficientAuthority("You do not have access to this celula")


def has_discipulado_authority(permission: Optional[FullPermission], discipulado_id: int, rede_id: Optional[int]) -> bool:
    """Admin, discipulador of the discipulado, or pastor of its rede."""

    if permission is None:
        return False
    if permission.is_admin or discipulado_id in permission.discipulado_ids:
        return True
    return rede_id is not None and rede_id in permission.rede_ids
