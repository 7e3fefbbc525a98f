from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.auth.security import hash_password, verify_password
from app.core.config import settings
from app.core.errors import Conflict, InsufficientAuthority, NotFound, PreconditionFailed, Unauthenticated
from app.models.matrix import Matrix, member_matrices
from app.models.member import Member
from app.models.ministry import Ministry
from app.models.role import Role
from app.schemas.member import MemberCreate, MemberUpdate, PasswordChange
from app.services import ministry_policy, notifications, tenant
from app.services.permissions import FullPermission, has_celula_access, require_celula_access

logger = logging.getLogger(__name__)

MARRIED = "MARRIED"


def _member_query(db: Session):
    return db.query(Member).options(
        selectinload(Member.roles),
        selectinload(Member.ministry_position),
        selectinload(Member.winner_path),
    )


def _reload(db: Session, member_id: int) -> Member:
    return _member_query(db).filter(Member.id == member_id).populate_existing().one()


def list_members(
    db: Session,
    permission: FullPermission,
    *,
    celula_id: Optional[int] = None,
    ministry_types: Optional[Iterable[str]] = None,
) -> list[Member]:
    """Members of the session matrix; non-admins only see members of celulas they reach.

    ``celula_id=0`` selects members without a celula.
    """

    query = _member_query(db).join(member_matrices, member_matrices.c.member_id == Member.id).filter(
        member_matrices.c.matrix_id == permission.matrix_id
    )
    if not permission.is_admin:
        if not permission.celula_ids:
            return []
        query = query.filter(Member.celula_id.in_(permission.celula_ids))
    if celula_id is not None:
        query = query.filter(Member.celula_id.is_(None) if celula_id == 0 else Member.celula_id == celula_id)
    types = [value for value in (ministry_types or []) if value]
    if types:
        query = query.join(Ministry, Ministry.id == Member.ministry_position_id).filter(Ministry.type.in_(types))
    return query.order_by(Member.name.asc()).all()


def get_member(db: Session, member_id: int, permission: FullPermission) -> Member:
    tenant.validate_member_belongs_to_matrix(db, member_id, permission.matrix_id)
    member = _member_query(db).filter(Member.id == member_id).one()
    if member.id != permission.member_id and not has_celula_access(permission, member.celula_id):
        raise InsufficientAuthority("You do not have access to this member")
    return member


def _ensure_email_available(db: Session, email: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not email:
        return
    query = db.query(Member.id).filter(func.lower(Member.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(Member.id != exclude_id)
    if query.first():
        raise Conflict("A member with this email already exists")


def _ensure_can_assign_ministry(db: Session, permission: FullPermission, ministry_id: int) -> None:
    tenant.validate_ministry_belongs_to_matrix(db, ministry_id, permission.matrix_id)
    target = db.get(Ministry, ministry_id)
    assigner = db.get(Ministry, permission.ministry_position_id) if permission.ministry_position_id else None
    ministry_policy.ensure_can_assign_priority(
        assigner_priority=assigner.priority if assigner else None,
        target_priority=target.priority,
        assigner_is_admin=permission.is_admin,
        assigner_ministry_type=permission.ministry_type,
    )


def _resolve_roles(
    db: Session, permission: FullPermission, role_ids: list[int], current: list[Role] | None = None
) -> list[Role]:
    """Load the requested roles; only administrators may change which administrator roles a member holds."""

    for role_id in role_ids:
        tenant.validate_role_belongs_to_matrix(db, role_id, permission.matrix_id)
    roles = db.query(Role).filter(Role.id.in_(role_ids)).all() if role_ids else []
    if not permission.is_admin:
        held = {role.id for role in current or [] if role.is_admin and role.matrix_id == permission.matrix_id}
        requested = {role.id for role in roles if role.is_admin}
        if held != requested:
            raise InsufficientAuthority("Only administrators can grant or revoke administrator roles")
    return roles


def _validate_celula_target(db: Session, permission: FullPermission, celula_id: int) -> None:
    tenant.validate_celula_belongs_to_matrix(db, celula_id, permission.matrix_id)
    require_celula_access(permission, celula_id)


def _load_spouse(db: Session, spouse_id: int, member_id: Optional[int], matrix_id: int) -> Member:
    if member_id is not None and spouse_id == member_id:
        raise PreconditionFailed("A member cannot be their own spouse")
    tenant.validate_member_belongs_to_matrix(db, spouse_id, matrix_id)
    spouse = db.get(Member, spouse_id)
    if spouse.spouse_id is not None and spouse.spouse_id != member_id:
        raise PreconditionFailed("The selected spouse is already married to another member")
    return spouse


def _unlink_spouse(db: Session, member: Member) -> None:
    if member.spouse_id is None:
        return
    previous = db.get(Member, member.spouse_id)
    if previous is not None and previous.spouse_id == member.id:
        previous.spouse_id = None
    member.spouse_id = None


def _link_spouses(member: Member, spouse: Member) -> None:
    member.spouse_id = spouse.id
    member.marital_status = MARRIED
    spouse.spouse_id = member.id
    spouse.marital_status = MARRIED


def create_member(db: Session, payload: MemberCreate, permission: FullPermission) -> Member:
    matrix_id = permission.matrix_id
    email = str(payload.email) if payload.email else None
    if payload.has_system_access and not email:
        raise PreconditionFailed("Email is required for members with system access")
    _ensure_email_available(db, email)

    if payload.ministry_position_id is not None:
        _ensure_can_assign_ministry(db, permission, payload.ministry_position_id)
    if payload.winner_path_id is not None:
        tenant.validate_winner_path_belongs_to_matrix(db, payload.winner_path_id, matrix_id)
    if payload.celula_id is not None:
        _validate_celula_target(db, permission, payload.celula_id)
    elif not permission.is_admin:
        raise InsufficientAuthority("Only administrators can create members outside a celula")
    roles = _resolve_roles(db, permission, payload.role_ids)

    spouse = None
    if payload.spouse_id is not None:
        if payload.marital_status != MARRIED:
            raise PreconditionFailed("A spouse can only be linked to a married member")
        spouse = _load_spouse(db, payload.spouse_id, None, matrix_id)

    uses_default_password = payload.has_system_access and not payload.password
    password = payload.password or (settings.DEFAULT_MEMBER_PASSWORD if payload.has_system_access else None)

    try:
        member = Member(
            name=payload.name.strip(),
            email=email,
            phone=payload.phone,
            has_system_access=payload.has_system_access,
            has_default_password=uses_default_password,
            is_active=payload.is_active,
            gender=payload.gender,
            marital_status=payload.marital_status,
            birth_date=payload.birth_date,
            celula_id=payload.celula_id,
            ministry_position_id=payload.ministry_position_id,
            winner_path_id=payload.winner_path_id,
            password=hash_password(password) if password else None,
        )
        member.roles = roles
        member.matrices = [db.get(Matrix, matrix_id)]
        db.add(member)
        db.flush()
        if spouse is not None:
            _link_spouses(member, spouse)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("member_created", extra={"member_id": member.id, "matrix_id": matrix_id, "by": permission.member_id})
    if member.has_system_access:
        notifications.notify_member_welcome(member, default_password=uses_default_password)
    return _reload(db, member.id)


def update_member(db: Session, member_id: int, payload: MemberUpdate, permission: FullPermission) -> Member:
    matrix_id = permission.matrix_id
    tenant.validate_member_belongs_to_matrix(db, member_id, matrix_id)
    member = _member_query(db).filter(Member.id == member_id).one()
    if not has_celula_access(permission, member.celula_id):
        raise InsufficientAuthority("You do not have access to this member")
    fields = payload.model_fields_set

    email = member.email
    if "email" in fields:
        email = str(payload.email) if payload.email else None
        _ensure_email_available(db, email, exclude_id=member.id)
    has_access = payload.has_system_access if payload.has_system_access is not None else member.has_system_access
    if has_access and not email:
        raise PreconditionFailed("Email is required for members with system access")

    if "ministry_position_id" in fields and payload.ministry_position_id is not None:
        _ensure_can_assign_ministry(db, permission, payload.ministry_position_id)
    if "winner_path_id" in fields and payload.winner_path_id is not None:
        tenant.validate_winner_path_belongs_to_matrix(db, payload.winner_path_id, matrix_id)
    if "celula_id" in fields and payload.celula_id is not None and payload.celula_id != member.celula_id:
        _validate_celula_target(db, permission, payload.celula_id)
    roles = _resolve_roles(db, permission, payload.role_ids, member.roles) if payload.role_ids is not None else None

    marital_status = payload.marital_status if "marital_status" in fields else member.marital_status
    spouse = None
    if "spouse_id" in fields and payload.spouse_id is not None:
        if marital_status != MARRIED:
            raise PreconditionFailed("A spouse can only be linked to a married member")
        spouse = _load_spouse(db, payload.spouse_id, member.id, matrix_id)

    enabling_access = has_access and not member.has_system_access
    email_changed = email != member.email
    assigned_default_password = False

    try:
        if payload.name is not None:
            member.name = payload.name.strip()
        if payload.is_active is not None:
            member.is_active = payload.is_active
        for field in ("phone", "gender", "birth_date", "winner_path_id", "ministry_position_id", "celula_id"):
            if field in fields:
                setattr(member, field, getattr(payload, field))
        member.email = email
        member.has_system_access = has_access
        if "marital_status" in fields:
            member.marital_status = marital_status
        if enabling_access and not member.password:
            member.password = hash_password(settings.DEFAULT_MEMBER_PASSWORD)
            member.has_default_password = True
            assigned_default_password = True

        if roles is not None:
            # Roles held in other matrices are left untouched.
            kept = [role for role in member.roles if role.matrix_id != matrix_id]
            member.roles = kept + roles

        if spouse is not None and spouse.id != member.spouse_id:
            _unlink_spouse(db, member)
            _link_spouses(member, spouse)
        elif ("spouse_id" in fields and payload.spouse_id is None) or marital_status != MARRIED:
            _unlink_spouse(db, member)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("member_updated", extra={"member_id": member.id, "matrix_id": matrix_id, "by": permission.member_id})
    if has_access and email and (enabling_access or email_changed):
        notifications.notify_member_welcome(member, default_password=assigned_default_password)
    return _reload(db, member.id)


def remove_from_celula(db: Session, member_id: int, permission: FullPermission) -> Member:
    tenant.validate_member_belongs_to_matrix(db, member_id, permission.matrix_id)
    member = db.get(Member, member_id)
    if member.celula_id is None:
        raise PreconditionFailed("Member is not in a celula")
    require_celula_access(permission, member.celula_id)
    previous = member.celula_id
    member.celula_id = None
    db.commit()
    logger.info("member_removed_from_celula", extra={"member_id": member_id, "celula_id": previous})
    return _reload(db, member_id)


def get_own_profile(db: Session, member_id: int) -> Member:
    member = _member_query(db).filter(Member.id == member_id).one_or_none()
    if member is None:
        raise NotFound("Member not found")
    return member


def change_own_password(db: Session, member_id: int, payload: PasswordChange) -> None:
    member = db.get(Member, member_id)
    if member is None:
        raise NotFound("Member not found")
    if not member.password:
        raise PreconditionFailed("Member has no password configured")
    if not verify_password(payload.current_password, member.password):
        raise Unauthenticated("Current password is incorrect")
    member.password = hash_password(payload.new_password)
    member.has_default_password = False
    db.commit()
    logger.info("member_password_changed", extra={"member_id": member_id})


def set_password(db: Session, member_id: int, password: str) -> Member:
    member = db.get(Member, member_id)
    if member is None:
        raise Unauthenticated("Invalid token")
    member.password = hash_password(password)
    member.has_default_password = False
    db.commit()
    logger.info("member_password_set", extra={"member_id": member_id})
    return _reload(db, member_id)
