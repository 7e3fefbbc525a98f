"""Authority inside a finance group.

Groups are not matrix scoped. A member's rights in a group come from the
GroupRole attached to their membership; the group owner always holds every
flag regardless of the role they are attached to.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InsufficientAuthority, NotFound
from app.models.group import GROUP_PERMISSION_FLAGS, Group, GroupMember, GroupRole

FULL_ACCESS: dict[str, bool] = {flag: True for flag in GROUP_PERMISSION_FLAGS}

DEFAULT_ROLES: tuple[dict, ...] = (
    {
        "name": "Dono",
        "description": "Acesso total a todas as funcionalidades",
        **FULL_ACCESS,
    },
    {
        "name": "Membro",
        "description": "Pode ver tudo e gerenciar seus próprios dados",
        **{flag: flag.startswith("can_view") for flag in GROUP_PERMISSION_FLAGS},
        "can_manage_own_transactions": True,
        "can_manage_own_accounts": True,
    },
    {
        "name": "Leitor",
        "description": "Acesso somente leitura a todas as funcionalidades",
        **{flag: flag.startswith("can_view") for flag in GROUP_PERMISSION_FLAGS},
    },
)
OWNER_ROLE_NAME = DEFAULT_ROLES[0]["name"]


def role_flags(role: GroupRole) -> dict[str, bool]:
    return {flag: bool(getattr(role, flag)) for flag in GROUP_PERMISSION_FLAGS}


def get_group_or_404(db: Session, group_id: int) -> Group:
    group = db.get(Group, group_id)
    if group is None:
        raise NotFound("Group not found", group_id=group_id)
    return group


def _membership(db: Session, group_id: int, member_id: int) -> Optional[GroupMember]:
    return (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.member_id == member_id)
        .one_or_none()
    )


def is_member(db: Session, group_id: int, member_id: int) -> bool:
    return _membership(db, group_id, member_id) is not None


def get_user_permissions(db: Session, group_id: int, member_id: int) -> Optional[dict[str, bool]]:
    """Granular flags of a member in a group, or None when they are not a member."""

    group = db.get(Group, group_id)
    if group is None:
        return None
    if group.owner_id == member_id:
        return dict(FULL_ACCESS)
    membership = _membership(db, group_id, member_id)
    if membership is None:
        return None
    return role_flags(membership.role)


def check_manage_group_permission(db: Session, group_id: int, member_id: int) -> bool:
    permissions = get_user_permissions(db, group_id, member_id)
    return bool(permissions and permissions["can_manage_group"])


def require_group_flag(db: Session, group_id: int, member_id: int, flag: str) -> dict[str, bool]:
    """Deny unless the member belongs to the group and holds ``flag``."""

    if flag not in GROUP_PERMISSION_FLAGS:
        raise ValueError(f"Unknown group permission {flag!r}")
    get_group_or_404(db, group_id)
    permissions = get_user_permissions(db, group_id, member_id)
    if permissions is None:
        raise InsufficientAuthority("You are not a member of this group")
    if not permissions[flag]:
        raise InsufficientAuthority("You do not have permission for this action in the group", permission=flag)
    return permissions
