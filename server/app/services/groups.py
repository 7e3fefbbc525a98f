from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.core.errors import Conflict, InsufficientAuthority, NotFound, PreconditionFailed
from app.models.group import GROUP_PERMISSION_FLAGS, Group, GroupInvitation, GroupMember, GroupRole
from app.models.member import Member
from app.schemas.group import (
    GroupCreate,
    GroupInviteRequest,
    GroupRoleCreate,
    GroupRoleUpdate,
    GroupUpdate,
)
from app.services import notifications
from app.services.group_permissions import (
    DEFAULT_ROLES,
    OWNER_ROLE_NAME,
    check_manage_group_permission,
    get_group_or_404,
    is_member,
)

logger = logging.getLogger(__name__)


def _require_member(db: Session, group: Group, member_id: int) -> None:
    if group.owner_id != member_id and not is_member(db, group.id, member_id):
        raise InsufficientAuthority("You are not a member of this group")


def _require_manage(db: Session, group_id: int, member_id: int, message: str) -> None:
    if not check_manage_group_permission(db, group_id, member_id):
        raise InsufficientAuthority(message)


# --- groups -----------------------------------------------------------------


def list_groups_for_member(db: Session, member_id: int) -> list[Group]:
    member_of = db.query(GroupMember.group_id).filter(GroupMember.member_id == member_id)
    return (
        db.query(Group)
        .filter(or_(Group.owner_id == member_id, Group.id.in_(member_of)))
        .order_by(Group.created_at.desc(), Group.id.desc())
        .all()
    )


def get_group(db: Session, group_id: int, member_id: int) -> Group:
    group = get_group_or_404(db, group_id)
    _require_member(db, group, member_id)
    return group


def list_group_members(db: Session, group_id: int, member_id: int) -> list[GroupMember]:
    get_group(db, group_id, member_id)
    return (
        db.query(GroupMember)
        .options(selectinload(GroupMember.member), selectinload(GroupMember.role))
        .filter(GroupMember.group_id == group_id)
        .order_by(GroupMember.joined_at.asc(), GroupMember.id.asc())
        .all()
    )


def create_group(db: Session, payload: GroupCreate, owner_id: int) -> Group:
    """Create a group with its default roles and the owner seated in the owner role."""

    try:
        group = Group(name=payload.name.strip(), description=payload.description, owner_id=owner_id)
        db.add(group)
        db.flush()
        owner_role = None
        for definition in DEFAULT_ROLES:
            role = GroupRole(group_id=group.id, **definition)
            db.add(role)
            if definition["name"] == OWNER_ROLE_NAME:
                owner_role = role
        db.flush()
        db.add(GroupMember(group_id=group.id, member_id=owner_id, role_id=owner_role.id))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("group_created", extra={"group_id": group.id, "owner_id": owner_id})
    return group


def update_group(db: Session, group_id: int, payload: GroupUpdate, member_id: int) -> Group:
    group = get_group_or_404(db, group_id)
    _require_manage(db, group_id, member_id, "You do not have permission to update this group")
    if payload.name is not None:
        group.name = payload.name.strip()
    if "description" in payload.model_fields_set:
        group.description = payload.description
    db.commit()
    db.refresh(group)
    logger.info("group_updated", extra={"group_id": group_id, "by": member_id})
    return group


def delete_group(db: Session, group_id: int, member_id: int) -> None:
    group = get_group_or_404(db, group_id)
    if group.owner_id != member_id:
        raise InsufficientAuthority("Only the group owner can delete the group")
    db.delete(group)
    db.commit()
    logger.info("group_deleted", extra={"group_id": group_id, "by": member_id})


# --- roles ------------------------------------------------------------------


def list_group_roles(db: Session, group_id: int, member_id: int) -> list[GroupRole]:
    get_group(db, group_id, member_id)
    return db.query(GroupRole).filter(GroupRole.group_id == group_id).order_by(GroupRole.id.asc()).all()


def _get_role(db: Session, group_id: int, role_id: int) -> GroupRole:
    role = db.get(GroupRole, role_id)
    if role is None or role.group_id != group_id:
        raise NotFound("Group role not found", role_id=role_id)
    return role


def _ensure_unique_role_name(db: Session, group_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.query(GroupRole.id).filter(GroupRole.group_id == group_id, GroupRole.name == name)
    if exclude_id is not None:
        query = query.filter(GroupRole.id != exclude_id)
    if query.first():
        raise Conflict("A role with this name already exists in the group")


def create_group_role(db: Session, group_id: int, payload: GroupRoleCreate, member_id: int) -> GroupRole:
    get_group_or_404(db, group_id)
    _require_manage(db, group_id, member_id, "You do not have permission to manage roles in this group")
    name = payload.name.strip()
    _ensure_unique_role_name(db, group_id, name)
    role = GroupRole(
        group_id=group_id,
        name=name,
        description=payload.description,
        **{flag: getattr(payload, flag) for flag in GROUP_PERMISSION_FLAGS},
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    logger.info("group_role_created", extra={"group_id": group_id, "role_id": role.id, "by": member_id})
    return role


def update_group_role(
    db: Session, group_id: int, role_id: int, payload: GroupRoleUpdate, member_id: int
) -> GroupRole:
    get_group_or_404(db, group_id)
    _require_manage(db, group_id, member_id, "You do not have permission to manage roles in this group")
    role = _get_role(db, group_id, role_id)
    if payload.name is not None:
        name = payload.name.strip()
        _ensure_unique_role_name(db, group_id, name, exclude_id=role.id)
        role.name = name
    if "description" in payload.model_fields_set:
        role.description = payload.description
    for flag in GROUP_PERMISSION_FLAGS:
        value = getattr(payload, flag)
        if value is not None:
            setattr(role, flag, value)
    db.commit()
    db.refresh(role)
    logger.info("group_role_updated", extra={"group_id": group_id, "role_id": role_id, "by": member_id})
    return role


def delete_group_role(db: Session, group_id: int, role_id: int, member_id: int) -> None:
    get_group_or_404(db, group_id)
    _require_manage(db, group_id, member_id, "You do not have permission to manage roles in this group")
    role = _get_role(db, group_id, role_id)
    in_use = db.query(GroupMember.id).filter(GroupMember.role_id == role.id).count()
    if in_use:
        raise PreconditionFailed(f"Cannot delete role. {in_use} member(s) are using this role.", members=in_use)
    db.delete(role)
    db.commit()
    logger.info("group_role_deleted", extra={"group_id": group_id, "role_id": role_id, "by": member_id})


# --- members ----------------------------------------------------------------


def invite_member(db: Session, group_id: int, payload: GroupInviteRequest, member_id: int) -> GroupInvitation:
    group = get_group_or_404(db, group_id)
    _require_manage(db, group_id, member_id, "You do not have permission to manage members in this group")

    invitee = db.get(Member, payload.member_id)
    if invitee is None or not invitee.is_active:
        raise NotFound("Member not found", member_id=payload.member_id)
    if invitee.id == group.owner_id or is_member(db, group_id, invitee.id):
        raise Conflict("Member is already part of this group")
    pending = (
        db.query(GroupInvitation.id)
        .filter(
            GroupInvitation.group_id == group_id,
            GroupInvitation.member_id == invitee.id,
            GroupInvitation.status == "PENDING",
        )
        .first()
    )
    if pending:
        raise Conflict("Member already has a pending invitation to this group")
    _get_role(db, group_id, payload.role_id)

    invitation = GroupInvitation(
        group_id=group_id,
        member_id=invitee.id,
        invited_by_id=member_id,
        role_id=payload.role_id,
        status="PENDING",
    )
    db.add(invitation)
    db.commit()
    db.refresh(invitation)
    logger.info(
        "group_invitation_created",
        extra={"group_id": group_id, "member_id": invitee.id, "invited_by": member_id},
    )
    notifications.notify_group_invitation(group, invitee, db.get(Member, member_id))
    return invitation


def change_member_role(db: Session, group_id: int, target_member_id: int, role_id: int, member_id: int) -> GroupMember:
    group = get_group_or_404(db, group_id)
    _require_manage(db, group_id, member_id, "You do not have permission to manage members in this group")
    if target_member_id == group.owner_id:
        raise PreconditionFailed("The role of the group owner cannot be changed")
    membership = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.member_id == target_member_id)
        .one_or_none()
    )
    if membership is None:
        raise NotFound("Member is not part of this group", member_id=target_member_id)
    membership.role_id = _get_role(db, group_id, role_id).id
    db.commit()
    db.refresh(membership)
    logger.info(
        "group_member_role_changed",
        extra={"group_id": group_id, "member_id": target_member_id, "role_id": role_id, "by": member_id},
    )
    return membership


def remove_member(db: Session, group_id: int, target_member_id: int, member_id: int) -> None:
    group = get_group_or_404(db, group_id)
    if target_member_id != member_id:
        _require_manage(db, group_id, member_id, "You do not have permission to remove members from this group")
    if target_member_id == group.owner_id:
        raise PreconditionFailed("The group owner cannot be removed")
    removed = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.member_id == target_member_id)
        .delete(synchronize_session=False)
    )
    if not removed:
        raise NotFound("Member is not part of this group", member_id=target_member_id)
    db.commit()
    logger.info("group_member_removed", extra={"group_id": group_id, "member_id": target_member_id, "by": member_id})


# --- invitations ------------------------------------------------------------


def list_pending_invitations(db: Session, member_id: int) -> list[GroupInvitation]:
    return (
        db.query(GroupInvitation)
        .options(
            selectinload(GroupInvitation.group),
            selectinload(GroupInvitation.role),
            selectinload(GroupInvitation.invited_by),
        )
        .filter(GroupInvitation.member_id == member_id, GroupInvitation.status == "PENDING")
        .order_by(GroupInvitation.created_at.desc(), GroupInvitation.id.desc())
        .all()
    )


def _pending_invitation(db: Session, invitation_id: int, member_id: int) -> GroupInvitation:
    invitation = (
        db.query(GroupInvitation)
        .filter(
            GroupInvitation.id == invitation_id,
            GroupInvitation.member_id == member_id,
            GroupInvitation.status == "PENDING",
        )
        .one_or_none()
    )
    if invitation is None:
        raise NotFound("Invitation not found or already processed", invitation_id=invitation_id)
    return invitation


def accept_invitation(db: Session, invitation_id: int, member_id: int) -> GroupMember:
    invitation = _pending_invitation(db, invitation_id, member_id)
    try:
        membership = GroupMember(group_id=invitation.group_id, member_id=member_id, role_id=invitation.role_id)
        db.add(membership)
        invitation.status = "ACCEPTED"
        invitation.responded_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(membership)
    logger.info("group_invitation_accepted", extra={"group_id": invitation.group_id, "member_id": member_id})
    return membership


def decline_invitation(db: Session, invitation_id: int, member_id: int) -> None:
    invitation = _pending_invitation(db, invitation_id, member_id)
    invitation.status = "DECLINED"
    invitation.responded_at = datetime.utcnow()
    db.commit()
    logger.info("group_invitation_declined", extra={"group_id": invitation.group_id, "member_id": member_id})


def cancel_invitation(db: Session, invitation_id: int, member_id: int) -> None:
    invitation = db.get(GroupInvitation, invitation_id)
    if invitation is None:
        raise NotFound("Invitation not found", invitation_id=invitation_id)
    _require_manage(db, invitation.group_id, member_id, "You do not have permission to cancel this invitation")
    if invitation.status != "PENDING":
        raise PreconditionFailed("Cannot cancel an invitation that has already been processed")
    db.delete(invitation)
    db.commit()
    logger.info("group_invitation_cancelled", extra={"invitation_id": invitation_id, "by": member_id})
