from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import AuthenticatedPrincipal, get_current_principal, require_group_permission
from app.core.db import get_db
from app.models.category import Category, Subcategory
from app.models.group import Group, GroupInvitation, GroupMember, GroupRole
from app.schemas.category import CategoryCreate, CategoryOut, SubcategoryCreate, SubcategoryOut
from app.schemas.group import (
    GroupCreate,
    GroupDetail,
    GroupInvitationOut,
    GroupInviteRequest,
    GroupMemberOut,
    GroupMemberRoleUpdate,
    GroupOut,
    GroupPermissions,
    GroupRoleCreate,
    GroupRoleOut,
    GroupRoleUpdate,
    GroupUpdate,
)
from app.services import categories as category_service
from app.services import groups as group_service
from app.services.group_permissions import get_user_permissions

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("", response_model=list[GroupOut])
def list_my_groups(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[Group]:
    return group_service.list_groups_for_member(db, principal.member_id)


@router.post("", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: GroupCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Group:
    return group_service.create_group(db, payload, principal.member_id)


@router.get("/invitations", response_model=list[GroupInvitationOut])
def list_my_invitations(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[GroupInvitation]:
    return group_service.list_pending_invitations(db, principal.member_id)


@router.post("/invitations/{invitation_id}/accept", response_model=GroupMemberOut)
def accept_invitation(
    invitation_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupMember:
    return group_service.accept_invitation(db, invitation_id, principal.member_id)


@router.post("/invitations/{invitation_id}/decline", status_code=status.HTTP_204_NO_CONTENT)
def decline_invitation(
    invitation_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    group_service.decline_invitation(db, invitation_id, principal.member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_invitation(
    invitation_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    group_service.cancel_invitation(db, invitation_id, principal.member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{group_id}", response_model=GroupDetail)
def get_group(
    group_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupDetail:
    group = group_service.get_group(db, group_id, principal.member_id)
    members = group_service.list_group_members(db, group_id, principal.member_id)
    detail = GroupDetail.model_validate(group)
    detail.members = [GroupMemberOut.model_validate(item) for item in members]
    permissions = get_user_permissions(db, group_id, principal.member_id)
    detail.my_permissions = GroupPermissions(**permissions) if permissions else None
    return detail


@router.put("/{group_id}", response_model=GroupOut)
def update_group(
    group_id: int,
    payload: GroupUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Group:
    return group_service.update_group(db, group_id, payload, principal.member_id)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(
    group_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    group_service.delete_group(db, group_id, principal.member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{group_id}/permissions", response_model=GroupPermissions)
def get_my_permissions(
    group_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupPermissions:
    group_service.get_group(db, group_id, principal.member_id)
    return GroupPermissions(**get_user_permissions(db, group_id, principal.member_id))


# Roles


@router.get("/{group_id}/roles", response_model=list[GroupRoleOut])
def list_roles(
    group_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[GroupRole]:
    return group_service.list_group_roles(db, group_id, principal.member_id)


@router.post("/{group_id}/roles", response_model=GroupRoleOut, status_code=status.HTTP_201_CREATED)
def create_role(
    group_id: int,
    payload: GroupRoleCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupRole:
    return group_service.create_group_role(db, group_id, payload, principal.member_id)


@router.put("/{group_id}/roles/{role_id}", response_model=GroupRoleOut)
def update_role(
    group_id: int,
    role_id: int,
    payload: GroupRoleUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupRole:
    return group_service.update_group_role(db, group_id, role_id, payload, principal.member_id)


@router.delete("/{group_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    group_id: int,
    role_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    group_service.delete_group_role(db, group_id, role_id, principal.member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Members


@router.get("/{group_id}/members", response_model=list[GroupMemberOut])
def list_members(
    group_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[GroupMember]:
    return group_service.list_group_members(db, group_id, principal.member_id)


@router.post("/{group_id}/members", response_model=GroupInvitationOut, status_code=status.HTTP_201_CREATED)
def invite_member(
    group_id: int,
    payload: GroupInviteRequest,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupInvitation:
    return group_service.invite_member(db, group_id, payload, principal.member_id)


@router.put("/{group_id}/members/{member_id}/role", response_model=GroupMemberOut)
def change_member_role(
    group_id: int,
    member_id: int,
    payload: GroupMemberRoleUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> GroupMember:
    return group_service.change_member_role(db, group_id, member_id, payload.role_id, principal.member_id)


@router.delete("/{group_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    group_id: int,
    member_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    group_service.remove_member(db, group_id, member_id, principal.member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Group categories


@router.get(
    "/{group_id}/categories",
    response_model=list[CategoryOut],
    dependencies=[Depends(require_group_permission("can_view_categories"))],
)
def list_group_categories(
    group_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[Category]:
    return category_service.list_categories(db, principal.member_id, group_id)


@router.post(
    "/{group_id}/categories",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_group_permission("can_manage_categories"))],
)
def create_group_category(
    group_id: int,
    payload: CategoryCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Category:
    payload = payload.model_copy(update={"group_id": group_id})
    return category_service.create_category(db, payload, principal.member_id)


@router.get(
    "/{group_id}/subcategories",
    response_model=list[SubcategoryOut],
    dependencies=[Depends(require_group_permission("can_view_subcategories"))],
)
def list_group_subcategories(
    group_id: int,
    category_id: int | None = Query(default=None, ge=1),
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[Subcategory]:
    return category_service.list_subcategories(db, principal.member_id, category_id, group_id)


@router.post(
    "/{group_id}/subcategories",
    response_model=SubcategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_group_permission("can_manage_subcategories"))],
)
def create_group_subcategory(
    group_id: int,
    payload: SubcategoryCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Subcategory:
    payload = payload.model_copy(update={"group_id": group_id})
    return category_service.create_subcategory(db, payload, principal.member_id)
