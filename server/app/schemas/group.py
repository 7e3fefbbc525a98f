from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.member import MemberSummary

GroupPermissionFlag = Literal[
    "can_view_transactions",
    "can_manage_own_transactions",
    "can_manage_group_transactions",
    "can_view_categories",
    "can_manage_categories",
    "can_view_subcategories",
    "can_manage_subcategories",
    "can_view_budgets",
    "can_manage_budgets",
    "can_view_accounts",
    "can_manage_own_accounts",
    "can_manage_group_accounts",
    "can_manage_group",
]


class GroupPermissions(BaseModel):
    can_view_transactions: bool = False
    can_manage_own_transactions: bool = False
    can_manage_group_transactions: bool = False
    can_view_categories: bool = False
    can_manage_categories: bool = False
    can_view_subcategories: bool = False
    can_manage_subcategories: bool = False
    can_view_budgets: bool = False
    can_manage_budgets: bool = False
    can_view_accounts: bool = False
    can_manage_own_accounts: bool = False
    can_manage_group_accounts: bool = False
    can_manage_group: bool = False

    class Config:
        from_attributes = True


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)


class GroupOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    owner_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class GroupRoleCreate(GroupPermissions):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)


class GroupRoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    can_view_transactions: Optional[bool] = None
    can_manage_own_transactions: Optional[bool] = None
    can_manage_group_transactions: Optional[bool] = None
    can_view_categories: Optional[bool] = None
    can_manage_categories: Optional[bool] = None
    can_view_subcategories: Optional[bool] = None
    can_manage_subcategories: Optional[bool] = None
    can_view_budgets: Optional[bool] = None
    can_manage_budgets: Optional[bool] = None
    can_view_accounts: Optional[bool] = None
    can_manage_own_accounts: Optional[bool] = None
    can_manage_group_accounts: Optional[bool] = None
    can_manage_group: Optional[bool] = None


class GroupRoleOut(GroupPermissions):
    id: int
    group_id: int
    name: str
    description: Optional[str] = None


class GroupMemberOut(BaseModel):
    id: int
    group_id: int
    member: MemberSummary
    role: GroupRoleOut
    joined_at: datetime

    class Config:
        from_attributes = True


class GroupInviteRequest(BaseModel):
    member_id: int = Field(..., ge=1)
    role_id: int = Field(..., ge=1)


class GroupMemberRoleUpdate(BaseModel):
    role_id: int = Field(..., ge=1)


class GroupInvitationOut(BaseModel):
    id: int
    group: GroupOut
    role: GroupRoleOut
    invited_by: MemberSummary
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class GroupDetail(GroupOut):
    members: List[GroupMemberOut] = []
    my_permissions: Optional[GroupPermissions] = None
