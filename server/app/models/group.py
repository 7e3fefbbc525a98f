from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

GROUP_PERMISSION_FLAGS = (
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
)

GroupInvitationStatus = Enum("PENDING", "ACCEPTED", "DECLINED", name="group_invitation_status")


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    description = Column(String(500), nullable=True)
    owner_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = relationship("Member")
    roles = relationship("GroupRole", back_populates="group", cascade="all, delete-orphan", order_by="GroupRole.id")
    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    invitations = relationship("GroupInvitation", back_populates="group", cascade="all, delete-orphan")


class GroupRole(Base):
    __tablename__ = "group_roles"
    __table_args__ = (UniqueConstraint("group_id", "name", name="uq_group_roles_group_name"),)

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    can_view_transactions = Column(Boolean, default=True, nullable=False)
    can_manage_own_transactions = Column(Boolean, default=False, nullable=False)
    can_manage_group_transactions = Column(Boolean, default=False, nullable=False)
    can_view_categories = Column(Boolean, default=True, nullable=False)
    can_manage_categories = Column(Boolean, default=False, nullable=False)
    can_view_subcategories = Column(Boolean, default=True, nullable=False)
    can_manage_subcategories = Column(Boolean, default=False, nullable=False)
    can_view_budgets = Column(Boolean, default=True, nullable=False)
    can_manage_budgets = Column(Boolean, default=False, nullable=False)
    can_view_accounts = Column(Boolean, default=True, nullable=False)
    can_manage_own_accounts = Column(Boolean, default=False, nullable=False)
    can_manage_group_accounts = Column(Boolean, default=False, nullable=False)
    can_manage_group = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    group = relationship("Group", back_populates="roles")


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "member_id", name="uq_group_members_group_member"),)

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("group_roles.id", ondelete="RESTRICT"), nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    group = relationship("Group", back_populates="members")
    member = relationship("Member")
    role = relationship("GroupRole", lazy="joined")


class GroupInvitation(Base):
    __tablename__ = "group_invitations"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_by_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    role_id = Column(Integer, ForeignKey("group_roles.id", ondelete="CASCADE"), nullable=False)
    status = Column(GroupInvitationStatus, nullable=False, default="PENDING")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    group = relationship("Group", back_populates="invitations")
    member = relationship("Member", foreign_keys=[member_id])
    invited_by = relationship("Member", foreign_keys=[invited_by_id])
    role = relationship("GroupRole")
