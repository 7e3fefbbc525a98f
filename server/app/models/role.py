from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

member_roles = Table(
    "member_roles",
    Base.metadata,
    Column("member_id", ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("name", "matrix_id", name="uq_roles_name_matrix"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(64), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)

    members = relationship("Member", secondary=member_roles, back_populates="roles")
