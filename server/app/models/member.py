from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base

MemberGender = Enum("MALE", "FEMALE", "OTHER", name="member_gender")
MemberMaritalStatus = Enum(
    "SINGLE",
    "MARRIED",
    "COHABITATING",
    "DIVORCED",
    "WIDOWED",
    name="member_marital_status",
)


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(25), nullable=True)
    password = Column(String(255), nullable=True)
    has_system_access = Column(Boolean, default=False, nullable=False)
    has_default_password = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    gender = Column(MemberGender, nullable=True)
    marital_status = Column(MemberMaritalStatus, nullable=True)
    birth_date = Column(Date, nullable=True)
    spouse_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    ministry_position_id = Column(Integer, ForeignKey("ministries.id", ondelete="SET NULL"), nullable=True)
    winner_path_id = Column(Integer, ForeignKey("winner_paths.id", ondelete="SET NULL"), nullable=True)
    celula_id = Column(
        Integer,
        ForeignKey("celulas.id", ondelete="RESTRICT", use_alter=True, name="fk_members_celula_id"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    roles = relationship("Role", secondary="member_roles", back_populates="members")
    matrices = relationship("Matrix", secondary="member_matrices", back_populates="members")
    ministry_position = relationship("Ministry")
    winner_path = relationship("WinnerPath")
    spouse = relationship("Member", remote_side=[id], foreign_keys=[spouse_id])
    celula = relationship("Celula", foreign_keys=[celula_id], back_populates="members")
    led_celulas = relationship("Celula", foreign_keys="Celula.leader_member_id", back_populates="leader")
    vice_led_celulas = relationship("Celula", foreign_keys="Celula.vice_leader_member_id", back_populates="vice_leader")
    training_celulas = relationship(
        "Celula",
        secondary="celula_leaders_in_training",
        back_populates="leaders_in_training",
    )
    discipulados = relationship(
        "Discipulado",
        foreign_keys="Discipulado.discipulador_member_id",
        back_populates="discipulador",
    )
    redes = relationship("Rede", foreign_keys="Rede.pastor_member_id", back_populates="pastor")

    @property
    def ministry_type(self) -> str | None:
        return self.ministry_position.type if self.ministry_position else None
