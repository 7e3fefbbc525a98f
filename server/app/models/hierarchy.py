from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

celula_leaders_in_training = Table(
    "celula_leaders_in_training",
    Base.metadata,
    Column("celula_id", ForeignKey("celulas.id", ondelete="CASCADE"), primary_key=True),
    Column("member_id", ForeignKey("members.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Rede(Base):
    __tablename__ = "redes"
    __table_args__ = (UniqueConstraint("name", "matrix_id", name="uq_redes_name_matrix"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    pastor_member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)

    pastor = relationship("Member", foreign_keys=[pastor_member_id], back_populates="redes")
    discipulados = relationship("Discipulado", back_populates="rede")


class Discipulado(Base):
    __tablename__ = "discipulados"

    id = Column(Integer, primary_key=True)
    rede_id = Column(Integer, ForeignKey("redes.id", ondelete="RESTRICT"), nullable=False, index=True)
    discipulador_member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)

    rede = relationship("Rede", back_populates="discipulados")
    discipulador = relationship("Member", foreign_keys=[discipulador_member_id], back_populates="discipulados")
    celulas = relationship("Celula", back_populates="discipulado")


class Celula(Base):
    __tablename__ = "celulas"
    __table_args__ = (UniqueConstraint("name", "matrix_id", name="uq_celulas_name_matrix"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    weekday = Column(Integer, nullable=True)
    time = Column(String(5), nullable=True)
    leader_member_id = Column(Integer, ForeignKey("members.id", ondelete="RESTRICT"), nullable=False, index=True)
    vice_leader_member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True)
    discipulado_id = Column(Integer, ForeignKey("discipulados.id", ondelete="RESTRICT"), nullable=False, index=True)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    leader = relationship("Member", foreign_keys=[leader_member_id], back_populates="led_celulas")
    vice_leader = relationship("Member", foreign_keys=[vice_leader_member_id], back_populates="vice_led_celulas")
    leaders_in_training = relationship(
        "Member",
        secondary=celula_leaders_in_training,
        back_populates="training_celulas",
        order_by="Member.name",
    )
    discipulado = relationship("Discipulado", back_populates="celulas")
    members = relationship("Member", foreign_keys="Member.celula_id", back_populates="celula", order_by="Member.name")
    reports = relationship("Report", back_populates="celula", cascade="all, delete-orphan", passive_deletes=True)
