from __future__ import annotations

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, UniqueConstraint

from app.core.db import Base

MINISTRY_TYPES = (
    "PRESIDENT_PASTOR",
    "PASTOR",
    "DISCIPULADOR",
    "LEADER",
    "LEADER_IN_TRAINING",
    "MEMBER",
    "REGULAR_ATTENDEE",
    "VISITOR",
)
MinistryTypeColumn = Enum(*MINISTRY_TYPES, name="ministry_type")


class Ministry(Base):
    """A ministry position. Lower ``priority`` means higher authority."""

    __tablename__ = "ministries"
    __table_args__ = (UniqueConstraint("name", "matrix_id", name="uq_ministries_name_matrix"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    type = Column(MinistryTypeColumn, nullable=False, default="MEMBER")
    priority = Column(Integer, nullable=False, default=0)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)


class WinnerPath(Base):
    __tablename__ = "winner_paths"
    __table_args__ = (UniqueConstraint("name", "matrix_id", name="uq_winner_paths_name_matrix"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)
