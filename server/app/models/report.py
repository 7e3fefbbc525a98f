from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table
from sqlalchemy.orm import relationship

from app.core.db import Base

report_attendances = Table(
    "report_attendances",
    Base.metadata,
    Column("report_id", ForeignKey("reports.id", ondelete="CASCADE"), primary_key=True),
    Column("member_id", ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
)


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True)
    celula_id = Column(Integer, ForeignKey("celulas.id", ondelete="CASCADE"), nullable=False, index=True)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    celula = relationship("Celula", back_populates="reports")
    attendees = relationship("Member", secondary=report_attendances, order_by="Member.name")
