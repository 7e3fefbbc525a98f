from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from app.core.db import Base

member_matrices = Table(
    "member_matrices",
    Base.metadata,
    Column("member_id", ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
    Column("matrix_id", ForeignKey("matrices.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Matrix(Base):
    __tablename__ = "matrices"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    domains = relationship("MatrixDomain", back_populates="matrix", cascade="all, delete-orphan", lazy="selectin")
    members = relationship("Member", secondary=member_matrices, back_populates="matrices")


class MatrixDomain(Base):
    __tablename__ = "matrix_domains"

    id = Column(Integer, primary_key=True)
    domain = Column(String(255), unique=True, nullable=False, index=True)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    matrix = relationship("Matrix", back_populates="domains")
