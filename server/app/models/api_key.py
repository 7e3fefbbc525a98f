from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base


class ApiKey(Base):
    """Credential for server-to-server callers of the external endpoints of one matrix."""

    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    key = Column(String(128), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    matrix_id = Column(Integer, ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_used_at = Column(DateTime, nullable=True)

    created_by = relationship("Member", lazy="joined")

    @property
    def key_preview(self) -> str:
        return f"{self.key[:10]}...{self.key[-4:]}"
