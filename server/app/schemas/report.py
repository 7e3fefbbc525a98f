from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from app.schemas.member import MemberSummary


class ReportCreate(BaseModel):
    member_ids: List[int] = Field(default_factory=list)
    report_date: Optional[date] = None

    @validator("member_ids")
    def validate_member_ids(cls, value: List[int]) -> List[int]:
        if len(set(value)) != len(value):
            raise ValueError("Duplicate member ids detected")
        return value


class ReportOut(BaseModel):
    id: int
    celula_id: int
    created_at: datetime
    attendees: List[MemberSummary] = []

    class Config:
        from_attributes = True
