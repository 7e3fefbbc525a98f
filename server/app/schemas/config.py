from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.services.ministry_policy import MinistryType


class MinistryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: MinistryType = MinistryType.MEMBER


class MinistryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    type: Optional[MinistryType] = None


class MinistryOut(BaseModel):
    id: int
    name: str
    type: str
    priority: int

    class Config:
        from_attributes = True


class PriorityUpdate(BaseModel):
    priority: int = Field(..., ge=0)


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    is_admin: bool = False


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    is_admin: Optional[bool] = None


class RoleOut(BaseModel):
    id: int
    name: str
    is_admin: bool

    class Config:
        from_attributes = True


class WinnerPathCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)


class WinnerPathUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)


class WinnerPathOut(BaseModel):
    id: int
    name: str
    priority: int

    class Config:
        from_attributes = True


class ApiKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)


class ApiKeyCreator(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ApiKeyOut(BaseModel):
    id: int
    name: str
    key_preview: str
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None
    created_by: Optional[ApiKeyCreator] = None

    class Config:
        from_attributes = True


class ApiKeyCreated(ApiKeyOut):
    """Only response that ever carries the full key."""

    key: str
