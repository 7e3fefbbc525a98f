from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.schemas.config import MinistryOut, RoleOut, WinnerPathOut

MemberGender = Literal["MALE", "FEMALE", "OTHER"]
MemberMaritalStatus = Literal["SINGLE", "MARRIED", "COHABITATING", "DIVORCED", "WIDOWED"]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class MemberSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None

    class Config:
        from_attributes = True


class MemberOut(MemberSummary):
    phone: Optional[str] = None
    has_system_access: bool
    has_default_password: bool = False
    is_active: bool = True
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    birth_date: Optional[date] = None
    spouse_id: Optional[int] = None
    celula_id: Optional[int] = None
    ministry_position: Optional[MinistryOut] = None
    winner_path: Optional[WinnerPathOut] = None
    roles: List[RoleOut] = []


class MemberBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=25)
    has_system_access: bool = False
    is_active: bool = True
    gender: Optional[MemberGender] = None
    marital_status: Optional[MemberMaritalStatus] = None
    birth_date: Optional[date] = None
    spouse_id: Optional[int] = Field(None, ge=1)
    celula_id: Optional[int] = Field(None, ge=1)
    ministry_position_id: Optional[int] = Field(None, ge=1)
    winner_path_id: Optional[int] = Field(None, ge=1)
    role_ids: List[int] = Field(default_factory=list)

    @validator("phone")
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @validator("role_ids")
    def validate_role_ids(cls, value: List[int]) -> List[int]:
        if len(set(value)) != len(value):
            raise ValueError("Duplicate role ids detected")
        return value


class MemberCreate(MemberBase):
    password: Optional[str] = Field(None, min_length=8, max_length=128)


class MemberUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=25)
    has_system_access: Optional[bool] = None
    is_active: Optional[bool] = None
    gender: Optional[MemberGender] = None
    marital_status: Optional[MemberMaritalStatus] = None
    birth_date: Optional[date] = None
    spouse_id: Optional[int] = Field(None, ge=1)
    celula_id: Optional[int] = Field(None, ge=1)
    ministry_position_id: Optional[int] = Field(None, ge=1)
    winner_path_id: Optional[int] = Field(None, ge=1)
    role_ids: Optional[List[int]] = None

    @validator("phone")
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)
