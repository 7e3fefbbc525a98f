from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, validator

from app.schemas.member import MemberSummary


class RedeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    pastor_member_id: Optional[int] = Field(None, ge=1)


class RedeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    pastor_member_id: Optional[int] = Field(None, ge=1)


class RedeOut(BaseModel):
    id: int
    name: str
    pastor: Optional[MemberSummary] = None

    class Config:
        from_attributes = True


class DiscipuladoCreate(BaseModel):
    rede_id: int = Field(..., ge=1)
    discipulador_member_id: Optional[int] = Field(None, ge=1)


class DiscipuladoUpdate(BaseModel):
    rede_id: Optional[int] = Field(None, ge=1)
    discipulador_member_id: Optional[int] = Field(None, ge=1)


class DiscipuladoOut(BaseModel):
    id: int
    rede_id: int
    discipulador: Optional[MemberSummary] = None

    class Config:
        from_attributes = True


class CelulaCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    leader_member_id: int = Field(..., ge=1)
    discipulado_id: int = Field(..., ge=1)
    vice_leader_member_id: Optional[int] = Field(None, ge=1)
    weekday: int
    time: str


class CelulaUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    leader_member_id: Optional[int] = Field(None, ge=1)
    vice_leader_member_id: Optional[int] = Field(None, ge=1)
    discipulado_id: Optional[int] = Field(None, ge=1)
    weekday: Optional[int] = None
    time: Optional[str] = None


class CelulaOut(BaseModel):
    id: int
    name: str
    weekday: Optional[int] = None
    time: Optional[str] = None
    discipulado_id: int
    leader: Optional[MemberSummary] = None
    vice_leader: Optional[MemberSummary] = None
    leaders_in_training: List[MemberSummary] = []

    class Config:
        from_attributes = True


class CelulaMultiplyRequest(BaseModel):
    member_ids: List[int] = Field(..., min_length=1)
    new_celula_name: str = Field(..., min_length=1, max_length=150)
    new_leader_member_id: int = Field(..., ge=1)
    old_leader_member_id: Optional[int] = Field(None, ge=1)

    @validator("member_ids")
    def validate_member_ids(cls, value: List[int]) -> List[int]:
        if len(set(value)) != len(value):
            raise ValueError("Duplicate member ids detected")
        return value


class CelulaMultiplyResult(BaseModel):
    new_celula: CelulaOut
    moved_count: int
    moved_member_ids: List[int]
