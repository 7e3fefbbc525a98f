from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.matrix import MatrixSummary
from app.schemas.member import MemberOut


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SelectMatrixRequest(BaseModel):
    token: str
    matrix_id: int = Field(..., ge=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class SetPasswordRequest(BaseModel):
    token: str
    password: str = Field(..., min_length=8, max_length=128)


class SimplifiedPermissionOut(BaseModel):
    is_admin: bool = False
    vice_leader: bool = False
    leader: bool = False
    discipulador: bool = False
    pastor: bool = False
    celula_ids: List[int] = Field(default_factory=list)

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    member: Optional[MemberOut] = None
    permission: Optional[SimplifiedPermissionOut] = None
    set_password_url: Optional[str] = None
    matrix_selection_token: Optional[str] = None
    matrices: List[MatrixSummary] = Field(default_factory=list)


class SessionResponse(BaseModel):
    member: MemberOut
    permission: SimplifiedPermissionOut


class MessageResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
