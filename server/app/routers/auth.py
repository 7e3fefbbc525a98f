from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from app.auth.deps import AuthenticatedPrincipal, bearer_scheme, get_current_principal
from app.auth.security import PURPOSE_SET_PASSWORD, decode_purpose_token
from app.core.db import get_db
from app.core.errors import Unauthenticated
from app.models.refresh_token import RefreshToken
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    RefreshTokenRequest,
    SelectMatrixRequest,
    SessionResponse,
    SetPasswordRequest,
)
from app.schemas.member import MemberOut
from app.services import auth_sessions
from app.services.members import get_own_profile, set_password as set_member_password

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    origin: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> LoginResponse:
    return auth_sessions.login(db, str(payload.email), payload.password, origin)


@router.post("/select-matrix", response_model=LoginResponse)
def select_matrix(payload: SelectMatrixRequest, db: Session = Depends(get_db)) -> LoginResponse:
    return auth_sessions.select_matrix(db, payload.token, payload.matrix_id)


@router.get("/refresh", response_model=SessionResponse)
def refresh_session(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> SessionResponse:
    member = get_own_profile(db, principal.member_id)
    return SessionResponse(
        member=MemberOut.model_validate(member),
        permission=auth_sessions.simplified_permission_out(db, principal.member_id, principal.matrix_id),
    )


@router.post("/refresh-token", response_model=LoginResponse)
def refresh_token(
    payload: RefreshTokenRequest,
    credentials=Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> LoginResponse:
    access_token = credentials.credentials if credentials else None
    return auth_sessions.rotate_refresh_token(db, payload.refresh_token, access_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    payload: LogoutRequest,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> MessageResponse:
    if payload.refresh_token:
        stored = db.query(RefreshToken).filter(RefreshToken.token == payload.refresh_token).first()
        if stored is None or stored.member_id != principal.member_id:
            raise Unauthenticated("Invalid refresh token")
        auth_sessions.revoke_refresh_token(db, payload.refresh_token)
    else:
        auth_sessions.revoke_all_refresh_tokens(db, principal.member_id)
    return MessageResponse(message="Logged out")


@router.post("/set-password", response_model=MessageResponse, status_code=status.HTTP_200_OK)
def set_password(payload: SetPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    member_id = decode_purpose_token(payload.token, PURPOSE_SET_PASSWORD)
    set_member_password(db, member_id, payload.password)
    return MessageResponse(message="Password set")
