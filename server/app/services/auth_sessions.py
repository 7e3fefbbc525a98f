from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.auth.security import (
    PURPOSE_MATRIX_SELECTION,
    PURPOSE_SET_PASSWORD,
    create_access_token,
    create_purpose_token,
    decode_purpose_token,
    decode_token,
    generate_refresh_token,
    verify_password,
)
from app.core.config import settings
from app.core.errors import InsufficientAuthority, TenantMismatch, Unauthenticated
from app.models.member import Member
from app.models.refresh_token import RefreshToken
from app.schemas.auth import LoginResponse, SimplifiedPermissionOut
from app.schemas.matrix import MatrixSummary
from app.schemas.member import MemberOut
from app.services import matrices as matrix_service
from app.services import notifications
from app.services.members import get_own_profile
from app.services.permissions import load_simplified_permission_for_member
from app.services.tenant import member_belongs_to_matrix

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


def issue_refresh_token(db: Session, member_id: int) -> str:
    token = generate_refresh_token()
    db.add(
        RefreshToken(
            token=token,
            member_id=member_id,
            expires_at=_now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )
    )
    db.commit()
    return token


def revoke_refresh_token(db: Session, token: str) -> int:
    revoked = (
        db.query(RefreshToken)
        .filter(RefreshToken.token == token, RefreshToken.is_revoked.is_(False))
        .update({RefreshToken.is_revoked: True}, synchronize_session=False)
    )
    db.commit()
    return revoked


def revoke_all_refresh_tokens(db: Session, member_id: int) -> int:
    revoked = (
        db.query(RefreshToken)
        .filter(RefreshToken.member_id == member_id, RefreshToken.is_revoked.is_(False))
        .update({RefreshToken.is_revoked: True}, synchronize_session=False)
    )
    db.commit()
    return revoked


def validate_refresh_token(db: Session, token: str) -> RefreshToken:
    stored = db.query(RefreshToken).filter(RefreshToken.token == token).first()
    if stored is None:
        raise Unauthenticated("Invalid refresh token")
    if stored.is_revoked:
        raise Unauthenticated("Refresh token revoked")
    if stored.expires_at < _now():
        raise Unauthenticated("Refresh token expired")
    return stored


def simplified_permission_out(db: Session, member_id: int, matrix_id: int) -> SimplifiedPermissionOut:
    permission = load_simplified_permission_for_member(db, member_id, matrix_id)
    return SimplifiedPermissionOut(**asdict(permission))


def open_session(db: Session, member: Member, matrix_id: int) -> LoginResponse:
    """Issue the access/refresh pair for a member bound to one matrix."""

    token = create_access_token(member_id=member.id, matrix_id=matrix_id, email=member.email)
    refresh_token = issue_refresh_token(db, member.id)
    logger.info("session_opened", extra={"member_id": member.id, "matrix_id": matrix_id})
    return LoginResponse(
        token=token,
        refresh_token=refresh_token,
        member=MemberOut.model_validate(get_own_profile(db, member.id)),
        permission=simplified_permission_out(db, member.id, matrix_id),
    )


def _set_password_url(member: Member) -> str:
    token = create_purpose_token(
        member_id=member.id,
        purpose=PURPOSE_SET_PASSWORD,
        expires_minutes=settings.PASSWORD_TOKEN_EXPIRE_MINUTES,
    )
    base = (settings.FRONTEND_URL or "").rstrip("/")
    return f"{base}/auth/set-password?token={token}"


def login(db: Session, email: str, password: str, origin: Optional[str]) -> LoginResponse:
    member = db.query(Member).filter(Member.email == email).first()
    if member is None or not member.is_active:
        raise Unauthenticated("Invalid credentials")
    if not member.has_system_access:
        raise InsufficientAuthority("System access not granted")

    if not member.password:
        logger.info("login_requires_password_setup", extra={"member_id": member.id})
        url = _set_password_url(member)
        notifications.notify_set_password(member, url)
        return LoginResponse(member=MemberOut.model_validate(member), set_password_url=url)

    if not verify_password(password, member.password):
        logger.warning("login_failed", extra={"member_id": member.id})
        raise Unauthenticated("Invalid credentials")

    domain_matrix = matrix_service.find_by_domain(db, origin)
    if domain_matrix is not None:
        if not member_belongs_to_matrix(db, member.id, domain_matrix.id):
            raise TenantMismatch("You do not have access to this matrix")
        return open_session(db, member, domain_matrix.id)

    member_matrices = matrix_service.get_member_matrices(db, member.id)
    if not member_matrices:
        raise InsufficientAuthority("Member is not linked to any matrix")
    if len(member_matrices) == 1:
        return open_session(db, member, member_matrices[0].id)

    selection_token = create_purpose_token(
        member_id=member.id,
        purpose=PURPOSE_MATRIX_SELECTION,
        expires_minutes=settings.MATRIX_SELECTION_EXPIRE_MINUTES,
    )
    return LoginResponse(
        member=MemberOut.model_validate(member),
        matrix_selection_token=selection_token,
        matrices=[MatrixSummary.model_validate(matrix) for matrix in member_matrices],
    )


def select_matrix(db: Session, token: str, matrix_id: int) -> LoginResponse:
    member_id = decode_purpose_token(token, PURPOSE_MATRIX_SELECTION)
    member = db.get(Member, member_id)
    if member is None or not member.is_active:
        raise Unauthenticated("Invalid token")
    if not member_belongs_to_matrix(db, member_id, matrix_id):
        raise TenantMismatch("You do not have access to this matrix")
    return open_session(db, member, matrix_id)


def rotate_refresh_token(db: Session, refresh_token: str, access_token: Optional[str]) -> LoginResponse:
    """Exchange a refresh token for a new pair, keeping the matrix of the presented access token."""

    stored = validate_refresh_token(db, refresh_token)
    if not access_token:
        raise Unauthenticated("Access token required to refresh the session")
    # The access token may already be expired; only its matrix binding matters here.
    claims = decode_token(access_token, verify_exp=False)
    try:
        token_member_id = int(claims["sub"])
        matrix_id = int(claims["matrix_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise Unauthenticated("Invalid token payload") from exc
    if token_member_id != stored.member_id:
        raise Unauthenticated("Refresh token does not belong to this session")

    member = db.get(Member, stored.member_id)
    if member is None or not member.is_active:
        raise Unauthenticated("Inactive member")
    if not member_belongs_to_matrix(db, member.id, matrix_id):
        raise TenantMismatch("Matrix access was revoked. Please log in again.")

    response = open_session(db, member, matrix_id)
    revoke_refresh_token(db, refresh_token)
    return response
