from dataclasses import dataclass

from fastapi import Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.auth.security import decode_token
from app.core.db import get_db
from app.core.errors import InsufficientAuthority, TenantMismatch, Unauthenticated
from app.models.api_key import ApiKey
from app.models.member import Member
from app.schemas.group import GroupPermissionFlag
from app.services.api_keys import authenticate_api_key
from app.services.group_permissions import require_group_flag
from app.services.permissions import FullPermission, load_permission_for_member, require_admin
from app.services.tenant import member_belongs_to_matrix

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    member_id: int
    matrix_id: int
    email: str | None = None


def get_token_claims(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> dict:
    if not credentials:
        raise Unauthenticated()
    return decode_token(credentials.credentials)


def require_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    db: Session = Depends(get_db),
) -> ApiKey:
    """Credential for external integrations; independent of member sessions."""

    return authenticate_api_key(db, x_api_key)


def get_current_principal(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> AuthenticatedPrincipal:
    """Token gate: only full session tokens bound to a matrix get through."""

    if claims.get("purpose"):
        raise Unauthenticated("Token cannot be used for this request")

    try:
        member_id = int(claims["sub"])
        matrix_id = int(claims["matrix_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise Unauthenticated("Invalid token payload") from exc

    member = db.get(Member, member_id)
    if member is None or not member.is_active or not member.has_system_access:
        raise Unauthenticated("Inactive member")
    if not member_belongs_to_matrix(db, member_id, matrix_id):
        raise TenantMismatch("Matrix access revoked")
    return AuthenticatedPrincipal(member_id=member_id, matrix_id=matrix_id, email=member.email)


def get_current_member(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Member:
    return db.get(Member, principal.member_id)


def get_permission(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> FullPermission:
    """Permission gate. Never fails; an unrelated member resolves to an empty permission."""

    return load_permission_for_member(db, principal.member_id, principal.matrix_id)


def require_admin_permission(permission: FullPermission = Depends(get_permission)) -> FullPermission:
    require_admin(permission)
    return permission



async def _resolve_group_id(request: Request) -> int | None:
    raw = request.path_params.get("group_id") or request.query_params.get("group_id")
    if raw is None and request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            raw = body.get("group_id")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def require_group_permission(flag: GroupPermissionFlag):
    """Dependency factory: the caller must belong to the addressed group and hold ``flag`` there."""

    async def dependency(
        request: Request,
        principal: AuthenticatedPrincipal = Depends(get_current_principal),
        db: Session = Depends(get_db),
    ) -> dict[str, bool]:
        group_id = await _resolve_group_id(request)
        if group_id is None:
            raise InsufficientAuthority("Group ID not provided")
        return await run_in_threadpool(require_group_flag, db, group_id, principal.member_id, flag)

    return dependency
