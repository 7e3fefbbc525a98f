from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.auth.deps import AuthenticatedPrincipal, get_current_principal, get_permission
from app.core.db import get_db
from app.models.member import Member
from app.schemas.auth import MessageResponse
from app.schemas.member import MemberCreate, MemberOut, MemberUpdate, PasswordChange
from app.services import members as member_service
from app.services.permissions import FullPermission

router = APIRouter(prefix="/members", tags=["members"])


@router.get("", response_model=list[MemberOut])
def list_members(
    *,
    celula_id: int | None = Query(default=None, ge=0, description="0 lists members without a celula"),
    ministry_type: list[str] | None = Query(default=None),
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Member]:
    return member_service.list_members(db, permission, celula_id=celula_id, ministry_types=ministry_type)


@router.get("/me", response_model=MemberOut)
def get_me(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Member:
    return member_service.get_own_profile(db, principal.member_id)


@router.put("/me/password", response_model=MessageResponse)
def change_my_password(
    payload: PasswordChange,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> MessageResponse:
    member_service.change_own_password(db, principal.member_id, payload)
    return MessageResponse(message="Password updated")


@router.get("/{member_id}", response_model=MemberOut)
def get_member(
    member_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Member:
    return member_service.get_member(db, member_id, permission)


@router.post("", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def create_member(
    payload: MemberCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Member:
    return member_service.create_member(db, payload, permission)


@router.put("/{member_id}", response_model=MemberOut)
def update_member(
    member_id: int,
    payload: MemberUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Member:
    return member_service.update_member(db, member_id, payload, permission)


@router.delete("/{member_id}/celula", response_model=MemberOut)
def remove_member_from_celula(
    member_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Member:
    return member_service.remove_from_celula(db, member_id, permission)
