from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_permission
from app.core.db import get_db
from app.models.hierarchy import Celula
from app.models.member import Member
from app.models.report import Report
from app.schemas.hierarchy import (
    CelulaCreate,
    CelulaMultiplyRequest,
    CelulaMultiplyResult,
    CelulaOut,
    CelulaUpdate,
)
from app.schemas.member import MemberOut
from app.schemas.report import ReportCreate, ReportOut
from app.services import celulas as celula_service
from app.services import reports as report_service
from app.services.permissions import FullPermission

router = APIRouter(prefix="/celulas", tags=["celulas"])


@router.get("", response_model=list[CelulaOut])
def list_celulas(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Celula]:
    return celula_service.list_celulas(db, permission)


@router.post("", response_model=CelulaOut, status_code=status.HTTP_201_CREATED)
def create_celula(
    payload: CelulaCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Celula:
    return celula_service.create_celula(db, payload, permission)


@router.get("/{celula_id}", response_model=CelulaOut)
def get_celula(
    celula_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Celula:
    return celula_service.load_celula(db, celula_id, permission)


@router.get("/{celula_id}/members", response_model=list[MemberOut])
def list_celula_members(
    celula_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Member]:
    return celula_service.list_celula_members(db, celula_id, permission)


@router.put("/{celula_id}", response_model=CelulaOut)
def update_celula(
    celula_id: int,
    payload: CelulaUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Celula:
    return celula_service.update_celula(db, celula_id, payload, permission)


@router.delete("/{celula_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_celula(
    celula_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Response:
    celula_service.delete_celula(db, celula_id, permission)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{celula_id}/multiply", response_model=CelulaMultiplyResult, status_code=status.HTTP_201_CREATED)
def multiply_celula(
    celula_id: int,
    payload: CelulaMultiplyRequest,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> CelulaMultiplyResult:
    new_celula, moved = celula_service.multiply_celula(db, celula_id, payload, permission)
    return CelulaMultiplyResult(
        new_celula=CelulaOut.model_validate(new_celula),
        moved_count=len(moved),
        moved_member_ids=moved,
    )


@router.post("/{celula_id}/leaders-in-training/{member_id}", response_model=CelulaOut)
def add_leader_in_training(
    celula_id: int,
    member_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Celula:
    return celula_service.add_leader_in_training(db, celula_id, member_id, permission)


@router.delete("/{celula_id}/leaders-in-training/{member_id}", response_model=CelulaOut)
def remove_leader_in_training(
    celula_id: int,
    member_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Celula:
    return celula_service.remove_leader_in_training(db, celula_id, member_id, permission)


@router.get("/{celula_id}/reports", response_model=list[ReportOut])
def list_reports(
    celula_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Report]:
    return report_service.list_reports(db, celula_id, permission)


@router.post("/{celula_id}/reports", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
def create_report(
    celula_id: int,
    payload: ReportCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Report:
    return report_service.create_report(db, celula_id, payload, permission)
