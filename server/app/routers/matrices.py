from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import require_admin_permission
from app.core.db import get_db
from app.models.matrix import Matrix
from app.schemas.matrix import MatrixOut, MatrixSummary
from app.services import matrices as matrix_service
from app.services import tenant
from app.services.permissions import FullPermission

router = APIRouter(prefix="/matrices", tags=["matrices"])


@router.get("/domain/{domain}", response_model=MatrixSummary | None)
def get_matrix_by_domain(domain: str, db: Session = Depends(get_db)) -> Matrix | None:
    return matrix_service.find_by_domain(db, domain)


@router.get("/current", response_model=MatrixOut)
def get_current_matrix(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Matrix:
    return matrix_service.get_matrix(db, permission.matrix_id)


@router.get("/members/{member_id}", response_model=list[MatrixSummary])
def list_member_matrices(
    member_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> list[Matrix]:
    tenant.validate_member_belongs_to_matrix(db, member_id, permission.matrix_id)
    return matrix_service.get_member_matrices(db, member_id)


@router.post("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def add_member(
    member_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Response:
    matrix_service.add_member_to_matrix(db, member_id, permission.matrix_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    member_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Response:
    matrix_service.remove_member_from_matrix(db, member_id, permission.matrix_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
