from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_permission
from app.core.db import get_db
from app.models.hierarchy import Discipulado, Rede
from app.schemas.hierarchy import (
    DiscipuladoCreate,
    DiscipuladoOut,
    DiscipuladoUpdate,
    RedeCreate,
    RedeOut,
    RedeUpdate,
)
from app.services import hierarchy as hierarchy_service
from app.services.permissions import FullPermission

redes_router = APIRouter(prefix="/redes", tags=["redes"])
discipulados_router = APIRouter(prefix="/discipulados", tags=["discipulados"])


@redes_router.get("", response_model=list[RedeOut])
def list_redes(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Rede]:
    return hierarchy_service.list_redes(db, permission.matrix_id)


@redes_router.post("", response_model=RedeOut, status_code=status.HTTP_201_CREATED)
def create_rede(
    payload: RedeCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Rede:
    return hierarchy_service.create_rede(db, payload, permission)


@redes_router.put("/{rede_id}", response_model=RedeOut)
def update_rede(
    rede_id: int,
    payload: RedeUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Rede:
    return hierarchy_service.update_rede(db, rede_id, payload, permission)


@redes_router.delete("/{rede_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rede(
    rede_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Response:
    hierarchy_service.delete_rede(db, rede_id, permission)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@discipulados_router.get("", response_model=list[DiscipuladoOut])
def list_discipulados(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Discipulado]:
    return hierarchy_service.list_discipulados(db, permission.matrix_id)


@discipulados_router.post("", response_model=DiscipuladoOut, status_code=status.HTTP_201_CREATED)
def create_discipulado(
    payload: DiscipuladoCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Discipulado:
    return hierarchy_service.create_discipulado(db, payload, permission)


@discipulados_router.put("/{discipulado_id}", response_model=DiscipuladoOut)
def update_discipulado(
    discipulado_id: int,
    payload: DiscipuladoUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Discipulado:
    return hierarchy_service.update_discipulado(db, discipulado_id, payload, permission)


@discipulados_router.delete("/{discipulado_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_discipulado(
    discipulado_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Response:
    hierarchy_service.delete_discipulado(db, discipulado_id, permission)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
