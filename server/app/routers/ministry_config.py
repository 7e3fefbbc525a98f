"""Matrix configuration: ministry positions, roles, winner paths and API keys.

Reads are open to any member of the session matrix; every mutation is admin only.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import get_permission, require_admin_permission
from app.core.db import get_db
from app.models.api_key import ApiKey
from app.models.ministry import Ministry, WinnerPath
from app.models.role import Role
from app.schemas.config import (
    ApiKeyCreate,
    ApiKeyCreated,
    ApiKeyOut,
    MinistryCreate,
    MinistryOut,
    MinistryUpdate,
    PriorityUpdate,
    RoleCreate,
    RoleOut,
    RoleUpdate,
    WinnerPathCreate,
    WinnerPathOut,
    WinnerPathUpdate,
)
from app.services import api_keys as api_key_service
from app.services import ministry_config as config_service
from app.services.permissions import FullPermission

ministries_router = APIRouter(prefix="/ministries", tags=["ministries"])
roles_router = APIRouter(prefix="/roles", tags=["roles"])
winner_paths_router = APIRouter(prefix="/winner-paths", tags=["winner-paths"])
api_keys_router = APIRouter(prefix="/api-keys", tags=["api-keys"])


@ministries_router.get("", response_model=list[MinistryOut])
def list_ministries(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Ministry]:
    return config_service.list_ministries(db, permission.matrix_id)


@ministries_router.get("/{ministry_id}", response_model=MinistryOut)
def get_ministry(
    ministry_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Ministry:
    return config_service.get_ministry(db, ministry_id, permission.matrix_id)


@ministries_router.post("", response_model=MinistryOut, status_code=status.HTTP_201_CREATED)
def create_ministry(
    payload: MinistryCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Ministry:
    return config_service.create_ministry(db, payload, permission.matrix_id)


@ministries_router.put("/{ministry_id}", response_model=MinistryOut)
def update_ministry(
    ministry_id: int,
    payload: MinistryUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Ministry:
    return config_service.update_ministry(db, ministry_id, payload, permission.matrix_id)


@ministries_router.put("/{ministry_id}/priority", response_model=MinistryOut)
def update_ministry_priority(
    ministry_id: int,
    payload: PriorityUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Ministry:
    return config_service.update_ministry_priority(db, ministry_id, payload.priority, permission.matrix_id)


@ministries_router.delete("/{ministry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ministry(
    ministry_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Response:
    config_service.delete_ministry(db, ministry_id, permission.matrix_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@roles_router.get("", response_model=list[RoleOut])
def list_roles(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[Role]:
    return config_service.list_roles(db, permission.matrix_id)


@roles_router.get("/{role_id}", response_model=RoleOut)
def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> Role:
    return config_service.get_role(db, role_id, permission.matrix_id)


@roles_router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RoleCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Role:
    return config_service.create_role(db, payload, permission.matrix_id)


@roles_router.put("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: int,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Role:
    return config_service.update_role(db, role_id, payload, permission.matrix_id)


@roles_router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Response:
    config_service.delete_role(db, role_id, permission.matrix_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@winner_paths_router.get("", response_model=list[WinnerPathOut])
def list_winner_paths(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> list[WinnerPath]:
    return config_service.list_winner_paths(db, permission.matrix_id)


@winner_paths_router.get("/{winner_path_id}", response_model=WinnerPathOut)
def get_winner_path(
    winner_path_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(get_permission),
) -> WinnerPath:
    return config_service.get_winner_path(db, winner_path_id, permission.matrix_id)


@winner_paths_router.post("", response_model=WinnerPathOut, status_code=status.HTTP_201_CREATED)
def create_winner_path(
    payload: WinnerPathCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> WinnerPath:
    return config_service.create_winner_path(db, payload, permission.matrix_id)


@winner_paths_router.put("/{winner_path_id}", response_model=WinnerPathOut)
def update_winner_path(
    winner_path_id: int,
    payload: WinnerPathUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> WinnerPath:
    return config_service.update_winner_path(db, winner_path_id, payload, permission.matrix_id)


@winner_paths_router.put("/{winner_path_id}/priority", response_model=WinnerPathOut)
def update_winner_path_priority(
    winner_path_id: int,
    payload: PriorityUpdate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> WinnerPath:
    return config_service.update_winner_path_priority(db, winner_path_id, payload.priority, permission.matrix_id)


@winner_paths_router.delete("/{winner_path_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_winner_path(
    winner_path_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Response:
    config_service.delete_winner_path(db, winner_path_id, permission.matrix_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@api_keys_router.get("", response_model=list[ApiKeyOut])
def list_api_keys(
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> list[ApiKey]:
    return api_key_service.list_api_keys(db, permission.matrix_id)


@api_keys_router.post("", response_model=ApiKeyCreated, status_code=status.HTTP_201_CREATED)
def create_api_key(
    payload: ApiKeyCreate,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> ApiKey:
    return api_key_service.create_api_key(db, payload, permission.matrix_id, permission.member_id)


@api_keys_router.patch("/{api_key_id}/toggle", response_model=ApiKeyOut)
def toggle_api_key(
    api_key_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> ApiKey:
    return api_key_service.toggle_api_key(db, api_key_id, permission.matrix_id)


@api_keys_router.delete("/{api_key_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_api_key(
    api_key_id: int,
    db: Session = Depends(get_db),
    permission: FullPermission = Depends(require_admin_permission),
) -> Response:
    api_key_service.delete_api_key(db, api_key_id, permission.matrix_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
