from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.auth.deps import AuthenticatedPrincipal, get_current_principal
from app.core.db import get_db
from app.models.category import Category, Subcategory
from app.schemas.category import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    SubcategoryCreate,
    SubcategoryOut,
    SubcategoryUpdate,
)
from app.services import categories as category_service

router = APIRouter(prefix="/categories", tags=["categories"])
subcategories_router = APIRouter(prefix="/subcategories", tags=["subcategories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(
    *,
    group_id: int | None = Query(default=None, ge=1),
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[Category]:
    return category_service.list_categories(db, principal.member_id, group_id)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Category:
    return category_service.get_category(db, category_id, principal.member_id)


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Category:
    return category_service.create_category(db, payload, principal.member_id)


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Category:
    return category_service.update_category(db, category_id, payload, principal.member_id)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    category_service.delete_category(db, category_id, principal.member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@subcategories_router.get("", response_model=list[SubcategoryOut])
def list_subcategories(
    *,
    category_id: int | None = Query(default=None, ge=1),
    group_id: int | None = Query(default=None, ge=1),
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[Subcategory]:
    return category_service.list_subcategories(db, principal.member_id, category_id, group_id)


@subcategories_router.get("/{subcategory_id}", response_model=SubcategoryOut)
def get_subcategory(
    subcategory_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Subcategory:
    return category_service.get_subcategory(db, subcategory_id, principal.member_id)


@subcategories_router.post("", response_model=SubcategoryOut, status_code=status.HTTP_201_CREATED)
def create_subcategory(
    payload: SubcategoryCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Subcategory:
    return category_service.create_subcategory(db, payload, principal.member_id)


@subcategories_router.put("/{subcategory_id}", response_model=SubcategoryOut)
def update_subcategory(
    subcategory_id: int,
    payload: SubcategoryUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Subcategory:
    return category_service.update_subcategory(db, subcategory_id, payload, principal.member_id)


@subcategories_router.delete("/{subcategory_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subcategory(
    subcategory_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    category_service.delete_subcategory(db, subcategory_id, principal.member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
