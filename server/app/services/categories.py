"""Finance categories and their subcategories.

Personal ones belong to a single member; group ones follow the group's role flags.
A subcategory always lives in the scope of its category.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFound, PreconditionFailed
from app.models.category import Category, Subcategory
from app.schemas.category import CategoryCreate, CategoryUpdate, SubcategoryCreate, SubcategoryUpdate
from app.services.group_permissions import require_group_flag

logger = logging.getLogger(__name__)


def list_categories(db: Session, member_id: int, group_id: Optional[int] = None) -> list[Category]:
    query = db.query(Category)
    if group_id is not None:
        require_group_flag(db, group_id, member_id, "can_view_categories")
        query = query.filter(Category.group_id == group_id)
    else:
        query = query.filter(Category.owner_id == member_id, Category.group_id.is_(None))
    return query.order_by(Category.type.asc(), Category.name.asc()).all()


def _load(db: Session, category_id: int, member_id: int, flag: str) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found", category_id=category_id)
    if category.group_id is None:
        # Existence of another member's personal category is not disclosed.
        if category.owner_id != member_id:
            raise NotFound("Category not found", category_id=category_id)
    else:
        require_group_flag(db, category.group_id, member_id, flag)
    return category


def get_category(db: Session, category_id: int, member_id: int) -> Category:
    return _load(db, category_id, member_id, "can_view_categories")


def create_category(db: Session, payload: CategoryCreate, member_id: int) -> Category:
    if payload.group_id is not None:
        require_group_flag(db, payload.group_id, member_id, "can_manage_categories")
    category = Category(
        name=payload.name.strip(),
        type=payload.type,
        owner_id=member_id,
        group_id=payload.group_id,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info(
        "category_created",
        extra={"category_id": category.id, "group_id": category.group_id, "member_id": member_id},
    )
    return category


def update_category(db: Session, category_id: int, payload: CategoryUpdate, member_id: int) -> Category:
    category = _load(db, category_id, member_id, "can_manage_categories")
    if payload.name is not None:
        category.name = payload.name.strip()
    if payload.type is not None:
        category.type = payload.type
    db.commit()
    db.refresh(category)
    logger.info("category_updated", extra={"category_id": category_id, "member_id": member_id})
    return category


def delete_category(db: Session, category_id: int, member_id: int) -> None:
    category = _load(db, category_id, member_id, "can_manage_categories")
    db.delete(category)
    db.commit()
    logger.info("category_deleted", extra={"category_id": category_id, "member_id": member_id})


# Subcategories


def list_subcategories(
    db: Session, member_id: int, category_id: Optional[int] = None, group_id: Optional[int] = None
) -> list[Subcategory]:
    query = db.query(Subcategory)
    if group_id is not None:
        require_group_flag(db, group_id, member_id, "can_view_subcategories")
        query = query.filter(Subcategory.group_id == group_id)
    else:
        query = query.filter(Subcategory.owner_id == member_id, Subcategory.group_id.is_(None))
    if category_id is not None:
        query = query.filter(Subcategory.category_id == category_id)
    return query.order_by(Subcategory.name.asc()).all()


def _load_subcategory(db: Session, subcategory_id: int, member_id: int, flag: str) -> Subcategory:
    subcategory = db.get(Subcategory, subcategory_id)
    if subcategory is None:
        raise NotFound("Subcategory not found", subcategory_id=subcategory_id)
    if subcategory.group_id is None:
        if subcategory.owner_id != member_id:
            raise NotFound("Subcategory not found", subcategory_id=subcategory_id)
    else:
        require_group_flag(db, subcategory.group_id, member_id, flag)
    return subcategory


def _load_parent(db: Session, category_id: int, member_id: int) -> Category:
    """Parent category for a subcategory write, checked against the scope it lives in."""

    category = db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found", category_id=category_id)
    if category.group_id is None:
        if category.owner_id != member_id:
            raise NotFound("Category not found", category_id=category_id)
    else:
        require_group_flag(db, category.group_id, member_id, "can_manage_subcategories")
    return category


def get_subcategory(db: Session, subcategory_id: int, member_id: int) -> Subcategory:
    return _load_subcategory(db, subcategory_id, member_id, "can_view_subcategories")


def create_subcategory(db: Session, payload: SubcategoryCreate, member_id: int) -> Subcategory:
    category = _load_parent(db, payload.category_id, member_id)
    if "group_id" in payload.model_fields_set and payload.group_id != category.group_id:
        raise PreconditionFailed("A subcategory belongs to the same group as its category")
    subcategory = Subcategory(
        name=payload.name.strip(),
        description=payload.description,
        type=payload.type or category.type,
        category_id=category.id,
        owner_id=member_id,
        group_id=category.group_id,
    )
    db.add(subcategory)
    db.commit()
    db.refresh(subcategory)
    logger.info(
        "subcategory_created",
        extra={"subcategory_id": subcategory.id, "category_id": category.id, "member_id": member_id},
    )
    return subcategory


def update_subcategory(db: Session, subcategory_id: int, payload: SubcategoryUpdate, member_id: int) -> Subcategory:
    subcategory = _load_subcategory(db, subcategory_id, member_id, "can_manage_subcategories")
    if payload.category_id is not None and payload.category_id != subcategory.category_id:
        category = _load_parent(db, payload.category_id, member_id)
        if category.group_id != subcategory.group_id:
            raise PreconditionFailed("A subcategory cannot move to a category of another group")
        subcategory.category_id = category.id
    if payload.name is not None:
        subcategory.name = payload.name.strip()
    if "description" in payload.model_fields_set:
        subcategory.description = payload.description
    if payload.type is not None:
        subcategory.type = payload.type
    db.commit()
    db.refresh(subcategory)
    logger.info("subcategory_updated", extra={"subcategory_id": subcategory_id, "member_id": member_id})
    return subcategory


def delete_subcategory(db: Session, subcategory_id: int, member_id: int) -> None:
    subcategory = _load_subcategory(db, subcategory_id, member_id, "can_manage_subcategories")
    db.delete(subcategory)
    db.commit()
    logger.info("subcategory_deleted", extra={"subcategory_id": subcategory_id, "member_id": member_id})
