from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: Literal["EXPENSE", "INCOME"] = "EXPENSE"
    group_id: Optional[int] = Field(None, ge=1)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    type: Optional[Literal["EXPENSE", "INCOME"]] = None


class CategoryOut(BaseModel):
    id: int
    name: str
    type: str
    owner_id: int
    group_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SubcategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    category_id: int = Field(..., ge=1)
    description: Optional[str] = Field(None, max_length=255)
    # Defaults to the category's type.
    type: Optional[Literal["EXPENSE", "INCOME"]] = None
    group_id: Optional[int] = Field(None, ge=1)


class SubcategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    category_id: Optional[int] = Field(None, ge=1)
    description: Optional[str] = Field(None, max_length=255)
    type: Optional[Literal["EXPENSE", "INCOME"]] = None


class SubcategoryOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    type: str
    category_id: int
    owner_id: int
    group_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
