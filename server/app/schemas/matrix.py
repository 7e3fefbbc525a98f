from __future__ import annotations

from typing import List

from pydantic import BaseModel


class MatrixSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class MatrixDomainOut(BaseModel):
    id: int
    domain: str

    class Config:
        from_attributes = True


class MatrixOut(MatrixSummary):
    domains: List[MatrixDomainOut] = []
