from __future__ import annotations

import logging
import re

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from app.core.errors import Conflict, NotFound
from app.models.matrix import Matrix, MatrixDomain, member_matrices
from app.models.member import Member
from app.services.tenant import member_belongs_to_matrix

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")


def normalize_domain(raw: str | None) -> str:
    """Reduce an Origin header or user-entered host to its bare domain."""

    if not raw:
        return ""
    domain = raw.strip().lower()
    domain = _SCHEME_RE.sub("", domain)
    domain = domain.split("/", 1)[0]
    domain = domain.split(":", 1)[0]
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def find_by_domain(db: Session, raw_domain: str | None) -> Matrix | None:
    domain = normalize_domain(raw_domain)
    if not domain:
        return None
    return db.execute(
        select(Matrix).join(MatrixDomain, MatrixDomain.matrix_id == Matrix.id).where(MatrixDomain.domain == domain)
    ).scalar_one_or_none()


def get_matrix(db: Session, matrix_id: int) -> Matrix:
    matrix = db.get(Matrix, matrix_id)
    if matrix is None:
        raise NotFound("Matrix not found", matrix_id=matrix_id)
    return matrix


def get_member_matrices(db: Session, member_id: int) -> list[Matrix]:
    return list(
        db.execute(
            select(Matrix)
            .join(member_matrices, member_matrices.c.matrix_id == Matrix.id)
            .where(member_matrices.c.member_id == member_id)
            .order_by(Matrix.name)
        ).scalars()
    )


def add_member_to_matrix(db: Session, member_id: int, matrix_id: int) -> None:
    if db.get(Member, member_id) is None:
        raise NotFound("Member not found", member_id=member_id)
    if member_belongs_to_matrix(db, member_id, matrix_id):
        raise Conflict("Member already belongs to this matrix")
    db.execute(insert(member_matrices).values(member_id=member_id, matrix_id=matrix_id))
    db.commit()
    logger.info("matrix_member_added", extra={"member_id": member_id, "matrix_id": matrix_id})


def remove_member_from_matrix(db: Session, member_id: int, matrix_id: int) -> None:
    if not member_belongs_to_matrix(db, member_id, matrix_id):
        raise NotFound("Member does not belong to this matrix", member_id=member_id)
    db.execute(
        delete(member_matrices).where(
            member_matrices.c.member_id == member_id,
            member_matrices.c.matrix_id == matrix_id,
        )
    )
    db.commit()
    logger.info("matrix_member_removed", extra={"member_id": member_id, "matrix_id": matrix_id})
