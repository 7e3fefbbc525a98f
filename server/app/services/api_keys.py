"""API keys for external integrations.

A key belongs to one matrix. The full key is only returned when it is created;
listings show a preview.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.auth.security import generate_api_key
from app.core.errors import Unauthenticated
from app.models.api_key import ApiKey
from app.schemas.config import ApiKeyCreate
from app.services import tenant

logger = logging.getLogger(__name__)


def authenticate_api_key(db: Session, raw_key: str | None) -> ApiKey:
    if not raw_key:
        raise Unauthenticated("API key required")
    api_key = db.query(ApiKey).filter(ApiKey.key == raw_key).one_or_none()
    if api_key is None or not api_key.is_active:
        raise Unauthenticated("Invalid API key")

    api_key.last_used_at = datetime.utcnow()
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("api_key_last_used_update_failed", extra={"api_key_id": api_key.id}, exc_info=True)
    return api_key


def list_api_keys(db: Session, matrix_id: int) -> list[ApiKey]:
    return db.query(ApiKey).filter(ApiKey.matrix_id == matrix_id).order_by(ApiKey.created_at.desc(), ApiKey.id.desc()).all()


def create_api_key(db: Session, payload: ApiKeyCreate, matrix_id: int, created_by_id: int) -> ApiKey:
    api_key = ApiKey(
        name=payload.name.strip(),
        key=generate_api_key(),
        matrix_id=matrix_id,
        created_by_id=created_by_id,
    )
    db.add(api_key)
    db.commit()
    db.refresh(api_key)
    logger.info("api_key_created", extra={"api_key_id": api_key.id, "matrix_id": matrix_id, "by": created_by_id})
    return api_key


def toggle_api_key(db: Session, api_key_id: int, matrix_id: int) -> ApiKey:
    tenant.validate_api_key_belongs_to_matrix(db, api_key_id, matrix_id)
    api_key = db.get(ApiKey, api_key_id)
    api_key.is_active = not api_key.is_active
    db.commit()
    db.refresh(api_key)
    logger.info("api_key_toggled", extra={"api_key_id": api_key_id, "is_active": api_key.is_active})
    return api_key


def delete_api_key(db: Session, api_key_id: int, matrix_id: int) -> None:
    tenant.validate_api_key_belongs_to_matrix(db, api_key_id, matrix_id)
    db.delete(db.get(ApiKey, api_key_id))
    db.commit()
    logger.info("api_key_deleted", extra={"api_key_id": api_key_id, "matrix_id": matrix_id})
