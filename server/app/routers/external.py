"""Endpoints for external integrations, authenticated with an ``X-API-Key`` header."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.auth.deps import require_api_key
from app.core.db import get_db
from app.models.api_key import ApiKey
from app.services import external as external_service

router = APIRouter(prefix="/external", tags=["external"])


@router.get("/check-phone")
def check_phone(
    phone: str = Query(..., max_length=32),
    api_key: ApiKey = Depends(require_api_key),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    return {"exists": external_service.check_phone_exists(db, phone, api_key.matrix_id)}
