from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import Unauthenticated

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PURPOSE_SET_PASSWORD = "set-password"
PURPOSE_MATRIX_SELECTION = "matrix-selection"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def _encode(claims: dict[str, Any], expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {**claims, "iss": settings.JWT_ISSUER, "iat": now, "exp": now + expires_delta}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def create_access_token(
    *, member_id: int, matrix_id: int, email: str | None = None, expires_minutes: int | None = None
) -> str:
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    claims = {"sub": str(member_id), "email": email, "matrix_id": matrix_id}
    return _encode(claims, timedelta(minutes=minutes))


def create_purpose_token(*, member_id: int, purpose: str, expires_minutes: int) -> str:
    """Short-lived token that only unlocks the flow named by ``purpose``."""

    return _encode({"sub": str(member_id), "purpose": purpose}, timedelta(minutes=expires_minutes))


def decode_token(token: str, verify_exp: bool = True) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            issuer=settings.JWT_ISSUER,
            options={"verify_exp": verify_exp},
        )
    except JWTError as exc:
        raise Unauthenticated("Invalid token") from exc


def decode_purpose_token(token: str, purpose: str) -> int:
    payload = decode_token(token)
    if payload.get("purpose") != purpose:
        raise Unauthenticated("Invalid token purpose")
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise Unauthenticated("Invalid token payload") from exc


def generate_refresh_token() -> str:
    return secrets.token_hex(64)


def generate_api_key() -> str:
    return f"vd_{secrets.token_hex(32)}"
