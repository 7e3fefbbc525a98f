"""Domain error kinds raised by validators, resolvers and services.

Every denial in the authorization core is one of the classes below. They are
raised where the decision is made and travel unmodified up to the transport
edge, where ``register_error_handlers`` maps each kind to a status code once.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AccessError(Exception):
    """Base class for every error kind the core can raise."""

    code: str = "access_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request denied"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(AccessError):
    code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authenticated"


class TenantMismatch(AccessError):
    code = "tenant_mismatch"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class InsufficientAuthority(AccessError):
    code = "insufficient_authority"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Insufficient permissions"


class NotFound(AccessError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class PreconditionFailed(AccessError):
    code = "precondition_failed"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Precondition failed"


class Conflict(AccessError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    message = "Conflict"


ERROR_KINDS: tuple[type[AccessError], ...] = (
    Unauthenticated,
    TenantMismatch,
    InsufficientAuthority,
    NotFound,
    PreconditionFailed,
    Conflict,
)


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    if exc.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        logger.warning(
            "access_denied",
            extra={"code": exc.code, "path": request.url.path, "detail": exc.message},
        )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccessError, access_error_handler)
