"""Reject session tokens replayed against another matrix's domain."""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.auth.security import PURPOSE_MATRIX_SELECTION, decode_token
from app.core.errors import AccessError
from app.services.matrices import find_by_domain

logger = logging.getLogger(__name__)

MATRIX_CHECK_EXEMPT_PREFIXES = (
    "/auth/login",
    "/auth/select-matrix",
    "/auth/refresh-token",
    "/auth/set-password",
    "/matrices/domain/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi",
)


def _matrix_id_for_origin(session_factory, origin: str) -> int | None:
    db = session_factory()
    try:
        matrix = find_by_domain(db, origin)
        return matrix.id if matrix else None
    finally:
        db.close()


def _forbidden(detail: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": detail, "code": code})


async def enforce_matrix_domain(request: Request, call_next):
    path = request.url.path
    if any(path.startswith(prefix) for prefix in MATRIX_CHECK_EXEMPT_PREFIXES):
        return await call_next(request)

    header = request.headers.get("authorization", "")
    if not header.lower().startswith("bearer "):
        return await call_next(request)

    try:
        claims = decode_token(header[7:].strip())
    except AccessError:
        # Invalid tokens are rejected by the token gate.
        return await call_next(request)

    if claims.get("purpose") == PURPOSE_MATRIX_SELECTION:
        return _forbidden("Select a matrix before continuing", "matrix_selection_pending")

    token_matrix_id = claims.get("matrix_id")
    origin = request.headers.get("origin")
    if token_matrix_id is None or not origin:
        return await call_next(request)

    domain_matrix_id = await run_in_threadpool(_matrix_id_for_origin, request.app.state.session_factory, origin)
    if domain_matrix_id is None:
        return await call_next(request)

    if domain_matrix_id != token_matrix_id:
        logger.warning(
            "matrix_domain_mismatch",
            extra={"path": path, "origin": origin, "token_matrix_id": token_matrix_id, "domain_matrix_id": domain_matrix_id},
        )
        return _forbidden("This session does not belong to this matrix. Please log in again.", "tenant_mismatch")
    return await call_next(request)
