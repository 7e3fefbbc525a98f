import logging

import app.models  # noqa: F401
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.auth.matrix_guard import enforce_matrix_domain
from app.core.config import settings
from app.core.db import SessionLocal
from app.core.errors import register_error_handlers
from app.routers import auth as auth_router
from app.routers import categories as categories_router
from app.routers import celulas as celulas_router
from app.routers import external as external_router
from app.routers import groups as groups_router
from app.routers import hierarchy as hierarchy_router
from app.routers import matrices as matrices_router
from app.routers import members as members_router
from app.routers import ministry_config as ministry_config_router

app = FastAPI(title="Videira API", version="0.1.0")

logger = logging.getLogger(__name__)

# Replaced in tests so the middleware shares the overridden database.
app.state.session_factory = SessionLocal

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auth_router.router)
app.include_router(matrices_router.router)
app.include_router(ministry_config_router.ministries_router)
app.include_router(ministry_config_router.roles_router)
app.include_router(ministry_config_router.winner_paths_router)
app.include_router(ministry_config_router.api_keys_router)
app.include_router(hierarchy_router.redes_router)
app.include_router(hierarchy_router.discipulados_router)
app.include_router(celulas_router.router)
app.include_router(members_router.router)
app.include_router(groups_router.router)
app.include_router(categories_router.router)
app.include_router(categories_router.subcategories_router)
app.include_router(external_router.router)


@app.middleware("http")
async def matrix_domain_guard(request: Request, call_next):
    return await enforce_matrix_domain(request, call_next)


@app.on_event("startup")
def log_startup() -> None:
    logger.info("api_started", extra={"environment": settings.ENVIRONMENT})


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}
