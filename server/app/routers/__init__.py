"""API routers for the Videira application."""

from app.routers import (
    auth,
    categories,
    celulas,
    external,
    groups,
    hierarchy,
    matrices,
    members,
    ministry_config,
)  # noqa: F401
