"""HTTP API routes."""

from api.routes.admin import router as admin_router
from api.routes.auth import router as auth_router
from api.routes.problems import router as problems_router

__all__ = [
    "auth_router",
    "problems_router",
    "admin_router",
]
