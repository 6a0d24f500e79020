"""API routers."""

from app.routers.admin import router as admin_router
from app.routers.inspections import router as inspections_router
from app.routers.uploads import router as uploads_router

__all__ = [
    "admin_router",
    "inspections_router",
    "uploads_router",
]
