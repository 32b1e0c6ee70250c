"""API routes."""

from bingsu.api.admin import router as admin_router
from bingsu.api.routes import router

__all__ = ["router", "admin_router"]
