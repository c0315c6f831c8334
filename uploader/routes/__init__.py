"""API routes package."""

from uploader.routes.form_routes import router as form_router
from uploader.routes.upload_routes import router as upload_router

__all__ = ["form_router", "upload_router"]
