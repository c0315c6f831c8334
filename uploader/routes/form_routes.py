"""Static upload form."""

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

router = APIRouter(tags=["Form"])


@router.get("/", include_in_schema=False)
async def serve_form():
    """Serve the browser upload form."""
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")
