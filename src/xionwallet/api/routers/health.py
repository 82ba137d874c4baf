"""Health check endpoints."""

from fastapi import APIRouter, Request

from xionwallet import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "xionwallet"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": "xionwallet",
        "version": __version__,
        "config": settings.get_safe_dict(),
    }
