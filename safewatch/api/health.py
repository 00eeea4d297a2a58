"""Health check endpoint."""

from fastapi import APIRouter

from safewatch.core.config import settings
from safewatch.core.ws_manager import ws_manager

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    """Return API health status and the number of live feed connections."""
    return {"status": "ok", "app": settings.app_name, "ws_connections": ws_manager.total_connections}
