"""Health check API endpoints."""
from fastapi import APIRouter

from config import get_settings
from database import get_db_manager

router = APIRouter(tags=["health"])


@router.get("/")
def read_root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "TP Supervision Service",
        "version": "1.0.0",
        "environment": get_settings().environment,
    }


@router.get("/health/db")
def database_health():
    """Database health check."""
    db_manager = get_db_manager()
    if db_manager.health_check():
        return {"status": "ok", "database": "connected"}
    return {"status": "error", "database": "connection_failed"}
