"""Health check endpoints."""
from fastapi import APIRouter, Request
import logging

from ..core.config import settings
from ..core.database import health_check_db

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": "LMS Chat API",
        "version": settings.app_version
    }


@router.get("/full")
async def full_health_check(request: Request):
    """Database connectivity plus live socket count"""
    db_healthy = await health_check_db()
    gateway = request.app.state.gateway

    return {
        "status": "healthy" if db_healthy else "degraded",
        "components": {
            "database": "healthy" if db_healthy else "unhealthy",
            "realtime": {"online_users": len(gateway.registry)}
        }
    }
