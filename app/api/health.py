"""
Health check and status endpoints
"""
from fastapi import APIRouter
from datetime import datetime, timezone
from app.config import get_settings
from app import __version__

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status():
    """Get system status"""
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "shiprocket": {
            "base_url": settings.shiprocket_base_url,
            "credentials_configured": bool(settings.shiprocket_email and settings.shiprocket_password),
        },
        "dashboard_auth": bool(settings.dash_user and settings.dash_pass),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
