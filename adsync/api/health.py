"""
Health check and status endpoints
"""
from datetime import datetime

from fastapi import APIRouter

from adsync import __version__
from adsync.config import get_settings
from adsync.scheduler import get_scheduled_jobs

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/health/status")
async def get_status():
    """Get system status"""
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "features": {
            "scheduled_sync": settings.enable_scheduled_sync,
            "scheduled_sync_cron": settings.scheduled_sync_cron,
            "metrics_lookback_days": settings.metrics_lookback_days,
        },
        "scheduled_jobs": get_scheduled_jobs(),
        "timestamp": datetime.utcnow().isoformat()
    }
