"""
Health check endpoint
"""
from fastapi import APIRouter, Depends

from leave_engine.core.config import Settings
from leave_engine.core.deps import get_settings_dep

router = APIRouter()


@router.get("/health")
def health_check(settings: Settings = Depends(get_settings_dep)):
    """
    Health check endpoint

    Returns service status and version.
    """
    return {
        "status": "ok",
        "service": "leave-engine",
        "version": settings.VERSION,
    }
