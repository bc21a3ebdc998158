"""
Main API router
"""
from fastapi import APIRouter

from leave_engine.api.v1 import (
    health,
    auth,
    leave_settings,
    holidays,
    leave_types,
    leave_balances,
    leaves,
    recalls,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(leave_settings.router, prefix="/leave-settings", tags=["leave-settings"])
api_router.include_router(holidays.router, prefix="/holidays", tags=["holidays"])
api_router.include_router(leave_types.router, prefix="/leave-types", tags=["leave-types"])
api_router.include_router(leave_balances.router, prefix="/leave-balances", tags=["leave-balances"])
api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
api_router.include_router(recalls.router, prefix="/recalls", tags=["recalls"])
