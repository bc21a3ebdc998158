"""
Leave settings endpoints - per-company leave policy
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leave_engine.core.deps import TransactionRunner, get_current_user, get_db, get_runner, require_roles
from leave_engine.models.employee import Employee, Role
from leave_engine.schemas.settings import LeaveSettingsOut, LeaveSettingsUpdate
from leave_engine.services import leave_settings_service

router = APIRouter()


@router.get("", response_model=LeaveSettingsOut)
def get_leave_settings(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Get the company's leave settings

    Companies that never saved settings get the defaults; nothing is written.
    """
    return leave_settings_service.resolve_settings(db, current_user.company_id)


@router.put("", response_model=LeaveSettingsOut)
def update_leave_settings(
    payload: LeaveSettingsUpdate,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """
    Create or update the company's leave settings (HR/ADMIN only)

    Omitted fields keep their value. Every save bumps policy_version.
    """
    return run(leave_settings_service.upsert_settings, current_user.company_id, payload)
