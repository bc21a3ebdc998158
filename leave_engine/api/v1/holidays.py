"""
Public holiday endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leave_engine.core.deps import TransactionRunner, get_current_user, get_db, get_runner, require_roles
from leave_engine.models.employee import Employee, Role
from leave_engine.schemas.holiday import HolidayCreate, HolidayOut
from leave_engine.services import holiday_service

router = APIRouter()


@router.get("", response_model=List[HolidayOut])
def list_holidays(
    year: Optional[int] = Query(None, description="Only holidays falling in this year (recurring always included)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return holiday_service.list_holidays(db, current_user.company_id, year)


@router.post("", response_model=HolidayOut, status_code=status.HTTP_201_CREATED)
def create_holiday(
    payload: HolidayCreate,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Create a public holiday (HR/ADMIN only)"""
    return run(holiday_service.create_holiday, current_user.company_id, payload)
