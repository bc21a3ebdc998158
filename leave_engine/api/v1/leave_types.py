"""
Leave type endpoints - the company's leave catalogue
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leave_engine.core.deps import TransactionRunner, get_current_user, get_db, get_runner, require_roles
from leave_engine.core.errors import unwrap
from leave_engine.models.employee import Employee, Role
from leave_engine.schemas.leave_type import LeaveTypeCreate, LeaveTypeOut, LeaveTypeUpdate, SeedResult
from leave_engine.services import leave_type_service

router = APIRouter()


@router.get("", response_model=List[LeaveTypeOut])
def list_leave_types(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_type_service.list_leave_types(db, current_user.company_id, include_inactive)


@router.get("/applicable", response_model=List[LeaveTypeOut])
def list_applicable_leave_types(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Active leave types the current user may apply for, filtered by gender"""
    return unwrap(leave_type_service.list_applicable_leave_types(db, current_user.company_id, current_user.id))


@router.post("/seed", response_model=SeedResult, status_code=status.HTTP_201_CREATED)
def seed_leave_types(
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Create the default leave catalogue for a company that has none (HR/ADMIN only)"""
    created = run(leave_type_service.seed_default_leave_types, current_user.company_id)
    return SeedResult(count=len(created))


@router.get("/{leave_type_id}", response_model=LeaveTypeOut)
def get_leave_type(
    leave_type_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return unwrap(leave_type_service.resolve_leave_type(db, current_user.company_id, leave_type_id))


@router.post("", response_model=LeaveTypeOut, status_code=status.HTTP_201_CREATED)
def create_leave_type(
    payload: LeaveTypeCreate,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return run(leave_type_service.create_leave_type, current_user.company_id, payload)


@router.patch("/{leave_type_id}", response_model=LeaveTypeOut)
def update_leave_type(
    leave_type_id: int,
    payload: LeaveTypeUpdate,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return run(leave_type_service.update_leave_type, current_user.company_id, leave_type_id, payload)


@router.delete("/{leave_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_leave_type(
    leave_type_id: int,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Delete a leave type that no application or balance uses (HR/ADMIN only)"""
    run(leave_type_service.delete_leave_type, current_user.company_id, leave_type_id)
