"""
Leave application endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leave_engine.core.deps import TransactionRunner, get_current_user, get_db, get_runner, require_roles
from leave_engine.core.errors import unwrap
from leave_engine.models.employee import Employee, Role
from leave_engine.models.leave import ApplicationStatus
from leave_engine.schemas.leave import (
    ApprovalDecision,
    CancelRequest,
    LeaveApplicationCreate,
    LeaveApplicationOut,
    LeaveStatsOut,
    OnLeaveOut,
)
from leave_engine.services import leave_service

router = APIRouter()


@router.post("", response_model=LeaveApplicationOut, status_code=status.HTTP_201_CREATED)
def apply_leave(
    payload: LeaveApplicationCreate,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(get_current_user),
):
    """
    Submit a leave application

    Requested days are counted on the company calendar and reserved against the
    balance of the fiscal year containing start_date.
    """
    return run(leave_service.create_application, current_user.company_id, current_user.id, payload)


@router.get("/my", response_model=List[LeaveApplicationOut])
def my_leaves(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.list_my_applications(db, current_user.company_id, current_user.id, status_filter)


@router.get("/pending", response_model=List[LeaveApplicationOut])
def pending_approvals(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Applications waiting at a stage the current user may act on"""
    return leave_service.list_pending_for_approver(db, current_user.company_id, current_user)


@router.get("/on-leave", response_model=List[OnLeaveOut])
def on_leave_today(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return leave_service.list_on_leave(db, current_user.company_id)


@router.get("/stats", response_model=LeaveStatsOut)
def leave_stats(
    fiscal_year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR, Role.CEO, Role.MD, Role.GM)),
):
    return leave_service.leave_stats(db, current_user.company_id, fiscal_year)


@router.get("/{application_id}", response_model=LeaveApplicationOut)
def get_leave(
    application_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return unwrap(leave_service.get_application_for_viewer(db, current_user.company_id, application_id, current_user))


@router.post("/{application_id}/approve", response_model=LeaveApplicationOut)
def approve_leave(
    application_id: int,
    payload: ApprovalDecision,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(get_current_user),
):
    """
    Approve the current stage of an application

    Final approval moves the reserved days to used days.
    """
    return run(
        leave_service.approve_application,
        current_user.company_id,
        application_id,
        current_user,
        payload.comments,
    )


@router.post("/{application_id}/reject", response_model=LeaveApplicationOut)
def reject_leave(
    application_id: int,
    payload: ApprovalDecision,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(get_current_user),
):
    return run(
        leave_service.reject_application,
        current_user.company_id,
        application_id,
        current_user,
        payload.comments,
    )


@router.post("/{application_id}/cancel", response_model=LeaveApplicationOut)
def cancel_leave(
    application_id: int,
    payload: CancelRequest,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(get_current_user),
):
    """Cancel own application; approved leave only before it starts"""
    return run(
        leave_service.cancel_application,
        current_user.company_id,
        application_id,
        current_user,
        payload.reason,
    )
