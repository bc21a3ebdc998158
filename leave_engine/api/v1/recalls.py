"""
Leave recall endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leave_engine.core.deps import TransactionRunner, get_current_user, get_db, get_runner, require_roles
from leave_engine.core.errors import unwrap
from leave_engine.models.employee import Employee, Role
from leave_engine.models.leave import RecallStatus
from leave_engine.schemas.leave import OnLeaveOut
from leave_engine.schemas.recall import RecallCreate, RecallOut, RecallResponse
from leave_engine.services import recall_service

router = APIRouter()


@router.post("", response_model=RecallOut, status_code=status.HTTP_201_CREATED)
def create_recall(
    payload: RecallCreate,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(get_current_user),
):
    """
    Recall an employee from approved leave in progress

    Allowed for the employee's manager, HR and ADMIN.
    """
    return run(recall_service.create_recall, current_user.company_id, current_user, payload)


@router.get("", response_model=List[RecallOut])
def list_recalls(
    status_filter: Optional[RecallStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return recall_service.list_recalls(db, current_user.company_id, status_filter)


@router.get("/my", response_model=List[RecallOut])
def my_recalls(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return recall_service.list_my_recalls(db, current_user.company_id, current_user.id)


@router.get("/recallable", response_model=List[OnLeaveOut])
def recallable_leaves(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR, Role.MANAGER)),
):
    """Employees on leave today with no pending recall"""
    return recall_service.list_recallable(db, current_user.company_id)


@router.get("/{recall_id}", response_model=RecallOut)
def get_recall(
    recall_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return unwrap(recall_service.get_recall(db, current_user.company_id, recall_id))


@router.post("/{recall_id}/respond", response_model=RecallOut)
def respond_to_recall(
    recall_id: int,
    payload: RecallResponse,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(get_current_user),
):
    """
    Accept or decline a recall

    Accepting refunds the days from the return date to the original end date.
    """
    return run(recall_service.respond_to_recall, current_user.company_id, recall_id, current_user, payload)


@router.delete("/{recall_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_recall(
    recall_id: int,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(get_current_user),
):
    """Withdraw a pending recall (initiator only)"""
    run(recall_service.cancel_recall, current_user.company_id, recall_id, current_user)
