"""
Leave balance endpoints - ledger views and HR ledger administration
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_engine.core.deps import TransactionRunner, get_current_user, get_db, get_runner, require_roles
from leave_engine.core.errors import unwrap
from leave_engine.models.employee import Employee, Role
from leave_engine.schemas.balance import (
    AdjustRequest,
    AllocateRequest,
    BalanceOut,
    CarryOverRequest,
    CarryOverResult,
    EncashmentQuoteOut,
    TransactionOut,
)
from leave_engine.services import encashment_service, ledger_service

router = APIRouter()


@router.get("/me", response_model=List[BalanceOut])
def my_balances(
    fiscal_year: Optional[int] = Query(None, description="Fiscal year (labelled by its start year)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Get current user's leave balances

    remaining_days is derived on read; accrual for gradually accruing types is
    evaluated as of today.
    """
    return unwrap(ledger_service.list_employee_balances(db, current_user.company_id, current_user.id, fiscal_year))


@router.get("/me/transactions", response_model=List[TransactionOut])
def my_transactions(
    leave_type_id: Optional[int] = Query(None),
    fiscal_year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return ledger_service.list_transactions(
        db, current_user.company_id, current_user.id, leave_type_id, fiscal_year
    )


@router.get("/me/encashment", response_model=EncashmentQuoteOut)
def my_encashment_quote(
    fiscal_year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Advisory cash value of the current user's remaining annual leave"""
    return unwrap(encashment_service.quote_encashment(db, current_user.company_id, current_user.id, fiscal_year))


@router.get("/employee/{employee_id}", response_model=List[BalanceOut])
def employee_balances(
    employee_id: int,
    fiscal_year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return unwrap(ledger_service.list_employee_balances(db, current_user.company_id, employee_id, fiscal_year))


@router.get("/employee/{employee_id}/transactions", response_model=List[TransactionOut])
def employee_transactions(
    employee_id: int,
    leave_type_id: Optional[int] = Query(None),
    fiscal_year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return ledger_service.list_transactions(db, current_user.company_id, employee_id, leave_type_id, fiscal_year)


@router.post("/allocate", response_model=BalanceOut)
def allocate_balance(
    payload: AllocateRequest,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """
    Set an opening entitlement (HR/ADMIN only)

    When total_entitlement is omitted the tenure formula of the leave type is used.
    """
    return run(ledger_service.allocate_balance, current_user.company_id, payload, actor_id=current_user.id)


@router.post("/adjust", response_model=BalanceOut)
def adjust_balance(
    payload: AdjustRequest,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return run(ledger_service.adjust_balance, current_user.company_id, payload, actor_id=current_user.id)


@router.post("/carry-over", response_model=CarryOverResult)
def carry_over(
    payload: CarryOverRequest,
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Carry remaining days of one fiscal year into the next (HR/ADMIN only)"""
    return run(
        ledger_service.carry_over,
        current_user.company_id,
        payload.from_year,
        payload.to_year,
        leave_type_id=payload.leave_type_id,
        actor_id=current_user.id,
    )


@router.get("/expiring", response_model=List[BalanceOut])
def expiring_balances(
    within_days: int = Query(30, ge=0, le=365),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    return unwrap(ledger_service.list_expiring(db, current_user.company_id, within_days))


@router.post("/expiring/notify")
def notify_expiring(
    within_days: Optional[int] = Query(None, ge=0, le=365, description="Defaults to the company's notice period"),
    run: TransactionRunner = Depends(get_runner),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Email employees whose carried-over days expire soon (HR/ADMIN only)"""
    sent = run(ledger_service.notify_expiring, current_user.company_id, within_days)
    return {"notified": sent}
