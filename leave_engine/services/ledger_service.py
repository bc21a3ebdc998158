"""
Balance Ledger - the single source of truth for leave days.

One row per (employee, leave type, fiscal year). Every operation here runs
inside the caller's transaction against a row locked with SELECT ... FOR UPDATE
and appends a LeaveTransaction audit row. Other components never edit
LeaveBalance directly.

- total_entitlement: opening balance (allocation + carry-over)
- accrual for gradually accruing types: computed on read, never stored
- remaining = max(0, effective entitlement - used - pending), derived
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_engine.core.result import Err, Ok, Result, business_rule, not_found, validation_error
from leave_engine.models.employee import Employee
from leave_engine.models.leave import LeaveBalance, LeaveTransaction, LeaveType, LedgerAction
from leave_engine.models.leave_settings import LeaveSettings
from leave_engine.schemas.balance import AdjustRequest, AllocateRequest
from leave_engine.services import accrual_service, employee_directory, leave_type_service
from leave_engine.services.leave_settings_service import resolve_settings
from leave_engine.services.notification_service import queue_notification
from leave_engine.utils.datetime_utils import today_or

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class BalanceView:
    balance_id: int
    employee_id: int
    leave_type_id: int
    leave_type_code: str
    fiscal_year: int
    total_entitlement: Decimal
    accrued_days: Decimal
    effective_entitlement: Decimal
    used_days: Decimal
    pending_days: Decimal
    remaining_days: Decimal
    expiry_date: Optional[date]

    @property
    def available_days(self) -> Decimal:
        """Unclamped availability used by reserve(); may be negative."""
        return self.effective_entitlement - self.used_days - self.pending_days


def to_days(value) -> Decimal:
    """Convert counter output (float) or stored Numeric to Decimal days."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_days(value: Decimal) -> str:
    """5 -> '5', 2.50 -> '2.5'"""
    return format(to_days(value).normalize(), "f")


def _log_transaction(
    db: Session,
    balance: LeaveBalance,
    action: LedgerAction,
    delta_days: Decimal,
    application_id: Optional[int],
    actor_id: Optional[int],
    remarks: Optional[str] = None,
) -> None:
    db.add(LeaveTransaction(
        company_id=balance.company_id,
        balance_id=balance.id,
        application_id=application_id,
        action=action.value,
        delta_days=delta_days,
        remarks=remarks,
        actor_id=actor_id,
    ))


def lock_balance(db: Session, balance_id: int) -> Optional[LeaveBalance]:
    """Re-read a ledger row with a row lock, refreshing any stale identity-map state."""
    db.flush()
    return (
        db.query(LeaveBalance)
        .filter(LeaveBalance.id == balance_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def find_balance(
    db: Session,
    company_id: int,
    employee_id: int,
    leave_type_id: int,
    fiscal_year: int,
    lock: bool = False,
) -> Optional[LeaveBalance]:
    query = db.query(LeaveBalance).filter(
        LeaveBalance.company_id == company_id,
        LeaveBalance.employee_id == employee_id,
        LeaveBalance.leave_type_id == leave_type_id,
        LeaveBalance.fiscal_year == fiscal_year,
    )
    if lock:
        db.flush()
        query = query.with_for_update().populate_existing()
    return query.first()


def opening_entitlement(leave_type: LeaveType, hire_date: date, as_of: date) -> Decimal:
    """
    Opening balance written when a ledger row is first created.

    Gradually accruing types start at 0 (accrual is computed on read); other
    types get their full tenure-adjusted allowance.
    """
    if leave_type.accrues_gradually:
        return ZERO
    years = accrual_service.years_of_service(hire_date, as_of)
    return accrual_service.calculate_leave_entitlement(
        leave_type.default_allowance_days,
        leave_type.increment_amount,
        years,
        leave_type.increment_period_years,
        leave_type.max_cap,
    )


def ensure_balance(
    db: Session,
    company_id: int,
    employee_id: int,
    leave_type: LeaveType,
    fiscal_year: int,
    today: Optional[date] = None,
) -> Result[LeaveBalance]:
    """
    Get the ledger row, creating it with its opening entitlement if absent.

    Creation runs in a SAVEPOINT: when a concurrent caller created the same row
    first, the unique constraint fires, the savepoint is rolled back and the
    winner's row is fetched instead. Returns the row locked.
    """
    existing = find_balance(db, company_id, employee_id, leave_type.id, fiscal_year, lock=True)
    if existing is not None:
        return Ok(existing)

    employment = employee_directory.get_active_employment(db, company_id, employee_id)
    if isinstance(employment, Err):
        return employment

    settings = resolve_settings(db, company_id)
    as_of = today_or(today)
    balance = LeaveBalance(
        company_id=company_id,
        employee_id=employee_id,
        leave_type_id=leave_type.id,
        fiscal_year=fiscal_year,
        total_entitlement=opening_entitlement(leave_type, employment.value.start_date, as_of),
        used_days=ZERO,
        pending_days=ZERO,
        expiry_date=accrual_service.expiry_date(
            fiscal_year, leave_type.carry_over_expiry_months, settings.fiscal_year_start_month
        ) if leave_type.allows_carry_over else None,
    )
    try:
        with db.begin_nested():
            db.add(balance)
            db.flush()
    except IntegrityError:
        logger.info(
            "Ledger row created concurrently: employee_id=%s leave_type_id=%s fiscal_year=%s",
            employee_id, leave_type.id, fiscal_year
        )
        winner = find_balance(db, company_id, employee_id, leave_type.id, fiscal_year, lock=True)
        if winner is None:
            raise
        return Ok(winner)

    logger.info(
        "Ledger row created: employee_id=%s leave_type=%s fiscal_year=%s opening=%s",
        employee_id, leave_type.code, fiscal_year, balance.total_entitlement
    )
    return Ok(balance)


def accrual_policy(leave_type: LeaveType, settings: LeaveSettings) -> dict:
    """
    Accrual parameters for a leave type.

    The type's own allowance, tenure schedule and cap win when set; company
    settings fill in the rest. A type with no increment period takes both the
    period and the amount from settings.
    """
    base_days = to_days(leave_type.default_allowance_days)
    if leave_type.increment_period_years:
        increment_period_years = leave_type.increment_period_years
        increment_amount = to_days(leave_type.increment_amount)
    else:
        increment_period_years = settings.increment_period_years
        increment_amount = settings.increment_amount
    return dict(
        base_days=base_days if base_days > 0 else settings.annual_leave_base_days,
        increment_period_years=increment_period_years,
        increment_amount=increment_amount,
        cap=leave_type.max_cap if leave_type.max_cap is not None else settings.max_annual_leave_cap,
    )


def accrued_days(db: Session, balance: LeaveBalance, today: Optional[date] = None) -> Result[Decimal]:
    """
    Accrual of the balance's own fiscal year for gradually accruing types.

    Evaluated as of today clamped into the fiscal year; a fiscal year that has
    not started yet has accrued nothing.
    """
    leave_type = balance.leave_type
    if not leave_type.accrues_gradually:
        return Ok(ZERO)

    settings = resolve_settings(db, balance.company_id)
    on = today_or(today)
    if on < accrual_service.fiscal_year_start(balance.fiscal_year, settings.fiscal_year_start_month):
        return Ok(ZERO)

    employment = employee_directory.get_active_employment(db, balance.company_id, balance.employee_id)
    if isinstance(employment, Err):
        return employment

    as_of = min(on, accrual_service.fiscal_year_end(balance.fiscal_year, settings.fiscal_year_start_month))
    result = accrual_service.accrue(
        hire_date=employment.value.start_date,
        as_of=as_of,
        divisor=settings.accrual_divisor,
        fiscal_year_start_month=settings.fiscal_year_start_month,
        basis=settings.accrual_basis,
        **accrual_policy(leave_type, settings),
    )
    return Ok(result.accrued_days)


def view_balance(db: Session, balance: LeaveBalance, today: Optional[date] = None) -> Result[BalanceView]:
    """Ledger row with its derived fields."""
    accrued = accrued_days(db, balance, today)
    if isinstance(accrued, Err):
        return accrued

    total = to_days(balance.total_entitlement)
    used = to_days(balance.used_days)
    pending = to_days(balance.pending_days)
    effective = total + accrued.value
    remaining = max(ZERO, effective - used - pending)

    return Ok(BalanceView(
        balance_id=balance.id,
        employee_id=balance.employee_id,
        leave_type_id=balance.leave_type_id,
        leave_type_code=balance.leave_type.code,
        fiscal_year=balance.fiscal_year,
        total_entitlement=total,
        accrued_days=accrued.value,
        effective_entitlement=effective,
        used_days=used,
        pending_days=pending,
        remaining_days=remaining,
        expiry_date=balance.expiry_date,
    ))


def reserve(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    application_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[LeaveBalance]:
    """
    Hold days as pending against the balance.

    Point-in-time check: fails with an insufficient-balance BusinessRuleViolation
    when days exceed effective - used - pending at call time.
    """
    days = to_days(days)
    balance = lock_balance(db, balance.id)
    view = view_balance(db, balance, today)
    if isinstance(view, Err):
        return view

    available = view.value.available_days
    if days > available:
        available_shown = max(available, ZERO)
        return business_rule(
            f"Insufficient leave balance: available={float(available_shown)}, requested={format_days(days)}",
            available=float(available_shown),
            requested=float(days),
        )

    balance.pending_days = to_days(balance.pending_days) + days
    _log_transaction(db, balance, LedgerAction.RESERVE, days, application_id, actor_id)
    db.flush()
    return Ok(balance)


def commit(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    application_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Result[LeaveBalance]:
    """Final approval: move days from pending to used."""
    days = to_days(days)
    balance = lock_balance(db, balance.id)
    pending = to_days(balance.pending_days)
    if days > pending:
        return business_rule(
            "Cannot commit more days than are pending",
            pending=float(pending),
            requested=float(days),
        )

    balance.pending_days = pending - days
    balance.used_days = to_days(balance.used_days) + days
    _log_transaction(db, balance, LedgerAction.COMMIT, -days, application_id, actor_id)
    db.flush()
    return Ok(balance)


def release(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    application_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Result[LeaveBalance]:
    """Reject or cancel of a pending application: drop the pending hold."""
    days = to_days(days)
    balance = lock_balance(db, balance.id)
    pending = to_days(balance.pending_days)
    if days > pending:
        return business_rule(
            "Cannot release more days than are pending",
            pending=float(pending),
            requested=float(days),
        )

    balance.pending_days = pending - days
    _log_transaction(db, balance, LedgerAction.RELEASE, -days, application_id, actor_id)
    db.flush()
    return Ok(balance)


def refund(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    application_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> Result[LeaveBalance]:
    """Give used days back (recall acceptance, cancel of approved leave)."""
    days = to_days(days)
    balance = lock_balance(db, balance.id)
    used = to_days(balance.used_days)
    if days > used:
        return business_rule(
            "Cannot refund more days than have been used",
            used=float(used),
            requested=float(days),
        )

    balance.used_days = used - days
    _log_transaction(db, balance, LedgerAction.REFUND, days, application_id, actor_id, remarks)
    db.flush()
    return Ok(balance)


def adjust(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    direction: str,
    reason: str,
    actor_id: Optional[int] = None,
) -> Result[LeaveBalance]:
    """
    Administrative change to the stored entitlement.

    Args:
        days: Positive number of days
        direction: "add" or "subtract"
        reason: Recorded on the audit row

    Returns:
        The updated row, or a BusinessRuleViolation when subtracting would
        leave the entitlement below the days already used
    """
    days = to_days(days)
    if days <= 0:
        return validation_error("Adjustment days must be positive", days=float(days))
    if direction not in ("add", "subtract"):
        return validation_error("direction must be 'add' or 'subtract'", direction=direction)

    balance = lock_balance(db, balance.id)
    total = to_days(balance.total_entitlement)
    used = to_days(balance.used_days)

    if direction == "add":
        new_total = total + days
        delta = days
    else:
        new_total = total - days
        delta = -days
        if new_total < used:
            return business_rule(
                "Cannot subtract below the days already used",
                total_entitlement=float(total),
                used_days=float(used),
                requested=float(days),
            )

    balance.total_entitlement = new_total
    _log_transaction(db, balance, LedgerAction.ADJUST, delta, None, actor_id, reason)
    db.flush()
    logger.info(
        "Ledger adjusted: balance_id=%s %s %s days (%s)",
        balance.id, direction, days, reason
    )
    return Ok(balance)


def allocate(
    db: Session,
    company_id: int,
    employee_id: int,
    leave_type: LeaveType,
    fiscal_year: int,
    total_entitlement: Optional[Decimal] = None,
    expiry: Optional[date] = None,
    actor_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[LeaveBalance]:
    """
    Set the opening entitlement of a ledger row explicitly.

    When no amount is given the tenure formula of the leave type is used; that
    is refused for gradually accruing types, whose yearly amount comes from
    accrual.
    """
    if total_entitlement is None and leave_type.accrues_gradually:
        return validation_error(
            "total_entitlement is required for gradually accruing leave types",
            leave_type=leave_type.code,
        )

    ensured = ensure_balance(db, company_id, employee_id, leave_type, fiscal_year, today)
    if isinstance(ensured, Err):
        return ensured
    balance = ensured.value

    if total_entitlement is None:
        employment = employee_directory.get_active_employment(db, company_id, employee_id)
        if isinstance(employment, Err):
            return employment
        total_entitlement = opening_entitlement(leave_type, employment.value.start_date, today_or(today))

    total_entitlement = to_days(total_entitlement)
    used = to_days(balance.used_days)
    if total_entitlement < used:
        return business_rule(
            "Entitlement cannot be lower than the days already used",
            used_days=float(used),
            requested=float(total_entitlement),
        )

    delta = total_entitlement - to_days(balance.total_entitlement)
    balance.total_entitlement = total_entitlement
    if expiry is not None:
        balance.expiry_date = expiry
    _log_transaction(db, balance, LedgerAction.ALLOCATE, delta, None, actor_id, f"Allocated {total_entitlement}")
    db.flush()
    return Ok(balance)


def carry_over(
    db: Session,
    company_id: int,
    from_year: int,
    to_year: int,
    leave_type_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[dict]:
    """
    Add each employee's remaining days of from_year to the to_year opening balance.

    Only leave types that allow carry-over take part. A target row that already
    received a carry-over is skipped, so re-running is safe.
    """
    query = (
        db.query(LeaveBalance)
        .join(LeaveType, LeaveType.id == LeaveBalance.leave_type_id)
        .filter(
            LeaveBalance.company_id == company_id,
            LeaveBalance.fiscal_year == from_year,
            LeaveType.allows_carry_over.is_(True),
        )
    )
    if leave_type_id is not None:
        query = query.filter(LeaveBalance.leave_type_id == leave_type_id)
    source_rows = query.order_by(LeaveBalance.id).all()

    processed = 0
    carried = 0
    total_days = ZERO
    for source in source_rows:
        processed += 1
        view = view_balance(db, source, today)
        if isinstance(view, Err):
            logger.warning(
                "Skipping carry-over for balance_id=%s: %s", source.id, view.error.message
            )
            continue
        remaining = view.value.remaining_days
        if remaining <= 0:
            continue

        target_result = ensure_balance(db, company_id, source.employee_id, source.leave_type, to_year, today)
        if isinstance(target_result, Err):
            return target_result
        target = target_result.value

        already = db.query(LeaveTransaction.id).filter(
            LeaveTransaction.balance_id == target.id,
            LeaveTransaction.action == LedgerAction.CARRY_OVER.value,
        ).first()
        if already:
            continue

        target.total_entitlement = to_days(target.total_entitlement) + remaining
        _log_transaction(
            db, target, LedgerAction.CARRY_OVER, remaining, None, actor_id,
            f"Carried over from fiscal year {from_year}"
        )
        carried += 1
        total_days += remaining

    db.flush()
    logger.info(
        "Carry-over %s -> %s for company_id=%s: %d rows, %s days",
        from_year, to_year, company_id, carried, total_days
    )
    return Ok({"processed": processed, "carried_balances": carried, "total_days_carried": total_days})


def list_employee_balances(
    db: Session,
    company_id: int,
    employee_id: int,
    fiscal_year: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[List[BalanceView]]:
    query = db.query(LeaveBalance).filter(
        LeaveBalance.company_id == company_id,
        LeaveBalance.employee_id == employee_id,
    )
    if fiscal_year is not None:
        query = query.filter(LeaveBalance.fiscal_year == fiscal_year)

    views = []
    for balance in query.order_by(LeaveBalance.fiscal_year, LeaveBalance.leave_type_id).all():
        view = view_balance(db, balance, today)
        if isinstance(view, Err):
            return view
        views.append(view.value)
    return Ok(views)


def list_expiring(
    db: Session,
    company_id: int,
    within_days: int = 30,
    today: Optional[date] = None,
) -> Result[List[BalanceView]]:
    """Balances with remaining days whose expiry date falls within the window."""
    start = today_or(today)
    rows = (
        db.query(LeaveBalance)
        .filter(
            LeaveBalance.company_id == company_id,
            LeaveBalance.expiry_date.isnot(None),
            LeaveBalance.expiry_date >= start,
            LeaveBalance.expiry_date <= start + timedelta(days=within_days),
        )
        .order_by(LeaveBalance.expiry_date)
        .all()
    )
    views = []
    for balance in rows:
        view = view_balance(db, balance, today)
        if isinstance(view, Err):
            return view
        if view.value.remaining_days > 0:
            views.append(view.value)
    return Ok(views)


def notify_expiring(
    db: Session,
    company_id: int,
    within_days: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[int]:
    """
    Queue an expiry reminder for every employee with expiring days.

    Does nothing when the company has leave expiry switched off. The window
    defaults to the company's expiry_notification_days.
    """
    settings = resolve_settings(db, company_id)
    if not settings.enable_leave_expiry:
        logger.info("Leave expiry disabled for company_id=%s, no reminders sent", company_id)
        return Ok(0)
    if within_days is None:
        within_days = settings.expiry_notification_days

    expiring = list_expiring(db, company_id, within_days, today)
    if isinstance(expiring, Err):
        return expiring

    for view in expiring.value:
        employee = db.query(Employee).filter(Employee.id == view.employee_id).first()
        if employee is None:
            continue
        queue_notification(
            db,
            employee.email,
            f"Leave Expiry Reminder: {view.leave_type_code}",
            f"Dear {employee.full_name},\n\nYou have {format_days(view.remaining_days)} days of "
            f"{view.leave_type_code} leave that will expire on {view.expiry_date.isoformat()}.\n"
            "Please use your leave balance before it expires.",
        )
    return Ok(len(expiring.value))


def list_transactions(
    db: Session,
    company_id: int,
    employee_id: int,
    leave_type_id: Optional[int] = None,
    fiscal_year: Optional[int] = None,
) -> List[LeaveTransaction]:
    query = (
        db.query(LeaveTransaction)
        .join(LeaveBalance, LeaveBalance.id == LeaveTransaction.balance_id)
        .filter(
            LeaveTransaction.company_id == company_id,
            LeaveBalance.employee_id == employee_id,
        )
    )
    if leave_type_id is not None:
        query = query.filter(LeaveBalance.leave_type_id == leave_type_id)
    if fiscal_year is not None:
        query = query.filter(LeaveBalance.fiscal_year == fiscal_year)
    return query.order_by(LeaveTransaction.id).all()


def get_balance_view(
    db: Session,
    company_id: int,
    employee_id: int,
    leave_type_id: int,
    fiscal_year: int,
    today: Optional[date] = None,
) -> Result[BalanceView]:
    balance = find_balance(db, company_id, employee_id, leave_type_id, fiscal_year)
    if balance is None:
        return not_found(
            "Leave balance not found",
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            fiscal_year=fiscal_year,
        )
    return view_balance(db, balance, today)


def allocate_balance(
    db: Session,
    company_id: int,
    request: AllocateRequest,
    actor_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[BalanceView]:
    """HR entry point for allocate: resolves the leave type and returns the refreshed view."""
    leave_type = leave_type_service.resolve_leave_type(db, company_id, request.leave_type_id)
    if isinstance(leave_type, Err):
        return leave_type
    if not employee_directory.employee_exists(db, company_id, request.employee_id):
        return not_found("Employee not found", employee_id=request.employee_id)

    allocated = allocate(
        db, company_id, request.employee_id, leave_type.value, request.fiscal_year,
        total_entitlement=request.total_entitlement,
        expiry=request.expiry_date,
        actor_id=actor_id,
        today=today,
    )
    if isinstance(allocated, Err):
        return allocated
    return view_balance(db, allocated.value, today)


def adjust_balance(
    db: Session,
    company_id: int,
    request: AdjustRequest,
    actor_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[BalanceView]:
    balance = find_balance(
        db, company_id, request.employee_id, request.leave_type_id, request.fiscal_year, lock=True
    )
    if balance is None:
        return not_found(
            "Leave balance not found",
            employee_id=request.employee_id,
            leave_type_id=request.leave_type_id,
            fiscal_year=request.fiscal_year,
        )
    adjusted = adjust(db, balance, request.days, request.direction, request.reason, actor_id)
    if isinstance(adjusted, Err):
        return adjusted
    return view_balance(db, adjusted.value, today)
