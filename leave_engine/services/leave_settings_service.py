"""
Leave settings registry: company leave policy with documented defaults
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from leave_engine.core import constants
from leave_engine.core.result import Ok, Result, validation_error
from leave_engine.models.leave_settings import AccrualBasis, EncashmentRounding, LeaveSettings
from leave_engine.schemas.settings import LeaveSettingsUpdate

logger = logging.getLogger(__name__)


def default_settings(company_id: int) -> LeaveSettings:
    """An unsaved settings object carrying the documented defaults."""
    return LeaveSettings(
        company_id=company_id,
        saturday_half_day=True,
        sunday_off=True,
        fiscal_year_start_month=constants.DEFAULT_FISCAL_YEAR_START_MONTH,
        accrual_basis=AccrualBasis.ANNIVERSARY,
        annual_leave_base_days=constants.DEFAULT_ANNUAL_LEAVE_BASE_DAYS,
        accrual_divisor=constants.DEFAULT_ACCRUAL_DIVISOR,
        increment_period_years=constants.DEFAULT_INCREMENT_PERIOD_YEARS,
        increment_amount=constants.DEFAULT_INCREMENT_AMOUNT,
        max_annual_leave_cap=None,
        require_ceo_approval_for_managers=True,
        enable_leave_expiry=True,
        expiry_notification_days=constants.DEFAULT_EXPIRY_NOTIFICATION_DAYS,
        enable_encashment=False,
        encashment_salary_divisor=constants.DEFAULT_ENCASHMENT_SALARY_DIVISOR,
        max_encashment_days=None,
        encashment_rounding=EncashmentRounding.ROUND,
        policy_version=0,
        policy_effective_date=None,
    )


def get_stored_settings(db: Session, company_id: int) -> Optional[LeaveSettings]:
    return db.query(LeaveSettings).filter(LeaveSettings.company_id == company_id).first()


def resolve_settings(db: Session, company_id: int) -> LeaveSettings:
    """
    Get leave settings for a company.

    Returns the stored row, or an unsaved object with defaults applied when the
    company has never saved settings. Nothing is written.
    """
    stored = get_stored_settings(db, company_id)
    if stored is not None:
        return stored
    return default_settings(company_id)


def _validate_changes(changes: dict) -> Optional[str]:
    month = changes.get("fiscal_year_start_month")
    if month is not None and not 1 <= month <= 12:
        return "fiscal_year_start_month must be between 1 and 12"

    divisor = changes.get("accrual_divisor")
    if divisor is not None and not 1 <= divisor <= 400:
        return "accrual_divisor must be between 1 and 400"

    base = changes.get("annual_leave_base_days")
    if base is not None and base < 0:
        return "annual_leave_base_days cannot be negative"

    period = changes.get("increment_period_years")
    if period is not None and period < 0:
        return "increment_period_years cannot be negative"

    amount = changes.get("increment_amount")
    if amount is not None and amount < 0:
        return "increment_amount cannot be negative"

    cap = changes.get("max_annual_leave_cap")
    if cap is not None and cap <= 0:
        return "max_annual_leave_cap must be positive"

    notice = changes.get("expiry_notification_days")
    if notice is not None and not 0 <= notice <= 365:
        return "expiry_notification_days must be between 0 and 365"

    salary_divisor = changes.get("encashment_salary_divisor")
    if salary_divisor is not None and not 1 <= salary_divisor <= 31:
        return "encashment_salary_divisor must be between 1 and 31"

    max_days = changes.get("max_encashment_days")
    if max_days is not None and max_days < 0:
        return "max_encashment_days cannot be negative"
    return None


def upsert_settings(
    db: Session,
    company_id: int,
    request: LeaveSettingsUpdate,
    today: Optional[date] = None,
) -> Result[LeaveSettings]:
    """
    Create or update the company's settings row.

    Every save bumps policy_version; the effective date defaults to today.
    """
    changes = request.model_dump(exclude_unset=True)
    error = _validate_changes(changes)
    if error:
        return validation_error(error)

    settings = get_stored_settings(db, company_id)
    if settings is None:
        settings = default_settings(company_id)
        db.add(settings)

    for field, value in changes.items():
        setattr(settings, field, value)

    settings.policy_version = (settings.policy_version or 0) + 1
    if "policy_effective_date" not in changes:
        settings.policy_effective_date = today or date.today()

    db.flush()
    logger.info(
        "Leave settings saved: company_id=%s version=%s fields=%s",
        company_id, settings.policy_version, sorted(changes)
    )
    return Ok(settings)
