"""
Encashment calculator - advisory cash value of unused leave days
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.orm import Session

from leave_engine.core.constants import ANNUAL_LEAVE_CODE
from leave_engine.core.result import Err, Ok, Result, business_rule, not_found, validation_error
from leave_engine.models.leave_settings import EncashmentRounding
from leave_engine.services import accrual_service, employee_directory, ledger_service, leave_type_service
from leave_engine.services.leave_settings_service import resolve_settings
from leave_engine.utils.datetime_utils import today_or

_ROUNDING = {
    EncashmentRounding.ROUND: ROUND_HALF_UP,
    EncashmentRounding.FLOOR: ROUND_FLOOR,
    EncashmentRounding.CEIL: ROUND_CEILING,
}


@dataclass(frozen=True)
class EncashmentValue:
    eligible_days: Decimal
    daily_rate: Decimal
    cash_value: Decimal


def cash_value(
    remaining_days: Decimal,
    monthly_salary: Decimal,
    divisor: int = 30,
    max_days: Optional[Decimal] = None,
    rounding: EncashmentRounding = EncashmentRounding.ROUND,
) -> EncashmentValue:
    """
    Value unused leave days in currency.

    eligible = min(remaining, max_days) when a maximum is set; the daily rate
    is monthly_salary / divisor. The cash value is computed from the unrounded
    rate and rounded to 2 places using the configured mode; the reported daily
    rate is always rounded half-up.
    """
    remaining = ledger_service.to_days(remaining_days)
    salary = ledger_service.to_days(monthly_salary)
    if remaining < 0:
        remaining = Decimal("0")

    eligible = remaining if max_days is None else min(remaining, ledger_service.to_days(max_days))
    mode = _ROUNDING[EncashmentRounding(rounding)]
    daily_rate = salary / Decimal(divisor)

    return EncashmentValue(
        eligible_days=eligible,
        daily_rate=daily_rate.quantize(accrual_service.TWO_PLACES, rounding=ROUND_HALF_UP),
        cash_value=(daily_rate * eligible).quantize(accrual_service.TWO_PLACES, rounding=mode),
    )


def quote_encashment(
    db: Session,
    company_id: int,
    employee_id: int,
    fiscal_year: Optional[int] = None,
    today: Optional[date] = None,
) -> Result[dict]:
    """Advisory quote for cashing out the employee's remaining annual leave."""
    settings = resolve_settings(db, company_id)
    if not settings.enable_encashment:
        return business_rule("Leave encashment is not enabled for this company")

    profile = employee_directory.get_employee(db, company_id, employee_id)
    if isinstance(profile, Err):
        return profile
    if profile.value.monthly_salary is None:
        return validation_error("Employee has no monthly salary on record", employee_id=employee_id)

    annual = leave_type_service.resolve_leave_type_by_code(db, company_id, ANNUAL_LEAVE_CODE)
    if isinstance(annual, Err):
        return annual

    if fiscal_year is None:
        fiscal_year = accrual_service.fiscal_year_for(today_or(today), settings.fiscal_year_start_month)
    balance = ledger_service.find_balance(db, company_id, employee_id, annual.value.id, fiscal_year)
    if balance is None:
        return not_found("No annual leave balance for the fiscal year", fiscal_year=fiscal_year)
    view = ledger_service.view_balance(db, balance, today)
    if isinstance(view, Err):
        return view

    value = cash_value(
        view.value.remaining_days,
        profile.value.monthly_salary,
        settings.encashment_salary_divisor,
        settings.max_encashment_days,
        settings.encashment_rounding,
    )
    return Ok({
        "employee_id": employee_id,
        "fiscal_year": fiscal_year,
        "remaining_days": view.value.remaining_days,
        "eligible_days": value.eligible_days,
        "monthly_salary": ledger_service.to_days(profile.value.monthly_salary),
        "daily_rate": value.daily_rate,
        "cash_value": value.cash_value,
    })
