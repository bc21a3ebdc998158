"""
Accrual calculator - time-proportional leave entitlement.

Pure functions: the accrued amount is recomputed on every read from the hire
date and the current policy, and is never written to the ledger.
"""
import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from leave_engine.models.leave_settings import AccrualBasis

TWO_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")

Number = Union[int, float, Decimal]


@dataclass(frozen=True)
class AccrualResult:
    accrued_days: Decimal
    annual_entitlement: Decimal
    daily_rate: Decimal
    tenure_bonus_days: Decimal
    days_in_period: int
    period_start: date


def _to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def add_months(d: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))


def anniversary_in_year(hire_date: date, year: int) -> date:
    """The hire-date anniversary in the given year; Feb 29 snaps to Feb 28."""
    try:
        return hire_date.replace(year=year)
    except ValueError:
        return date(year, 2, 28)


def years_of_service(hire_date: date, as_of: date) -> int:
    """Whole elapsed years between hire date and as_of."""
    if as_of < hire_date:
        return 0
    years = as_of.year - hire_date.year
    if as_of < anniversary_in_year(hire_date, as_of.year):
        years -= 1
    return max(years, 0)


def fiscal_year_for(d: date, start_month: int = 1) -> int:
    """Fiscal years are labelled by the calendar year they start in."""
    return d.year if d.month >= start_month else d.year - 1


def fiscal_year_start(fiscal_year: int, start_month: int = 1) -> date:
    return date(fiscal_year, start_month, 1)


def fiscal_year_end(fiscal_year: int, start_month: int = 1) -> date:
    return fiscal_year_start(fiscal_year + 1, start_month) - timedelta(days=1)


def expiry_date(fiscal_year: int, expiry_months: Optional[int], start_month: int = 1) -> Optional[date]:
    """Carried-over days expire this many months after the fiscal year ends."""
    if not expiry_months:
        return None
    return add_months(fiscal_year_start(fiscal_year + 1, start_month), expiry_months)


def calculate_leave_entitlement(
    base_days: Number,
    increment_amount: Number,
    years: int,
    increment_period_years: int,
    cap: Optional[Number] = None,
) -> Decimal:
    """
    Full-period entitlement with tenure increments.

    base + increment × floor(years / period), clamped to cap when set.
    Used as-is by non-accruing leave types.
    """
    base = _to_decimal(base_days)
    increment = _to_decimal(increment_amount)
    bonus = Decimal("0")
    if increment_period_years and increment_period_years > 0 and years > 0:
        bonus = increment * (years // increment_period_years)

    total = base + bonus
    if cap is not None and total > _to_decimal(cap):
        total = _to_decimal(cap)
    return total


def accrue(
    hire_date: date,
    as_of: date,
    base_days: Number,
    divisor: int,
    fiscal_year_start_month: int,
    increment_period_years: int,
    increment_amount: Number,
    cap: Optional[Number],
    basis: AccrualBasis,
) -> AccrualResult:
    """
    Accrued-to-date entitlement for the current service period.

    The period starts at the latest hire-date anniversary (ANNIVERSARY) or the
    latest fiscal-year start (CALENDAR_YEAR), never before the hire date. Days
    elapsed are counted from that start, so the anniversary itself yields 0.

    Args:
        hire_date: Start of the active employment
        as_of: Evaluation date
        base_days: Annual base entitlement
        divisor: Days over which the annual amount accrues (e.g. 365)
        fiscal_year_start_month: 1-12, used by CALENDAR_YEAR basis
        increment_period_years: Years of service per tenure increment
        increment_amount: Days added per completed increment period
        cap: Upper bound on the annual entitlement, or None
        basis: AccrualBasis.ANNIVERSARY or AccrualBasis.CALENDAR_YEAR

    Returns:
        AccrualResult with the accrued days rounded to 2 places
    """
    years = years_of_service(hire_date, as_of)
    annual = calculate_leave_entitlement(base_days, increment_amount, years, increment_period_years, cap)
    tenure_bonus = annual - _to_decimal(base_days)
    if tenure_bonus < 0:
        tenure_bonus = Decimal("0")
    daily_rate = annual / Decimal(divisor) if divisor else Decimal("0")

    if basis == AccrualBasis.CALENDAR_YEAR:
        period_start = fiscal_year_start(fiscal_year_for(as_of, fiscal_year_start_month), fiscal_year_start_month)
    else:
        period_start = anniversary_in_year(hire_date, as_of.year)
        if period_start > as_of:
            period_start = anniversary_in_year(hire_date, as_of.year - 1)

    accrual_start = max(period_start, hire_date)

    # Before the hire date nothing has accrued
    days = max((as_of - accrual_start).days, 0)
    accrued = min(round2(daily_rate * days), annual)

    return AccrualResult(
        accrued_days=accrued,
        annual_entitlement=annual,
        daily_rate=daily_rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP),
        tenure_bonus_days=tenure_bonus,
        days_in_period=days,
        period_start=accrual_start,
    )
