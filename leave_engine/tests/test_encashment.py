"""
Tests for leave encashment
"""
from datetime import date
from decimal import Decimal

from leave_engine.core.result import Err, ErrorKind, Ok
from leave_engine.models.leave_settings import EncashmentRounding
from leave_engine.schemas.settings import LeaveSettingsUpdate
from leave_engine.services import ledger_service
from leave_engine.services.encashment_service import cash_value, quote_encashment
from leave_engine.services.leave_settings_service import upsert_settings


def test_cash_value_uses_salary_divisor():
    value = cash_value(Decimal("10"), Decimal("3000"), divisor=30)

    assert value.eligible_days == Decimal("10")
    assert value.daily_rate == Decimal("100.00")
    assert value.cash_value == Decimal("1000.00")


def test_cash_value_rounding_modes():
    rounded = cash_value(Decimal("10"), Decimal("1000"), 30, rounding=EncashmentRounding.ROUND)
    floored = cash_value(Decimal("10"), Decimal("1000"), 30, rounding=EncashmentRounding.FLOOR)
    ceiled = cash_value(Decimal("10"), Decimal("1000"), 30, rounding=EncashmentRounding.CEIL)

    assert rounded.daily_rate == floored.daily_rate == ceiled.daily_rate == Decimal("33.33")
    assert rounded.cash_value == Decimal("333.33")
    assert floored.cash_value == Decimal("333.33")
    assert ceiled.cash_value == Decimal("333.34")


def test_cash_value_respects_max_days():
    value = cash_value(Decimal("10"), Decimal("1000"), 30, max_days=Decimal("5"))

    assert value.eligible_days == Decimal("5")
    assert value.cash_value == Decimal("166.67")


def test_negative_remaining_is_worth_nothing():
    value = cash_value(Decimal("-2"), Decimal("3000"), 30)
    assert value.eligible_days == Decimal("0")
    assert value.cash_value == Decimal("0.00")


def test_quote_requires_encashment_enabled(db, company, staff_employee, leave_types):
    result = quote_encashment(db, company.id, staff_employee.id, 2026, today=date(2026, 6, 1))

    assert isinstance(result, Err)
    assert result.error.kind == ErrorKind.BUSINESS_RULE_VIOLATION


def test_quote_values_remaining_annual_leave(db, company, staff_employee, leave_types):
    upsert_settings(db, company.id, LeaveSettingsUpdate(enable_encashment=True, max_encashment_days=Decimal("10")))
    ledger_service.allocate(
        db, company.id, staff_employee.id, leave_types["ANNUAL"], 2026,
        total_entitlement=Decimal("12"), today=date(2026, 1, 1),
    )
    db.commit()

    # Hired 2020-01-01: the new period starts on 2026-01-01, so nothing has accrued yet
    result = quote_encashment(db, company.id, staff_employee.id, 2026, today=date(2026, 1, 1))

    assert isinstance(result, Ok)
    quote = result.value
    assert quote["remaining_days"] == Decimal("12")
    assert quote["eligible_days"] == Decimal("10")
    assert quote["daily_rate"] == Decimal("100.00")
    assert quote["cash_value"] == Decimal("1000.00")
