"""
Tests for the working-day counter
"""
from datetime import date
from types import SimpleNamespace

from leave_engine.services.working_days import (
    WorkCalendar,
    calendar_days,
    count_leave_days,
    day_weight,
    return_date,
    working_days,
)

MONDAY = date(2026, 10, 12)
FRIDAY = date(2026, 10, 16)
SATURDAY = date(2026, 10, 17)
SUNDAY = date(2026, 10, 18)


def test_full_week_counts_half_saturday_and_no_sunday():
    assert working_days(MONDAY, SUNDAY, WorkCalendar()) == 5.5


def test_full_saturday_when_half_days_disabled():
    calendar = WorkCalendar(saturday_half_day=False)
    assert day_weight(SATURDAY, calendar) == 1.0
    assert working_days(MONDAY, SUNDAY, calendar) == 6.0


def test_sunday_counts_when_not_off():
    calendar = WorkCalendar(sunday_off=False)
    assert working_days(SATURDAY, SUNDAY, calendar) == 1.5


def test_holidays_are_excluded():
    calendar = WorkCalendar(holidays=frozenset({date(2026, 10, 14)}))
    assert working_days(MONDAY, FRIDAY, calendar) == 4.0


def test_holiday_on_saturday_counts_zero():
    calendar = WorkCalendar(holidays=frozenset({SATURDAY}))
    assert day_weight(SATURDAY, calendar) == 0.0


def test_single_day_and_reversed_range():
    assert working_days(MONDAY, MONDAY, WorkCalendar()) == 1.0
    assert working_days(FRIDAY, MONDAY, WorkCalendar()) == 0.0


def test_return_date_is_next_day_that_is_not_a_full_rest_day():
    # Saturday is a half working day, so the employee is back on Saturday
    assert return_date(FRIDAY, WorkCalendar()) == SATURDAY


def test_return_date_skips_sunday_and_holidays():
    calendar = WorkCalendar(holidays=frozenset({date(2026, 10, 19)}))
    assert return_date(SATURDAY, calendar) == date(2026, 10, 20)


def test_calendar_days_inclusive():
    assert calendar_days(MONDAY, SUNDAY) == 7.0
    assert calendar_days(SUNDAY, MONDAY) == 0.0


def test_count_leave_days_uses_calendar_days_for_flagged_types():
    maternity = SimpleNamespace(code="MATERNITY_POST", uses_calendar_days=True)
    annual = SimpleNamespace(code="ANNUAL", uses_calendar_days=False)

    assert count_leave_days(maternity, MONDAY, SUNDAY, WorkCalendar()) == 7.0
    assert count_leave_days(annual, MONDAY, SUNDAY, WorkCalendar()) == 5.5


def test_count_leave_days_recognises_paternity_code_without_flag():
    paternity = SimpleNamespace(code="PATERNITY", uses_calendar_days=False)
    assert count_leave_days(paternity, FRIDAY, SUNDAY, WorkCalendar()) == 3.0
