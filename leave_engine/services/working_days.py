"""
Working-day counter

Pure functions over a WorkCalendar: no database access, so the same counting is
shared by application creation and recall restoration.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import FrozenSet

from leave_engine.core.constants import CALENDAR_DAY_LEAVE_CODES
from leave_engine.models.leave import LeaveType

SATURDAY = 5
SUNDAY = 6

# Upper bound when searching for the next working day
_MAX_RETURN_DATE_SCAN_DAYS = 366


@dataclass(frozen=True)
class WorkCalendar:
    saturday_half_day: bool = True
    sunday_off: bool = True
    holidays: FrozenSet[date] = field(default_factory=frozenset)


def is_rest_day(check_date: date, calendar: WorkCalendar) -> bool:
    """A full rest day: a holiday, or a Sunday when Sundays are off."""
    if check_date in calendar.holidays:
        return True
    return calendar.sunday_off and check_date.weekday() == SUNDAY


def day_weight(check_date: date, calendar: WorkCalendar) -> float:
    """Leave days consumed by taking check_date off: 0, 0.5 or 1."""
    if is_rest_day(check_date, calendar):
        return 0.0
    if calendar.saturday_half_day and check_date.weekday() == SATURDAY:
        return 0.5
    return 1.0


def working_days(start: date, end: date, calendar: WorkCalendar) -> float:
    """
    Count working days in [start, end] inclusive.

    Sundays (when off) and holidays count 0, Saturdays count 0.5 when the
    calendar has half-day Saturdays, every other day counts 1.

    Returns:
        Number of leave days (float, supports half days)
    """
    if start > end:
        return 0.0

    total = 0.0
    current = start
    while current <= end:
        total += day_weight(current, calendar)
        current += timedelta(days=1)
    return total


def calendar_days(start: date, end: date) -> float:
    """Inclusive calendar-day count."""
    if start > end:
        return 0.0
    return float((end - start).days + 1)


def return_date(end: date, calendar: WorkCalendar) -> date:
    """First day after end that is neither a holiday nor an off Sunday."""
    candidate = end + timedelta(days=1)
    for _ in range(_MAX_RETURN_DATE_SCAN_DAYS):
        if not is_rest_day(candidate, calendar):
            return candidate
        candidate += timedelta(days=1)
    return candidate


def uses_calendar_days(leave_type: LeaveType) -> bool:
    """Maternity and paternity style types consume calendar days."""
    return bool(leave_type.uses_calendar_days) or leave_type.code in CALENDAR_DAY_LEAVE_CODES


def count_leave_days(leave_type: LeaveType, start: date, end: date, calendar: WorkCalendar) -> float:
    """Days consumed by a leave of this type over [start, end]."""
    if uses_calendar_days(leave_type):
        return calendar_days(start, end)
    return working_days(start, end, calendar)
