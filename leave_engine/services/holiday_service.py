"""
Holiday store and working calendar loader
"""
import logging
from datetime import date
from typing import List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session

from leave_engine.core.result import Ok, Result, conflict
from leave_engine.models.holiday import PublicHoliday
from leave_engine.schemas.holiday import HolidayCreate
from leave_engine.services.leave_settings_service import resolve_settings
from leave_engine.services.working_days import WorkCalendar

logger = logging.getLogger(__name__)


def _same_day_in_year(d: date, year: int) -> date:
    try:
        return d.replace(year=year)
    except ValueError:
        # Feb 29 in a non-leap year
        return date(year, 2, 28)


def get_holidays_in_range(db: Session, company_id: int, start: date, end: date) -> Set[date]:
    """
    Holiday dates of the company falling in [start, end].

    Recurring holidays are expanded into every year of the range.
    """
    rows = db.query(PublicHoliday).filter(
        PublicHoliday.company_id == company_id,
        or_(
            PublicHoliday.is_recurring.is_(True),
            PublicHoliday.date.between(start, end),
        ),
    ).all()

    holidays = set()
    for holiday in rows:
        if not holiday.is_recurring:
            holidays.add(holiday.date)
            continue
        for year in range(start.year, end.year + 1):
            occurrence = _same_day_in_year(holiday.date, year)
            if start <= occurrence <= end:
                holidays.add(occurrence)
    return holidays


def load_calendar(db: Session, company_id: int, start: date, end: date) -> WorkCalendar:
    """Build the working calendar for [start, end] from settings and the holiday store."""
    settings = resolve_settings(db, company_id)
    return WorkCalendar(
        saturday_half_day=settings.saturday_half_day,
        sunday_off=settings.sunday_off,
        holidays=frozenset(get_holidays_in_range(db, company_id, start, end)),
    )


def list_holidays(db: Session, company_id: int, year: Optional[int] = None) -> List[PublicHoliday]:
    query = db.query(PublicHoliday).filter(PublicHoliday.company_id == company_id)
    if year is not None:
        query = query.filter(or_(
            PublicHoliday.is_recurring.is_(True),
            PublicHoliday.date.between(date(year, 1, 1), date(year, 12, 31)),
        ))
    return query.order_by(PublicHoliday.date).all()


def create_holiday(db: Session, company_id: int, request: HolidayCreate) -> Result[PublicHoliday]:
    existing = db.query(PublicHoliday).filter(
        PublicHoliday.company_id == company_id,
        PublicHoliday.date == request.date,
    ).first()
    if existing:
        return conflict(f"Holiday already exists for date {request.date}", date=request.date.isoformat())

    holiday = PublicHoliday(
        company_id=company_id,
        date=request.date,
        name=request.name,
        is_recurring=request.is_recurring,
    )
    db.add(holiday)
    db.flush()
    logger.info("Holiday created: company_id=%s date=%s name=%s", company_id, request.date, request.name)
    return Ok(holiday)
