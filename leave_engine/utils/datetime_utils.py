"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
"""
from datetime import date, datetime, timezone
from typing import Optional

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for responded_at and similar audit stamps."""
    return datetime.now(UTC)


def today_or(today: Optional[date]) -> date:
    """The evaluation date: the injected one when given, else the current date."""
    return today or date.today()
