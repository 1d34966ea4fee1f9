"""Date parsing and reporting ranges shared by fines, indexes, reports and reminders."""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple

from feedesk.core.enums import QuickRange

# Sheet timestamps arrive in UTC; the school works in IST.
IST = timezone(timedelta(hours=5, minutes=30), "IST")

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLASH_DAY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a sheet date into a naive IST datetime.

    Accepts YYYY-MM-DD, D/M/YYYY, ISO timestamps and date/datetime objects.
    Returns None for anything else instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_ist_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    text = str(value).strip()
    if not text:
        return None
    try:
        if _ISO_DAY.match(text):
            return datetime.strptime(text, "%Y-%m-%d")
        m = _SLASH_DAY.match(text)
        if m:
            day, month, year = (int(g) for g in m.groups())
            return datetime(year, month, day)
        return _to_ist_naive(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def parse_day(value: Any) -> Optional[date]:
    parsed = parse_date(value)
    return parsed.date() if parsed else None


def _to_ist_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(IST).replace(tzinfo=None)


def today_ist() -> date:
    return datetime.now(IST).date()


def indian_fiscal_year(today: Optional[date] = None) -> Tuple[date, date]:
    """April 1 to March 31; months before April belong to the previous year's FY."""
    today = today or today_ist()
    start_year = today.year if today.month >= 4 else today.year - 1
    return date(start_year, 4, 1), date(start_year + 1, 3, 31)


def quick_range(mode: QuickRange, today: Optional[date] = None) -> Optional[Tuple[date, date]]:
    """Bounds for a quick-range selector. CUSTOM has no bounds of its own."""
    today = today or today_ist()
    if mode == QuickRange.TODAY:
        return today, today
    if mode == QuickRange.WEEK:
        return today - timedelta(days=today.weekday()), today
    if mode == QuickRange.MONTH:
        return today.replace(day=1), today
    if mode == QuickRange.FISCAL_YEAR:
        return indian_fiscal_year(today)
    return None


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)
