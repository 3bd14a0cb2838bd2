import dateparser
from datetime import date, datetime, timedelta
from typing import Optional
import pytz
import re

from teamtravel.config import settings

_WEEKDAYS = {
    'monday': 0, 'tuesday': 1, 'wednesday': 2, 'thursday': 3,
    'friday': 4, 'saturday': 5, 'sunday': 6
}


def get_current_datetime(tz: str = None) -> datetime:
    """Current datetime in the configured (or given) timezone."""
    return datetime.now(pytz.timezone(tz or settings.TZ))


def _parse_next_weekday(text: str, base_date: datetime) -> Optional[datetime]:
    """'next Friday', 'this Monday', 'Friday' relative to base_date."""
    text_lower = text.lower().strip()
    for day_name, day_num in _WEEKDAYS.items():
        if day_name in text_lower:
            days_until = (day_num - base_date.weekday()) % 7
            if 'this' in text_lower:
                pass
            elif days_until == 0:
                # bare or "next" weekday on the same weekday means a week out
                days_until = 7
            return base_date + timedelta(days=days_until)
    return None


def parse_date(text: str, base: datetime = None) -> Optional[date]:
    """Best-effort free-text date parsing; None when nothing date-like is found."""
    if not text or not text.strip():
        return None
    base_date = base or get_current_datetime()

    if re.search(r'\b(next|this)?\s*(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b', text, re.IGNORECASE):
        dt = _parse_next_weekday(text, base_date)
        if dt:
            return dt.date()

    text_lower = text.lower().strip()
    if text_lower == 'today':
        return base_date.date()
    if text_lower == 'tomorrow':
        return (base_date + timedelta(days=1)).date()

    naive_base = base_date.replace(tzinfo=None)
    dt = dateparser.parse(text, settings={"RELATIVE_BASE": naive_base, "PREFER_DATES_FROM": "future"})
    if dt:
        return dt.date()
    return None


def format_duration_minutes(total_minutes: int) -> str:
    """85 -> "1h 25m"."""
    if total_minutes is None or total_minutes < 0:
        return ""
    h = total_minutes // 60
    m = total_minutes % 60
    return f"{h}h {m}m"


def format_clock(dt: datetime) -> str:
    """Wall-clock time as '9:05 AM'."""
    return dt.strftime("%I:%M %p").lstrip("0")


def format_day(d: date) -> str:
    """'Mar 5'."""
    return f"{d.strftime('%b')} {d.day}"
