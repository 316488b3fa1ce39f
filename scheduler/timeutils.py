"""
Time helpers shared by conflict detection and the daily aggregator.

All comparisons happen on absolute (UTC) instants. Calendar-day questions
("is this on the 14th?") are answered in the clinic time zone, never by UTC
midnight.
"""

from datetime import date as date_type, datetime, timedelta
from typing import Optional, Union

import pytz

from .settings import CLINIC_TIMEZONE


def clinic_timezone() -> pytz.tzinfo.BaseTzInfo:
    return pytz.timezone(CLINIC_TIMEZONE)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as clinic-local wall time."""
    if value.tzinfo is None:
        value = clinic_timezone().localize(value)
    return value.astimezone(pytz.UTC)


def parse_instant(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime. Raises ValueError."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not a timestamp: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def try_parse_instant(value) -> Optional[datetime]:
    """Lenient variant for row data: None instead of an exception."""
    if value is None:
        return None
    try:
        return parse_instant(value)
    except ValueError:
        return None


def session_end(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def ranges_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open intervals: back-to-back sessions do not overlap."""
    return as_utc(start1) < as_utc(end2) and as_utc(end1) > as_utc(start2)


def local_date(instant: datetime) -> date_type:
    """Calendar date of an instant in the clinic time zone."""
    return as_utc(instant).astimezone(clinic_timezone()).date()


def format_local_time(instant: datetime) -> str:
    """e.g. '9:30 AM'"""
    local = as_utc(instant).astimezone(clinic_timezone())
    return local.strftime("%I:%M %p").lstrip("0")
