# prayer_attendance/backend/modules/day_keys.py

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from ..config.config import settings


def school_timezone() -> timezone:
    """The fixed-offset timezone the school's calendar days are counted in."""
    return timezone(timedelta(hours=settings.UTC_OFFSET_HOURS))


def local_now() -> datetime:
    return datetime.now(school_timezone())


def date_key(moment: Optional[datetime] = None) -> str:
    """
    Returns the YYYY-MM-DD key of the local calendar day containing `moment`.
    Naive datetimes are taken as already being local time.
    """
    moment = moment or local_now()
    if moment.tzinfo is not None:
        moment = moment.astimezone(school_timezone())
    return moment.strftime("%Y-%m-%d")


def epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=school_timezone())
    return int(moment.timestamp() * 1000)


def time_of_day(timestamp_ms: int) -> str:
    """HH:MM of an epoch-millisecond timestamp, in school time."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=school_timezone())
    return moment.strftime("%H:%M")


def parse_date_key(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def days_in_range(start: str, end: str) -> List[str]:
    """
    Every calendar day from `start` to `end` inclusive, as date keys.
    Raises ValueError when the range is reversed or longer than MAX_RANGE_DAYS.
    """
    first = parse_date_key(start)
    last = parse_date_key(end)
    if first > last:
        raise ValueError(f"Range start {start} is after range end {end}.")

    span = (last - first).days + 1
    if span > settings.MAX_RANGE_DAYS:
        raise ValueError(f"Range covers {span} days; at most {settings.MAX_RANGE_DAYS} are allowed.")

    return [(first + timedelta(days=offset)).strftime("%Y-%m-%d") for offset in range(span)]


def check_month_key(value: str) -> str:
    """Validates a YYYY-MM month key and returns it unchanged."""
    if len(value) != 7:
        raise ValueError(f"Month must be in YYYY-MM format, got '{value}'.")
    datetime.strptime(value, "%Y-%m")
    return value
