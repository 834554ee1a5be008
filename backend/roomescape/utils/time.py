from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from ..config import get_settings


def business_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().business_timezone)


def now_local() -> datetime:
    """Naive wall-clock time in the business time zone; slots are stored the same way."""
    return datetime.now(business_zone()).replace(tzinfo=None)


def slot_starts_at(slot_date: date, start_at: time) -> datetime:
    return datetime.combine(slot_date, start_at)
