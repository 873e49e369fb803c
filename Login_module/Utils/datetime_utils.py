"""
DateTime utility functions - all operations use the configured local zone (APP_TIMEZONE).
Daily codes roll over at local midnight, so "today" must never be taken from UTC.
"""
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from config import settings


@lru_cache
def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.APP_TIMEZONE)


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is in the local zone.
    Naive datetimes are assumed to already be local (SQLite drops tzinfo on read).
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=local_zone())

    return dt.astimezone(local_zone())


def now_local() -> datetime:
    """Current timezone-aware local datetime."""
    return datetime.now(local_zone())


def today_local() -> date:
    """Current calendar date in the local zone."""
    return now_local().date()


def days_ago(days: int) -> datetime:
    return now_local() - timedelta(days=days)
