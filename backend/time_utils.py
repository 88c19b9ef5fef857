import os
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def _timezone() -> ZoneInfo:
    name = os.environ.get("APP_TIMEZONE", "Asia/Kolkata")
    return ZoneInfo(name)


def now_tz() -> datetime:
    return datetime.now(_timezone())


def ensure_timezone(dt: datetime) -> datetime:
    # Naive values come back from SQLite; they are stored as UTC.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(_timezone())


def utc_cutoff(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def format_local(dt: Optional[datetime], fmt: str = "%d/%m/%Y %H:%M") -> str:
    if dt is None:
        return ""
    return ensure_timezone(dt).strftime(fmt)
