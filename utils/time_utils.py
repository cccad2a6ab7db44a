"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Timezone-aware UTC timestamps
- Invoice date parsing (day-first, as printed on receipts)
- Receipt age and session idle checks
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    """
    Returns the current time as an aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Treats naive datetimes as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_invoice_date(raw: Optional[str]) -> Optional[datetime]:
    """
    Parses a receipt date such as "15/01/2025 10:32" or "2025-01-15".

    Slashed dates are read day-first. Returns None for empty or unreadable input.
    """
    if not raw or not str(raw).strip():
        return None
    text = str(raw).strip()
    try:
        parsed = date_parser.parse(text, dayfirst="/" in text or "." in text)
    except (ValueError, OverflowError):
        return None
    return ensure_aware(parsed)


def is_older_than_months(dt: datetime, months: int, now: Optional[datetime] = None) -> bool:
    """
    Checks whether dt lies more than `months` calendar months before now.
    """
    now = now or utcnow()
    return ensure_aware(dt) < now - relativedelta(months=months)


def is_idle(last_activity: datetime, idle_hours: int, now: Optional[datetime] = None) -> bool:
    """
    Checks if a session has been idle for longer than idle_hours.
    """
    now = now or utcnow()
    return now - ensure_aware(last_activity) > timedelta(hours=idle_hours)


def format_date(dt: Optional[datetime], format_str: str = "%d %b %Y") -> str:
    """
    Formats a datetime for chat messages.
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)
