"""
Utility functions for working with Manila timezone
All wall-clock operations in the console use Asia/Manila (UTC+8)
"""

from datetime import date, datetime

import pytz

MANILA_TZ = pytz.timezone('Asia/Manila')
EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)


def manila_now():
    """
    Get current datetime in Manila timezone (timezone-aware)

    Returns:
        datetime: Current time in Manila timezone
    """
    return datetime.now(MANILA_TZ)


def manila_now_naive():
    """
    Current Manila time without tzinfo, for database columns that
    don't store timezone info
    """
    return manila_now().replace(tzinfo=None)


def parse_timestamp(value):
    """
    Parse an ISO-8601 string, epoch milliseconds, date or datetime into an
    aware datetime. Returns None when the value can't be understood.
    """
    if value is None or value == '' or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else pytz.utc.localize(value)
    if isinstance(value, date):
        return pytz.utc.localize(datetime(value.year, value.month, value.day))
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=pytz.utc)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else pytz.utc.localize(parsed)


def timestamp_ms(value):
    """Epoch milliseconds for sorting; 0 when the value is missing or invalid."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return 0
    return int((parsed - EPOCH).total_seconds() * 1000)


def parse_calendar_date(value):
    """Parse a YYYY-MM-DD string (or a date/datetime) into a date, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
