"""Date parsing shared by rate resolution and invoice aging."""

from datetime import date, datetime


def parse_iso_date(value: object) -> date | None:
    """Parse an ISO 8601 date, or the date part of an ISO datetime.

    Args:
        value: date, datetime or string such as "2024-01-15" or "2024-01-15T09:30:00Z"

    Returns:
        Calendar date, or None if the value is empty or not ISO formatted
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None
