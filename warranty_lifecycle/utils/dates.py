"""Date formatting for warranty tables and reports."""

from datetime import datetime
from typing import Optional

from ..compute.status import parse_warranty_date, utc_now


def format_warranty_date(value: Optional[str]) -> str:
    """
    Format a warranty start/end date as ``YYYY-MM-DD``.

    Returns "N/A" for empty values and "Invalid" for unparsable ones.
    """
    if not value:
        return "N/A"
    parsed = parse_warranty_date(value)
    if parsed is None:
        return "Invalid"
    return parsed.date().isoformat()


def _plural(count: int, unit: str) -> str:
    return f"1 {unit} ago" if count == 1 else f"{count} {unit}s ago"


def format_relative_time(value: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Describe a timestamp relative to now ("3 hours ago", "2 weeks ago").

    Args:
        value: ISO timestamp (e.g. a record's ``last_updated``)
        now: Reference instant

    Returns:
        Human readable age, "Never" when empty, "Invalid Date" when unparsable
    """
    if not value:
        return "Never"

    moment = parse_warranty_date(value)
    if moment is None:
        return "Invalid Date"

    diff_seconds = ((now or utc_now()) - moment).total_seconds()
    if diff_seconds < 0:
        return "In the future"

    seconds = int(diff_seconds)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if seconds < 60:
        return "Just now" if seconds <= 1 else f"{seconds} seconds ago"
    if minutes < 60:
        return _plural(minutes, "minute")
    if hours < 24:
        return _plural(hours, "hour")
    if days < 7:
        return _plural(days, "day")
    if days < 30:
        return _plural(days // 7, "week")
    if days < 365:
        return _plural(days // 30, "month")
    return _plural(days // 365, "year")
