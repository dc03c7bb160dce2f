"""
Warranty Status Classifier

Pure functions deciding warranty status from an end date. ``classify`` is
the only place status is derived; records, reports and writers all call it.

All comparisons use timezone-aware UTC datetimes. Date-only values such as
``2025-06-30`` mean midnight UTC of that day.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from dateutil import parser as date_parser


# Two unrelated fill-in dates; a value parsed differently against each one
# was missing a year, month or day
_FILL_A = datetime(2000, 1, 1)
_FILL_B = datetime(2001, 2, 2)


class WarrantyStatus(str, Enum):
    """Warranty status derived from an end date."""
    ACTIVE = "active"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_complete_date(text: str) -> Optional[datetime]:
    """Parse a non-ISO date, rejecting values without a full calendar date."""
    try:
        first = date_parser.parse(text, default=_FILL_A)
        second = date_parser.parse(text, default=_FILL_B)
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return first


def parse_warranty_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a warranty date string.

    Args:
        value: ISO date or datetime string (other common formats are accepted
            when they name a year, month and day)

    Returns:
        Aware UTC datetime, or None when the value is empty or unparsable
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        parsed = date_parser.isoparse(text)
    except (ValueError, OverflowError):
        parsed = _parse_complete_date(text)
        if parsed is None:
            return None

    return _as_utc(parsed)


def classify(end_date: Optional[str], now: Optional[datetime] = None) -> WarrantyStatus:
    """
    Classify a warranty by its end date.

    Args:
        end_date: Warranty end date string
        now: Reference instant (defaults to the current time)

    Returns:
        ACTIVE when the end date is at or after ``now``, EXPIRED when before,
        UNKNOWN when missing or unparsable
    """
    end = parse_warranty_date(end_date)
    if end is None:
        return WarrantyStatus.UNKNOWN

    reference = _as_utc(now) if now else utc_now()
    if end >= reference:
        return WarrantyStatus.ACTIVE
    return WarrantyStatus.EXPIRED


def is_expiring_soon(
    end_date: Optional[str],
    now: Optional[datetime] = None,
    days: int = 90
) -> bool:
    """Check whether an end date falls in ``(now, now + days]``."""
    end = parse_warranty_date(end_date)
    if end is None:
        return False

    reference = _as_utc(now) if now else utc_now()
    return reference < end <= reference + timedelta(days=days)


def whole_months_since(moment: datetime, now: Optional[datetime] = None) -> int:
    """Whole 30-day months elapsed between ``moment`` and ``now``."""
    reference = _as_utc(now) if now else utc_now()
    elapsed = reference - _as_utc(moment)
    return elapsed // timedelta(days=30)
