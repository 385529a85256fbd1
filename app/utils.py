"""
Time helpers for the form collector.

Timestamps are stored as naive UTC values; they are only given a zone
when rendered for people (notification text, CSV export) or when
date-range bounds arrive from the admin view.
"""

import logging
from datetime import date, datetime, time, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


@lru_cache()
def get_zone(name: str) -> ZoneInfo:
    """Return the ZoneInfo for an IANA zone name (cached)."""
    return ZoneInfo(name)


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the storage representation."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a stored (naive UTC) timestamp; aware values are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def render_in_zone(value: datetime, zone: ZoneInfo) -> str:
    """Render a stored timestamp as wall-clock time in `zone` (YYYY-MM-DD HH:MM:SS)."""
    return as_utc(value).astimezone(zone).strftime(DISPLAY_FORMAT)


def parse_date_bound(value: Optional[str], zone: ZoneInfo, end: bool = False) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime used as a range bound.

    Args:
        value: Raw query value; empty or None means "no bound"
        zone: Zone used for date-only and naive datetime values
        end: When True a date-only value covers the whole day

    Returns:
        Naive UTC datetime, or None when no bound was given

    Raises:
        ValueError: If the value is not a valid ISO-8601 date or datetime
        OverflowError: If the value cannot be expressed in UTC (near year 1 or 9999)
    """
    if value is None or not value.strip():
        return None

    raw = value.strip()
    logger.debug(f"Parsing date bound: {raw} (end={end})")

    if len(raw) == 10:
        day = date.fromisoformat(raw)
        local = datetime.combine(day, time.max if end else time.min)
        return to_storage(local.replace(tzinfo=zone))

    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return to_storage(parsed)
