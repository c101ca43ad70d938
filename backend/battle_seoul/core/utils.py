"""
Utility helpers
"""

from typing import Optional
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the database stores naive UTC)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp_with_timezone(timestamp: Optional[datetime]) -> str:
    """Format a timestamp with the UTC 'Z' suffix"""
    if not timestamp:
        return ""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    return timestamp.isoformat() + 'Z'


def parse_time_to_seconds(value: Optional[str]) -> int:
    """Convert "ss", "mm:ss" or "h:mm:ss" into seconds; blanks and junk count as 0"""
    if not value:
        return 0
    seconds = 0
    for multiplier, part in zip((1, 60, 3600), reversed(value.strip().split(":"))):
        try:
            seconds += int(part) * multiplier
        except ValueError:
            continue
    return seconds

