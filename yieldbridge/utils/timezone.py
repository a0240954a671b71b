"""
Timezone utilities.

Conventions:
- Internal storage/processing: UTC (timezone-aware)
- Chain timestamps: ISO-8601 strings or epoch nanoseconds, normalized to UTC
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, Union


UTC = timezone.utc


def now_utc() -> datetime:
    """Get current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_chain_timestamp(value: Union[str, int, float, None]) -> Optional[datetime]:
    """
    Parse a timestamp reported by a chain endpoint.

    Accepts ISO-8601 strings (a trailing ``Z`` is allowed), epoch seconds,
    or epoch nanoseconds (the custody chain reports ``ic_cdk::api::time()``).

    Returns:
        Timezone-aware datetime in UTC, or None for empty/zero values.
    """
    if value is None or value == "" or value == 0:
        return None

    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return parse_chain_timestamp(int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(text))

    # Values beyond year ~5000 in seconds are nanoseconds
    seconds = float(value)
    if seconds > 1e11:
        seconds = seconds / 1e9
    return datetime.fromtimestamp(seconds, tz=UTC)
