"""
Publish-date helpers.

Feed dates arrive as loosely formatted strings. Anything that cannot be
parsed is treated as epoch 0 so undated items sort as the oldest.
"""

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as date_parser
from dateutil import tz


def parse_pub_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a feed date string into an aware datetime.

    Args:
        value: Raw date string (RFC 822, ISO 8601, ...)

    Returns:
        Timezone-aware datetime (naive values are assumed UTC) or None
    """
    if not value or not str(value).strip():
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.parse(str(value).strip())
        except (ValueError, OverflowError, TypeError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def pub_timestamp(value: Optional[str]) -> float:
    """Epoch seconds of a feed date string, 0.0 when missing or invalid."""
    parsed = parse_pub_date(value)
    if parsed is None:
        return 0.0
    try:
        return parsed.timestamp()
    except (OverflowError, OSError, ValueError):
        return 0.0


def format_pub_date(
    value: Optional[str],
    fmt: str = "%Y/%m/%d %H:%M",
    tz_name: Optional[str] = None,
) -> Optional[str]:
    """Format a feed date string for display.

    Args:
        value: Raw date string
        fmt: strftime format
        tz_name: IANA zone to display in (UTC when unknown or omitted)

    Returns:
        Formatted date, or None when the value cannot be parsed
    """
    parsed = parse_pub_date(value)
    if parsed is None:
        return None
    zone = tz.gettz(tz_name) if tz_name else None
    return parsed.astimezone(zone or timezone.utc).strftime(fmt)
