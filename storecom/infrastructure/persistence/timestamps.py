"""
Timestamp helpers.

Every timestamp is stored as a UTC ISO-8601 string with a fixed width
(microseconds + "+00:00") so that string comparison in SQL matches
chronological order.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

_FRACTION = re.compile(r"\.(\d+)")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Union[datetime, str, int, float, None]) -> Optional[str]:
    """Normalize a datetime, ISO string or epoch-milliseconds value."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        value = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        value = parse_timestamp(value)
        if value is None:
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def now_iso() -> str:
    return to_iso(utcnow())


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """
    Parse ISO-8601 text as produced by Google APIs ("2024-01-05T10:00:00.123456789Z")
    or by this module. Returns None for empty/invalid input.
    """
    if not text:
        return None
    cleaned = text.strip().replace("Z", "+00:00")
    # Google may send nanoseconds; datetime accepts at most 6 fractional digits
    cleaned = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), cleaned, count=1)
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
