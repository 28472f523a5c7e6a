"""Timezone-aware timestamp helpers for queue rows."""

import re
from datetime import datetime, timezone
from typing import Optional

# PostgreSQL trims trailing zeros from fractional seconds
_FRACTION = re.compile(r"\.(\d+)")


def get_utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _pad_fraction(match: "re.Match[str]") -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_timestamp(value: Optional[str | datetime]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as returned by PostgREST.

    Fractional seconds of any precision are accepted (truncated to
    microseconds). Naive values are assumed to be UTC. ``None`` and empty
    strings yield ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(_pad_fraction, text, count=1)
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for a timestamptz column."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
