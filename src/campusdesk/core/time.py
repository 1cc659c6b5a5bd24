from __future__ import annotations

import re
from datetime import date, datetime, timezone

CALENDAR_DATE_FORMAT = "%Y-%m-%d"
_CALENDAR_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def now_utc_iso() -> str:
    """Return an RFC 3339/ISO timestamp in UTC with seconds precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def current_year() -> int:
    return datetime.now(timezone.utc).year


def parse_calendar_date(value: str) -> date:
    """Parse a strict zero-padded YYYY-MM-DD date.

    Raises ValueError for any other shape, including single-digit months or
    days that ``strptime`` alone would accept.
    """
    text = str(value or "").strip()
    if not _CALENDAR_DATE_RE.fullmatch(text):
        raise ValueError(f"not a YYYY-MM-DD date: {value!r}")
    return datetime.strptime(text, CALENDAR_DATE_FORMAT).date()
