"""
FILE: nextup/utils.py
PURPOSE: Shared time and date helpers for the core, CLI and REPL
EXPORTS:
  - utcnow() -> datetime
  - local_today() -> date
  - iso_timestamp(dt) -> str
  - to_iso_date(value) -> Optional[str]
  - parse_due_date(text, today) -> Optional[str]
  - format_relative_due(due_date, today) -> str
DEPENDENCIES:
  - datetime, re (stdlib)
NOTES:
  - Timestamps are stored as fixed-width UTC ISO-8601 strings so that string
    order equals time order in SQL ORDER BY
  - Due dates are calendar dates stored as YYYY-MM-DD; "today" for relative
    due dates and for the Upcoming horizon is the local calendar date
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

_RELATIVE_DAYS = re.compile(r"^([+-]?\d+)d$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today() -> date:
    """The user's calendar date, used wherever due dates are compared to today."""
    return date.today()


def iso_timestamp(dt: datetime) -> str:
    """
    Format a datetime as a fixed-width UTC ISO-8601 string.

    Naive datetimes are taken to be UTC already.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def to_iso_date(value: Union[date, datetime, str, None]) -> Optional[str]:
    """
    Normalize a due date to YYYY-MM-DD.

    Args:
        value: date, datetime (date part is used), YYYY-MM-DD string
            (optionally followed by a T or space and an ISO time), or None

    Returns:
        ISO date string, or None when value is None

    Raises:
        ValueError: If a string is not a valid ISO date or datetime in full
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = value.strip()
    if len(text) > 10 and text[10] in "T ":
        return datetime.fromisoformat(text).date().isoformat()
    if not _ISO_DATE.match(text):
        raise ValueError(f"Invalid ISO date: {value!r}")
    return date.fromisoformat(text).isoformat()


def parse_due_date(text: str, today: date) -> Optional[str]:
    """
    Parse a user-typed due date.

    Accepts YYYY-MM-DD, "today", "tomorrow", "+Nd" (N days from today) and
    "none"/"clear" to remove the due date.

    Raises:
        ValueError: If text matches none of the accepted forms
    """
    text = text.strip().lower()
    if text in ("none", "clear", ""):
        return None
    if text == "today":
        return today.isoformat()
    if text == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    match = _RELATIVE_DAYS.match(text)
    if match:
        try:
            return (today + timedelta(days=int(match.group(1)))).isoformat()
        except OverflowError:
            raise ValueError(f"Due date out of range: {text}")
    return to_iso_date(text)


def format_relative_due(due_date: Optional[str], today: date) -> str:
    """Human-friendly due date: 'today', 'tomorrow', 'in 3d', '2d overdue'."""
    if not due_date:
        return "-"
    delta = (date.fromisoformat(due_date) - today).days
    if delta == 0:
        return "today"
    if delta == 1:
        return "tomorrow"
    if delta < 0:
        return f"{-delta}d overdue"
    return f"in {delta}d"
