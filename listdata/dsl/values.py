"""
Value helpers shared by the validator and the query layer.

Row data is untyped at rest. These functions decide what counts as "empty",
how a value is rendered for string comparison, and how loose user input is
read as numbers, booleans, dates and date-times.
"""

import json
import math
import numbers
import re
from datetime import UTC, date, datetime
from typing import Any

_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_RE = re.compile(r"[+-]?\d+")

# Non-ISO inputs accepted for date fields (pasted values, API payloads).
DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)

DATETIME_FORMATS = (
    "%Y/%m/%d %H:%M",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M:%S",
    "%b %d %Y %H:%M",
    "%b %d, %Y %H:%M",
    "%B %d, %Y %I:%M %p",
)


def is_empty(value: Any) -> bool:
    """None, empty string, or empty list/tuple."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, list | tuple):
        return len(value) == 0
    return False


def stringify(value: Any) -> str:
    """
    Render a row value as the string used for equality and ordering.

    None -> "", booleans -> "true"/"false", integral floats drop the ".0",
    lists are comma-joined.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, list | tuple):
        return ",".join(stringify(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def split_csv(value: str) -> list[str]:
    """Split a comma-separated string into trimmed, non-empty parts."""
    return [part.strip() for part in value.split(",") if part.strip()]


# ============================================================
# Numbers / booleans
# ============================================================


def parse_number(value: Any) -> int | float | None:
    """
    Read a number from a number or numeric string.

    Returns None for booleans, non-numeric strings and non-finite values.
    Integer literals stay ints; everything else becomes float.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, numbers.Real):
        as_float = float(value)
        return as_float if math.isfinite(as_float) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not _NUMBER_RE.fullmatch(text):
        return None
    if _INTEGER_RE.fullmatch(text):
        return int(text)
    as_float = float(text)
    return as_float if math.isfinite(as_float) else None


def parse_boolean(value: Any) -> bool | None:
    """True/False, or the strings "true"/"false" in any case."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


# ============================================================
# Dates
# ============================================================


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def _from_iso(text: str) -> datetime | None:
    # fromisoformat rejects a trailing Z before Python 3.11
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def parse_datetime(value: Any) -> datetime | None:
    """
    Read a date-time from a datetime/date object or a string.

    Aware values are converted to UTC and returned naive. Date-only input
    resolves to midnight.
    """
    if isinstance(value, datetime):
        return _to_utc_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    parsed = _from_iso(text)
    if parsed is not None:
        return _to_utc_naive(parsed)

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    only_date = _parse_date_string(text)
    if only_date is not None:
        return datetime(only_date.year, only_date.month, only_date.day)
    return None


def _parse_date_string(text: str) -> date | None:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_date(value: Any) -> date | None:
    """Read a calendar date from a date/datetime object or a string."""
    if isinstance(value, datetime):
        return _to_utc_naive(value).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    parsed = _from_iso(text)
    if parsed is not None:
        return _to_utc_naive(parsed).date()

    only_date = _parse_date_string(text)
    if only_date is not None:
        return only_date

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_date(value: date) -> str:
    """Canonical stored form for date fields: YYYY-MM-DD."""
    return value.strftime("%Y-%m-%d")


def format_datetime(value: datetime) -> str:
    """Canonical stored form for datetime fields: YYYY-MM-DDTHH:MM."""
    return value.strftime("%Y-%m-%dT%H:%M")
