"""Date helpers for month filters and display formatting."""

from __future__ import annotations

import re
from calendar import month_abbr, month_name
from datetime import date, datetime

_MONTH_LOOKUP = {
    name.lower(): index
    for index, name in enumerate(month_name)
    if name
}
_MONTH_LOOKUP.update(
    {
        name.lower(): index
        for index, name in enumerate(month_abbr)
        if name
    }
)

_MM_DD_YY = re.compile(r"^(\d{2})-(\d{2})-(\d{2})$")
_MM_DD = re.compile(r"^(\d{2})-(\d{2})$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_month_label(label: str) -> tuple[int, int]:
    """Return ``(year, month)`` for labels like ``"January 2025"`` or ``"Jan 2025"``."""

    parts = (label or "").split()
    if len(parts) != 2:
        raise ValueError(f"Expected '<Month> <Year>', got {label!r}")
    month_token, year_token = parts
    month = _MONTH_LOOKUP.get(month_token.lower())
    if month is None or not year_token.isdigit():
        raise ValueError(f"Unrecognized month label {label!r}")
    return int(year_token), month


def month_label(year: int, month: int) -> str:
    return f"{month_name[month]} {year}"


def month_date_range(label: str) -> tuple[str, str]:
    """Return the inclusive ISO date bounds used to filter a month.

    The upper bound is always day 31. Rows store dates as ``YYYY-MM-DD``
    strings and are compared lexically, so ``2025-02-31`` still sorts after
    every real February date and before March.
    """

    year, month = parse_month_label(label)
    prefix = f"{year:04d}-{month:02d}"
    return f"{prefix}-01", f"{prefix}-31"


def in_month(value: str, label: str) -> bool:
    """Return True when an ISO date string falls inside the labelled month."""

    start, end = month_date_range(label)
    return start <= value[:10] <= end


def _coerce(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date_mmddyy(value: str | date | None) -> str:
    parsed = _coerce(value)
    return parsed.strftime("%m-%d-%y") if parsed else ""


def format_date_mmdd(value: str | date | None) -> str:
    parsed = _coerce(value)
    return parsed.strftime("%m-%d") if parsed else ""


def format_date_to_month(value: str | date | None) -> str:
    parsed = _coerce(value)
    return month_abbr[parsed.month] if parsed else ""


def parse_date_input(raw: str, *, today: date | None = None) -> str:
    """Normalize user-typed dates to ISO ``YYYY-MM-DD``.

    Accepts ``MM-DD-YY`` (two-digit years below 50 land in the 2000s),
    ``MM-DD`` (current year) and ISO dates. Anything else that parses as a
    date is converted; unparseable input is returned unchanged.
    """

    if not raw:
        return ""
    match = _MM_DD_YY.match(raw)
    if match:
        month, day, short_year = match.groups()
        year = int(short_year)
        full_year = 2000 + year if year < 50 else 1900 + year
        return f"{full_year}-{month}-{day}"
    match = _MM_DD.match(raw)
    if match:
        month, day = match.groups()
        current_year = (today or date.today()).year
        return f"{current_year}-{month}-{day}"
    if _ISO_DATE.match(raw):
        return raw
    parsed = _coerce(raw)
    return parsed.isoformat() if parsed else raw


__all__ = [
    "format_date_mmdd",
    "format_date_mmddyy",
    "format_date_to_month",
    "in_month",
    "month_date_range",
    "month_label",
    "parse_date_input",
    "parse_month_label",
]
