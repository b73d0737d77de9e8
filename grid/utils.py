"""Utility helpers shared across the table engine."""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from typing import Optional

MONTHS = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]

_YES_VALUES = {"yes", "y", "true"}
_CHECKED_VALUES = {"true", "yes", "y", "1", "checked"}

_DD_MMM_YYYY = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$")
_MM_DD_YYYY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
)


def is_yes(value) -> bool:
    """Normalise the sheet's free-form yes/y/true flags."""
    return str(value or "").strip().lower() in _YES_VALUES


def is_checked(value) -> bool:
    """Return True when a checkbox-style cell reads as ticked."""
    return str(value or "").strip().lower() in _CHECKED_VALUES


def col_to_letter(index: int) -> str:
    """Convert a 0-based column index to A1 letters (0 -> A, 26 -> AA)."""
    n = index + 1
    letters = ""
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def generate_uuid() -> str:
    return str(uuid.uuid4())


def parse_cell_date(text) -> Optional[date]:
    """
    Parse a cell value into a date.

    Tried in order: ``DD-MMM-YYYY`` (05-Jan-2024), ``MM/DD/YYYY``, then ISO
    and a few spelled-out formats. Returns None when nothing matches.
    """
    value = str(text or "").strip()
    if not value:
        return None

    match = _DD_MMM_YYYY.match(value)
    if match:
        day, month_str, year = match.groups()
        month = month_str.lower()
        if month in MONTHS:
            try:
                return date(int(year), MONTHS.index(month) + 1, int(day))
            except ValueError:
                return None

    match = _MM_DD_YYYY.match(value)
    if match:
        month, day, year = match.groups()
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def format_date_ddmmmyyyy(text) -> str:
    """Render a date cell as DD-MMM-YYYY, passing unparseable text through."""
    value = str(text or "")
    if not value:
        return ""
    if _DD_MMM_YYYY.match(value.strip()):
        return value
    parsed = parse_cell_date(value)
    if parsed is None:
        return value
    return parsed.strftime("%d-%b-%Y")
