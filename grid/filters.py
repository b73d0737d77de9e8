"""
================================================================================
FILTERS.PY - PER-COLUMN FILTER ENGINE
================================================================================
PURPOSE: Pure per-column predicates over projected cell strings, plus the
         calendar-relative quick date presets.

FILTER KINDS:
  - EmptyFilter      is-empty / is-not-empty
  - ValueSetFilter   membership in a checkbox-style list of values
  - TextFilter       case-insensitive substring search
  - DateRangeFilter  inclusive [start 00:00:00.000, end 23:59:59.999]

At most one filter per column: setting a filter replaces the previous one.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Union

from grid.rows import RowRecord
from grid.utils import parse_cell_date

DATE_PRESETS = (
    "today",
    "yesterday",
    "thisweek",
    "lastweek",
    "thismonth",
    "lastmonth",
    "thisyear",
    "lastyear",
)

_DAY_START = time(0, 0, 0, 0)
_DAY_END = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class EmptyFilter:
    is_empty: bool = True

    def matches(self, value) -> bool:
        empty = value is None or value == ""
        return empty if self.is_empty else not empty

    def to_dict(self) -> dict:
        return {"kind": "empty" if self.is_empty else "notEmpty"}


@dataclass(frozen=True)
class ValueSetFilter:
    values: tuple

    def matches(self, value) -> bool:
        return value in self.values

    def to_dict(self) -> dict:
        return {"kind": "values", "values": list(self.values)}


@dataclass(frozen=True)
class TextFilter:
    text: str

    def matches(self, value) -> bool:
        return self.text.strip().lower() in str(value or "").lower()

    def to_dict(self) -> dict:
        return {"kind": "text", "text": self.text}


@dataclass(frozen=True)
class DateRangeFilter:
    start: datetime
    end: datetime

    @classmethod
    def between(cls, start: Union[date, datetime], end: Union[date, datetime]) -> "DateRangeFilter":
        """Normalise start to midnight and end to the last millisecond of its day."""
        start_day = start.date() if isinstance(start, datetime) else start
        end_day = end.date() if isinstance(end, datetime) else end
        return cls(datetime.combine(start_day, _DAY_START), datetime.combine(end_day, _DAY_END))

    def matches(self, value) -> bool:
        parsed = parse_cell_date(value)
        if parsed is None:
            return False
        cell = datetime.combine(parsed, _DAY_START)
        return self.start <= cell <= self.end

    def to_dict(self) -> dict:
        return {
            "kind": "dateRange",
            "start": self.start.date().isoformat(),
            "end": self.end.date().isoformat(),
        }


FilterSpec = Union[EmptyFilter, ValueSetFilter, TextFilter, DateRangeFilter]


# ==================== DATE PRESETS ====================

def date_preset(name: str, now: Optional[datetime] = None) -> Optional[DateRangeFilter]:
    """
    Compute a quick date range as of ``now`` (defaults to the current time).

    Weeks start on Sunday and span seven days. Unknown names return None.
    """
    now = now or datetime.now()
    today = now.date() if isinstance(now, datetime) else now

    if name == "today":
        return DateRangeFilter.between(today, today)
    if name == "yesterday":
        day = today - timedelta(days=1)
        return DateRangeFilter.between(day, day)
    if name in ("thisweek", "lastweek"):
        since_sunday = (today.weekday() + 1) % 7
        week_start = today - timedelta(days=since_sunday)
        if name == "lastweek":
            week_start -= timedelta(days=7)
        return DateRangeFilter.between(week_start, week_start + timedelta(days=6))
    if name == "thismonth":
        return DateRangeFilter.between(today.replace(day=1), _month_end(today.year, today.month))
    if name == "lastmonth":
        last_day = today.replace(day=1) - timedelta(days=1)
        return DateRangeFilter.between(last_day.replace(day=1), last_day)
    if name == "thisyear":
        return DateRangeFilter.between(date(today.year, 1, 1), date(today.year, 12, 31))
    if name == "lastyear":
        return DateRangeFilter.between(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))
    return None


def _month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year, 12, 31)
    return date(year, month + 1, 1) - timedelta(days=1)


# ==================== FILTER STATE ====================

class FilterState:
    """Active filters keyed by column key; one spec per column."""

    def __init__(self):
        self._filters: Dict[str, FilterSpec] = {}

    def __len__(self):
        return len(self._filters)

    def __contains__(self, column: str):
        return column in self._filters

    def get(self, column: str) -> Optional[FilterSpec]:
        return self._filters.get(column)

    @property
    def active(self) -> Dict[str, FilterSpec]:
        return dict(self._filters)

    def set(self, column: str, spec: Optional[FilterSpec]):
        """Replace the column's filter; None or an empty value set clears it."""
        if spec is None or (isinstance(spec, ValueSetFilter) and not spec.values):
            self._filters.pop(column, None)
            return
        self._filters.pop(column, None)
        self._filters[column] = spec

    def clear(self, column: str):
        self._filters.pop(column, None)

    def clear_all(self):
        self._filters.clear()

    def toggle_value(self, column: str, value: str):
        """Tick or untick one value of the column's checkbox list."""
        current = self._filters.get(column)
        values = list(current.values) if isinstance(current, ValueSetFilter) else []
        if value in values:
            values.remove(value)
        else:
            values.append(value)
        self.set(column, ValueSetFilter(tuple(values)))

    def matches(self, row: RowRecord) -> bool:
        return all(spec.matches(row.get(column)) for column, spec in self._filters.items())

    def apply(self, rows: Iterable[RowRecord]) -> List[RowRecord]:
        return [row for row in rows if self.matches(row)]

    def to_dict(self) -> dict:
        return {column: spec.to_dict() for column, spec in self._filters.items()}


def unique_values(rows: Sequence[RowRecord], column: str) -> List[str]:
    """Sorted distinct non-empty values of a column (the filter checkbox list)."""
    return sorted({row.get(column) for row in rows if row.get(column) != ""})


def filter_from_payload(payload, now: Optional[datetime] = None) -> Optional[FilterSpec]:
    """
    Build a filter spec from an API payload such as
    ``{"kind": "dateRange", "start": "2024-03-01", "end": "2024-03-31"}``.

    Unknown kinds and malformed values return None.
    """
    if not isinstance(payload, dict):
        return None
    kind = str(payload.get("kind", "")).strip()

    if kind == "empty":
        return EmptyFilter(True)
    if kind == "notEmpty":
        return EmptyFilter(False)
    if kind == "values":
        values = payload.get("values") or []
        if not isinstance(values, list):
            return None
        return ValueSetFilter(tuple(str(v) for v in values))
    if kind == "text":
        text = str(payload.get("text") or "")
        return TextFilter(text) if text.strip() else None
    if kind == "dateRange":
        try:
            start = date.fromisoformat(str(payload.get("start", ""))[:10])
            end = date.fromisoformat(str(payload.get("end", ""))[:10])
        except ValueError:
            return None
        return DateRangeFilter.between(start, end)
    if kind == "datePreset":
        return date_preset(str(payload.get("preset", "")), now=now)
    return None
