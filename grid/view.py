"""
================================================================================
VIEW.PY - TABLE VIEW STATE
================================================================================
PURPOSE: Layer sort, pagination and row selection over the projected and
         filtered rows of one sheet, and expose the whole table engine through
         a single ``TableView`` object.

POLICIES:
  - One sort column at a time, cycling none -> asc -> desc -> none, applied
    after filtering, stable for equal keys
  - Page index goes back to the first page whenever filters or sort change
  - Selection is a set of row indexes that survives filter changes;
    "select all" covers every loaded row, not just the current page
  - Multi-row delete runs bottom-up (descending sheet row numbers) and stops
    at the first failure
================================================================================
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from config import Config
from core.errors import AccessDenied, RemoteCallFailed
from core.logger import log_msg
from grid.editing import EditCoordinator, Notification
from grid.filters import FilterSpec, FilterState, date_preset, unique_values
from grid.headers import MergeInfo, reconcile_headers, subheader_cells
from grid.rows import RowRecord, project_rows, sheet_row_number
from grid.settings import ColumnSetting, ColumnType, ResolvedColumn, resolve_columns
from grid.utils import generate_uuid

_CHUNKS = re.compile(r"(\d+)")


def _natural_key(value: str):
    parts = []
    for chunk in _CHUNKS.split(str(value or "").lower()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), ""))
        else:
            parts.append((1, 0, chunk))
    return parts


class SortState:
    def __init__(self):
        self.column: Optional[str] = None
        self.descending = False

    def cycle(self, column: str):
        if self.column != column:
            self.column, self.descending = column, False
        elif not self.descending:
            self.descending = True
        else:
            self.column, self.descending = None, False

    def set(self, column: Optional[str], descending: bool = False):
        self.column = column
        self.descending = bool(descending) if column else False

    def apply(self, rows: Sequence[RowRecord]) -> List[RowRecord]:
        if not self.column:
            return list(rows)
        column = self.column
        return sorted(rows, key=lambda r: _natural_key(r.get(column)), reverse=self.descending)

    def to_dict(self) -> Optional[dict]:
        if not self.column:
            return None
        return {"column": self.column, "direction": "desc" if self.descending else "asc"}


class Pagination:
    def __init__(self, page_size: int = Config.DEFAULT_PAGE_SIZE, choices=Config.PAGE_SIZE_CHOICES):
        self.choices = tuple(choices)
        if page_size not in self.choices:
            page_size = 50
        self.page_size = page_size
        self.page_index = 0

    def set_page_size(self, size: int):
        if size not in self.choices:
            raise ValueError(f"Page size must be one of {self.choices}")
        self.page_size = size
        self.page_index = 0

    def page_count(self, total: int) -> int:
        return max(1, math.ceil(total / self.page_size))

    def go_to(self, page_index: int, total: int):
        self.page_index = min(max(0, page_index), self.page_count(total) - 1)

    def reset(self):
        self.page_index = 0

    def slice(self, rows: Sequence[RowRecord]) -> List[RowRecord]:
        start = self.page_index * self.page_size
        return list(rows[start:start + self.page_size])


class Selection:
    def __init__(self):
        self.selected = set()

    def __len__(self):
        return len(self.selected)

    def __contains__(self, row_index: int):
        return row_index in self.selected

    def toggle(self, row_index: int):
        if row_index in self.selected:
            self.selected.discard(row_index)
        else:
            self.selected.add(row_index)

    def select_all(self, rows: Iterable[RowRecord]):
        self.selected = {r.row_index for r in rows}

    def toggle_all(self, rows: Sequence[RowRecord]):
        """Header checkbox: clear when everything is selected, else select all."""
        if rows and len(self.selected) == len(rows):
            self.clear()
        else:
            self.select_all(rows)

    def clear(self):
        self.selected = set()


@dataclass
class DeleteReport:
    requested: List[int] = field(default_factory=list)
    deleted: List[int] = field(default_factory=list)
    failed_row: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed_row is None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "requested": self.requested,
            "deleted": self.deleted,
            "failedRow": self.failed_row,
            "error": self.error,
        }


def delete_rows(
    deleter,
    sheet_name: str,
    row_indexes: Iterable[int],
    header_rows: int = 1,
    known: Optional[Iterable[int]] = None,
) -> DeleteReport:
    """
    Delete data rows one at a time from the bottom up.

    Row indexes are translated to 1-based sheet row numbers and deleted in
    strictly descending order so earlier deletions never shift later targets.
    The first failure stops the run; rows already deleted stay deleted.

    RAISES:
      ValueError: an index is negative or, when ``known`` is given, not one of
                  the loaded data rows; nothing is deleted in that case
    """
    indexes = set(row_indexes)
    unknown = {i for i in indexes if i < 0}
    if known is not None:
        unknown |= indexes - set(known)
    if unknown:
        raise ValueError(f"Unknown row index(es): {', '.join(str(i) for i in sorted(unknown))}")

    numbers = sorted({sheet_row_number(i, header_rows) for i in indexes}, reverse=True)
    report = DeleteReport(requested=numbers)
    for number in numbers:
        try:
            deleter.delete_row(sheet_name, number)
        except RemoteCallFailed as exc:
            report.failed_row = number
            report.error = str(exc)
            log_msg(f"[ERROR] Delete stopped at row {number} of '{sheet_name}': {exc}")
            return report
        report.deleted.append(number)
    return report


class TableView:
    """
    PURPOSE: Interactive, permissioned view of one sheet.

    The caller passes an explicit ``user`` context (can_edit / can_upload /
    can_delete); nothing here reads session state.
    """

    def __init__(
        self,
        sheet_name: str,
        data,
        settings: Sequence[ColumnSetting],
        user,
        sheets,
        files=None,
        dropdown_options: Optional[Mapping[str, List[str]]] = None,
        dispatch=None,
        page_size: int = Config.DEFAULT_PAGE_SIZE,
    ):
        self.sheet_name = sheet_name
        self.user = user
        self.sheets = sheets
        self.files = files
        self.headers = list(data.headers)
        self.subheaders = list(data.subheaders) if data.subheaders else None
        self.merges: List[MergeInfo] = list(data.header_merges or [])
        self.header_rows = data.header_rows

        self.columns: List[ResolvedColumn] = resolve_columns(self.headers, self.subheaders, settings)
        self.visible_columns = [c for c in self.columns if c.visible]
        self.header_groups = reconcile_headers(
            self.headers, self.subheaders, self.merges, visible=[c.index for c in self.visible_columns]
        )
        self.subheader_cells = subheader_cells(self.header_groups, self.subheaders)

        self.rows: List[RowRecord] = project_rows(self.headers, data.rows)
        self.filters = FilterState()
        self.sort = SortState()
        self.pagination = Pagination(page_size)
        self.selection = Selection()
        self.editor = EditCoordinator(
            sheet_name,
            self.rows,
            self.columns,
            updater=sheets,
            files=files,
            can_edit=getattr(user, "can_edit", False),
            dispatch=dispatch,
            dropdown_options=dropdown_options,
        )

    @property
    def notifications(self) -> List[Notification]:
        return self.editor.notifications

    def notify(self, level: str, message: str):
        self.editor.notifications.append(Notification(level, message))

    # ==================== FILTERS ====================

    def set_filter(self, column: str, spec: Optional[FilterSpec]):
        self.filters.set(column, spec)
        self.pagination.reset()

    def toggle_filter_value(self, column: str, value: str):
        self.filters.toggle_value(column, value)
        self.pagination.reset()

    def apply_date_preset(self, column: str, preset: str, now: Optional[datetime] = None) -> bool:
        spec = date_preset(preset, now=now)
        if spec is None:
            return False
        self.set_filter(column, spec)
        return True

    def clear_filter(self, column: str):
        self.filters.clear(column)
        self.pagination.reset()

    def clear_all_filters(self):
        self.filters.clear_all()
        self.pagination.reset()

    def filter_choices(self, column: str) -> List[str]:
        return unique_values(self.rows, column)

    # ==================== SORT / PAGE ====================

    def toggle_sort(self, column: str):
        self.sort.cycle(column)
        self.pagination.reset()

    def set_sort(self, column: Optional[str], descending: bool = False):
        self.sort.set(column, descending)
        self.pagination.reset()

    def filtered_rows(self) -> List[RowRecord]:
        return self.sort.apply(self.filters.apply(self.rows))

    @property
    def filtered_count(self) -> int:
        return len(self.filters.apply(self.rows))

    @property
    def page_count(self) -> int:
        return self.pagination.page_count(self.filtered_count)

    def go_to_page(self, page_index: int):
        self.pagination.go_to(page_index, self.filtered_count)

    def page_rows(self) -> List[RowRecord]:
        return self.pagination.slice(self.filtered_rows())

    # ==================== ROW MUTATIONS ====================

    def blank_row(self) -> List[str]:
        """Values for a new row: fresh UUIDs in uuid columns, blanks elsewhere."""
        return [generate_uuid() if c.type == ColumnType.UUID else "" for c in self.columns]

    def add_row(self, values: Optional[Sequence[str]] = None) -> bool:
        if not getattr(self.user, "can_edit", False):
            raise AccessDenied("You do not have permission to add rows")
        row_values = list(values) if values is not None else self.blank_row()
        try:
            self.sheets.append_row(self.sheet_name, row_values)
        except RemoteCallFailed as exc:
            self.notify("error", str(exc) or "Failed to add row")
            return False
        self.notify("success", "Row added successfully")
        return True

    def delete_selected(self) -> DeleteReport:
        if not getattr(self.user, "can_edit", False):
            raise AccessDenied("You do not have permission to delete rows")
        if not self.selection:
            self.notify("warning", "Select the rows to delete first")
            return DeleteReport()

        report = delete_rows(
            self.sheets, self.sheet_name, self.selection.selected, self.header_rows,
            known=[r.row_index for r in self.rows],
        )
        if report.ok:
            self.notify("success", f"{len(report.deleted)} row(s) deleted")
            self.selection.clear()
        else:
            self.notify("error", report.error or f"Failed to delete row {report.failed_row}")
        return report

    # ==================== SERIALISATION ====================

    def to_dict(self) -> Dict[str, object]:
        return {
            "sheet": self.sheet_name,
            "columns": [c.to_dict() for c in self.visible_columns],
            "headerGroups": [g.to_dict() for g in self.header_groups],
            "subheaderCells": [c.to_dict() for c in self.subheader_cells],
            "rows": [r.to_dict() for r in self.page_rows()],
            "total": len(self.rows),
            "filteredCount": self.filtered_count,
            "page": self.pagination.page_index,
            "pageSize": self.pagination.page_size,
            "pageCount": self.page_count,
            "sort": self.sort.to_dict(),
            "filters": self.filters.to_dict(),
            "selected": sorted(self.selection.selected),
            "notifications": [n.to_dict() for n in self.notifications],
        }
