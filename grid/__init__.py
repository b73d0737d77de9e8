"""Sheet-driven table engine: column rules, grouped headers, filters, edits and view state."""

from .settings import (
    ColumnSetting, ColumnType, ResolvedColumn,
    parse_settings_rows, parse_dropdown_options, resolve_columns,
)
from .headers import HeaderGroup, MergeInfo, SubheaderCell, reconcile_headers, subheader_cells
from .rows import RowRecord, project_rows, sheet_row_number
from .filters import (
    DateRangeFilter, EmptyFilter, FilterState, TextFilter, ValueSetFilter,
    date_preset, filter_from_payload,
)
from .editing import CellRef, CommitResult, EditCoordinator, Notification
from .view import DeleteReport, Pagination, Selection, SortState, TableView, delete_rows

__all__ = [
    "ColumnSetting", "ColumnType", "ResolvedColumn",
    "parse_settings_rows", "parse_dropdown_options", "resolve_columns",
    "HeaderGroup", "MergeInfo", "SubheaderCell", "reconcile_headers", "subheader_cells",
    "RowRecord", "project_rows", "sheet_row_number",
    "DateRangeFilter", "EmptyFilter", "FilterState", "TextFilter", "ValueSetFilter",
    "date_preset", "filter_from_payload",
    "CellRef", "CommitResult", "EditCoordinator", "Notification",
    "DeleteReport", "Pagination", "Selection", "SortState", "TableView", "delete_rows",
]
