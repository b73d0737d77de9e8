"""Tests for sort, pagination, selection and row mutations of a table view."""

from __future__ import annotations

from io import BytesIO

import pytest
from openpyxl import load_workbook

from core.auth import UserContext
from core.errors import AccessDenied, RemoteCallFailed
from core.sheets import SheetData
from grid.export import export_xlsx
from grid.filters import TextFilter, ValueSetFilter
from grid.headers import MergeInfo
from grid.settings import ColumnSetting, ColumnType
from grid.view import Pagination, SortState, TableView, delete_rows


EDITOR = UserContext(user="admin", name="Admin", user_type="admin", can_edit=True)
READER = UserContext(user="viewer", name="Viewer", user_type="viewer")

HEADERS = ["Name", "Status", "Joined", "Prioritas"]
ROWS = [
    ["Zed", "Active", "05-Jan-2024", "TRUE"],
    ["amy", "Inactive", "03/15/2024", ""],
    ["Bob", "Active", "2024-03-20", "FALSE"],
    ["item 10", "", "", ""],
    ["item 9", "", "", ""],
]


class RecordingSheets:
    def __init__(self, fail_rows=(), fail_append=False):
        self.fail_rows = set(fail_rows)
        self.fail_append = fail_append
        self.deleted = []
        self.appended = []
        self.updates = []

    def delete_row(self, sheet, number):
        if number in self.fail_rows:
            raise RemoteCallFailed(f"Failed to delete row: row {number}", "delete row")
        self.deleted.append(number)

    def append_row(self, sheet, values):
        if self.fail_append:
            raise RemoteCallFailed("Failed to append row: quota", "append row")
        self.appended.append(list(values))

    def update_cell(self, sheet, row_index, col_index, value):
        self.updates.append((sheet, row_index, col_index, value))


def make_view(user=EDITOR, sheets=None, rows=None, settings=(), **kwargs):
    data = SheetData(headers=list(HEADERS), rows=rows if rows is not None else ROWS)
    return TableView("Data", data, list(settings), user, sheets or RecordingSheets(), **kwargs)


def names(rows):
    return [r.get("col_0") for r in rows]


# ==================== SORT ====================

def test_sort_cycles_asc_desc_none() -> None:
    state = SortState()
    state.cycle("col_0")
    assert state.to_dict() == {"column": "col_0", "direction": "asc"}
    state.cycle("col_0")
    assert state.to_dict() == {"column": "col_0", "direction": "desc"}
    state.cycle("col_0")
    assert state.to_dict() is None
    state.cycle("col_0")
    state.cycle("col_1")
    assert state.to_dict() == {"column": "col_1", "direction": "asc"}


def test_sort_uses_natural_case_insensitive_order() -> None:
    view = make_view()
    view.toggle_sort("col_0")
    assert names(view.filtered_rows()) == ["amy", "Bob", "item 9", "item 10", "Zed"]
    view.toggle_sort("col_0")
    assert names(view.filtered_rows()) == ["Zed", "item 10", "item 9", "Bob", "amy"]
    view.toggle_sort("col_0")
    assert names(view.filtered_rows()) == names(view.rows)


def test_sort_is_stable_for_equal_keys() -> None:
    view = make_view()
    view.set_sort("col_1")
    assert names(view.filtered_rows()) == ["item 10", "item 9", "Zed", "Bob", "amy"]
    view.set_sort("col_1", descending=True)
    assert names(view.filtered_rows()) == ["amy", "Zed", "Bob", "item 10", "item 9"]


def test_sort_applies_after_filtering() -> None:
    view = make_view()
    view.set_filter("col_1", ValueSetFilter(("Active",)))
    view.set_sort("col_0", descending=True)
    assert names(view.filtered_rows()) == ["Zed", "Bob"]


# ==================== PAGINATION ====================

def test_page_size_must_be_a_known_choice() -> None:
    pages = Pagination(page_size=10)
    with pytest.raises(ValueError):
        pages.set_page_size(7)
    assert Pagination(page_size=3).page_size == 50


def test_page_count_is_never_zero_and_go_to_clamps() -> None:
    pages = Pagination(page_size=5)
    assert pages.page_count(0) == 1
    assert pages.page_count(11) == 3
    pages.go_to(10, 11)
    assert pages.page_index == 2
    pages.go_to(-4, 11)
    assert pages.page_index == 0


def test_filter_or_sort_change_resets_page() -> None:
    rows = [[f"r{i}", "", "", ""] for i in range(12)]
    view = make_view(rows=rows, page_size=5)
    view.go_to_page(2)
    assert names(view.page_rows()) == ["r10", "r11"]

    view.set_filter("col_0", TextFilter("r"))
    assert view.pagination.page_index == 0
    view.go_to_page(1)
    view.toggle_sort("col_0")
    assert view.pagination.page_index == 0
    view.go_to_page(1)
    view.clear_all_filters()
    assert view.pagination.page_index == 0


# ==================== SELECTION ====================

def test_selection_survives_filter_changes() -> None:
    view = make_view()
    view.selection.toggle(0)
    view.selection.toggle(2)
    view.set_filter("col_1", ValueSetFilter(("Inactive",)))
    assert names(view.filtered_rows()) == ["amy"]
    assert sorted(view.selection.selected) == [0, 2]


def test_select_all_covers_every_loaded_row_not_just_the_page() -> None:
    rows = [[f"r{i}", "", "", ""] for i in range(12)]
    view = make_view(rows=rows, page_size=5)
    view.selection.toggle_all(view.rows)
    assert len(view.selection) == 12
    view.selection.toggle_all(view.rows)
    assert len(view.selection) == 0


# ==================== DELETE ====================

def test_delete_runs_in_descending_sheet_row_order() -> None:
    sheets = RecordingSheets()
    report = delete_rows(sheets, "Data", [2, 9, 5], header_rows=1)
    assert sheets.deleted == [11, 7, 4]
    assert report.ok and report.deleted == [11, 7, 4]


def test_delete_offsets_by_two_header_rows_for_grouped_sheets() -> None:
    sheets = RecordingSheets()
    delete_rows(sheets, "Pelantikan", [0, 1], header_rows=2)
    assert sheets.deleted == [4, 3]


def test_delete_stops_at_first_failure() -> None:
    sheets = RecordingSheets(fail_rows={7})
    report = delete_rows(sheets, "Data", [2, 5, 9])
    assert not report.ok
    assert report.deleted == [11]
    assert report.failed_row == 7
    assert sheets.deleted == [11]
    assert report.to_dict()["failedRow"] == 7


def test_delete_rejects_header_and_unloaded_rows_before_deleting() -> None:
    sheets = RecordingSheets()
    with pytest.raises(ValueError, match="-1"):
        delete_rows(sheets, "Data", [3, -1])
    with pytest.raises(ValueError, match="5"):
        delete_rows(sheets, "Data", [0, 5], known=range(5))
    assert sheets.deleted == []


def test_delete_selected_refuses_rows_outside_the_loaded_data() -> None:
    sheets = RecordingSheets()
    view = make_view(sheets=sheets)
    view.selection.selected = {1, 40}
    with pytest.raises(ValueError):
        view.delete_selected()
    assert sheets.deleted == []
    assert view.selection.selected == {1, 40}


def test_delete_selected_clears_selection_and_notifies() -> None:
    sheets = RecordingSheets()
    view = make_view(sheets=sheets)
    view.selection.toggle(1)
    view.selection.toggle(3)
    report = view.delete_selected()
    assert report.ok
    assert sheets.deleted == [5, 3]
    assert len(view.selection) == 0
    assert view.notifications[-1].message == "2 row(s) deleted"


def test_delete_selected_with_empty_selection_only_warns() -> None:
    sheets = RecordingSheets()
    view = make_view(sheets=sheets)
    view.delete_selected()
    assert sheets.deleted == []
    assert view.notifications[-1].level == "warning"


def test_failed_delete_keeps_selection_and_reports_error() -> None:
    view = make_view(sheets=RecordingSheets(fail_rows={3}))
    view.selection.toggle(1)
    report = view.delete_selected()
    assert not report.ok
    assert 1 in view.selection
    assert view.notifications[-1].level == "error"


def test_mutations_need_edit_permission() -> None:
    view = make_view(user=READER)
    view.selection.toggle(0)
    with pytest.raises(AccessDenied):
        view.delete_selected()
    with pytest.raises(AccessDenied):
        view.add_row()


# ==================== ADD ====================

def test_add_row_fills_uuid_columns() -> None:
    sheets = RecordingSheets()
    settings = [ColumnSetting(name="Status", type=ColumnType.UUID)]
    view = make_view(sheets=sheets, settings=settings)
    assert view.add_row()
    (values,) = sheets.appended
    assert len(values) == 4
    assert values[1] and values[0] == values[2] == values[3] == ""
    assert view.notifications[-1].message == "Row added successfully"


def test_add_row_failure_becomes_error_notification() -> None:
    view = make_view(sheets=RecordingSheets(fail_append=True))
    assert view.add_row(["x", "", "", ""]) is False
    assert view.notifications[-1].level == "error"
    assert "quota" in view.notifications[-1].message


# ==================== SERIALISATION / EXPORT ====================

def test_to_dict_reports_counts_and_hides_hidden_columns() -> None:
    settings = [ColumnSetting(name="Joined", visible=False)]
    view = make_view(settings=settings, page_size=5)
    view.set_filter("col_0", TextFilter("item"))
    data = view.to_dict()
    assert [c["key"] for c in data["columns"]] == ["col_0", "col_1", "col_3"]
    assert sum(g["colspan"] for g in data["headerGroups"]) == 3
    assert data["total"] == 5
    assert data["filteredCount"] == 2
    assert data["pageCount"] == 1
    assert data["filters"]["col_0"]["kind"] == "text"
    assert data["subheaderCells"] == []


def test_grouped_view_places_controls_on_subheader_cells() -> None:
    data = SheetData(
        headers=["NO", "NAMA", "SK", ""],
        subheaders=["", "", "NO. SK", "TGL. SK"],
        rows=[["1", "Budi", "SK-01", "15-Mar-2024"]],
        header_merges=[MergeInfo(2, 4)],
    )
    view = TableView("Pelantikan", data, [], EDITOR, RecordingSheets())
    assert view.header_rows == 2
    assert [g.label for g in view.header_groups] == ["NO", "NAMA", "SK"]
    assert [c.label for c in view.subheader_cells] == ["NO. SK", "TGL. SK"]
    assert view.columns[3].label == "TGL. SK"


def test_export_contains_all_filtered_rows_across_pages() -> None:
    rows = [[f"r{i}", "Active" if i % 2 else "", "", ""] for i in range(12)]
    view = make_view(rows=rows, page_size=5)
    view.set_filter("col_1", ValueSetFilter(("Active",)))
    wb = load_workbook(BytesIO(export_xlsx(view)))
    ws = wb.active
    values = list(ws.iter_rows(values_only=True))
    assert values[0] == ("Name", "Status", "Joined", "Prioritas")
    assert len(values) == 1 + 6
    assert values[1][0] == "r1"
