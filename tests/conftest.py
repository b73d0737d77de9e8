"""Shared fixtures: an in-memory stand-in for the gspread client surface."""

from __future__ import annotations

import copy
import re

import pytest
from gspread.exceptions import APIError, WorksheetNotFound

from config import Config


class FakeResponse:
    def __init__(self, code: int, message: str = "boom"):
        self.status_code = code
        self.text = message
        self._payload = {"error": {"code": code, "message": message, "status": "FAILED"}}

    def json(self):
        return self._payload


def api_error(code: int = 500, message: str = "boom") -> APIError:
    return APIError(FakeResponse(code, message))


_A1 = re.compile(r"^([A-Z]+)(\d+)$")


def _a1_to_cell(a1: str):
    col_letters, row = _A1.match(a1).groups()
    col = 0
    for ch in col_letters:
        col = col * 26 + (ord(ch) - 64)
    return int(row) - 1, col - 1


class FakeWorksheet:
    def __init__(self, title: str, values, merges=None):
        self.title = title
        self.values = [list(r) for r in values]
        self.merges = merges or []
        self.calls = []
        self.failures = {}

    def _maybe_fail(self, op, *args):
        self.calls.append((op,) + args)
        planned = self.failures.get((op,) + args) or self.failures.get(op)
        if planned:
            error = planned.pop(0)
            if error is not None:
                raise error

    def fail(self, op, *errors, args=()):
        self.failures[(op,) + tuple(args) if args else op] = list(errors)

    def get_all_values(self):
        self._maybe_fail("get_all_values")
        return copy.deepcopy(self.values)

    def update(self, values=None, range_name=None):
        self._maybe_fail("update", range_name)
        row0, col0 = _a1_to_cell(range_name)
        for r_off, row in enumerate(values):
            r = row0 + r_off
            while len(self.values) <= r:
                self.values.append([])
            target = self.values[r]
            for c_off, value in enumerate(row):
                c = col0 + c_off
                while len(target) <= c:
                    target.append("")
                target[c] = value

    def append_row(self, values, insert_data_option=None):
        self._maybe_fail("append_row")
        self.values.append(list(values))

    def insert_row(self, values, index=1):
        self._maybe_fail("insert_row", index)
        self.values.insert(index - 1, list(values))

    def delete_rows(self, start_index, end_index=None):
        self._maybe_fail("delete_rows", start_index)
        del self.values[start_index - 1]

    def clear(self):
        self._maybe_fail("clear")
        self.values = []


class FakeSpreadsheet:
    def __init__(self, worksheets):
        self._sheets = list(worksheets)
        self.metadata_calls = 0

    def worksheet(self, title):
        for ws in self._sheets:
            if ws.title == title:
                return ws
        raise WorksheetNotFound(title)

    def get_worksheet(self, index):
        return self._sheets[index]

    def worksheets(self):
        return list(self._sheets)

    def add_worksheet(self, title, rows=1000, cols=26):
        ws = FakeWorksheet(title, [])
        self._sheets.append(ws)
        return ws

    def remove(self, title):
        self._sheets = [ws for ws in self._sheets if ws.title != title]

    def fetch_sheet_metadata(self, params=None):
        self.metadata_calls += 1
        sheets = []
        for idx, ws in enumerate(self._sheets):
            entry = {"properties": {"title": ws.title, "sheetId": idx}}
            if ws.merges:
                entry["merges"] = copy.deepcopy(ws.merges)
            sheets.append(entry)
        return {"sheets": sheets}


class FakeClient:
    def __init__(self, spreadsheet):
        self.spreadsheet = spreadsheet
        self.opened = []

    def open_by_key(self, key):
        self.opened.append(key)
        return self.spreadsheet


# ==================== SAMPLE WORKBOOK ====================

GROUPED_SHEET = "Pelantikan"

GROUPED_VALUES = [
    ["NO", "NAMA", "SK", "", "FOLDER", "uuid"],
    ["", "", "NO. SK", "TGL. SK", "", ""],
    ["1", "Budi", "SK-01", "15-Mar-2024", "TeamA", "u-1"],
    ["2", "Sari", "", "01-Apr-2024", "TeamC", "u-2"],
    ["", "Ani", "SK-03", "", "", "u-3"],
]

# Google omits zero-valued indexes, so startRowIndex is absent here
GROUPED_MERGES = [{"endRowIndex": 1, "startColumnIndex": 2, "endColumnIndex": 4}]

FLAT_VALUES = [
    ["Name", "Status", "Joined", "Prioritas"],
    ["Zed", "Active", "05-Jan-2024", "TRUE"],
    ["amy", "Inactive", "03/15/2024", ""],
    ["Bob", "Active", "2024-03-20", "FALSE"],
    ["item 10", "", "", ""],
    ["item 9", "", "", ""],
]

USERS_VALUES = [
    ["Username", "Password", "Name", "Type", "allowUploadFiles", "allowDeleteFiles"],
    ["admin", "pw", "Admin", "admin", "yes", "no"],
    ["viewer", "pw2", "Viewer", "viewer", "no", "yes"],
]

PAGE_SETTING_VALUES = [
    ["Type", GROUPED_SHEET, "Data", "users"],
    ["admin", "yes", "yes", "yes"],
    ["viewer", "no", "y", "no"],
]

COLUMN_SETTING_VALUES = [
    ["name", "type", "show", "edit", "upload"],
    ["NAMA", "text", "sticky", "yes", "no"],
    ["TGL. SK", "date", "yes", "yes", "no"],
    ["FOLDER", "text", "yes", "yes", "yes"],
    ["uuid", "uuid", "no", "no", "no"],
    ["Status", "dropdown", "yes", "yes", "no"],
    ["Joined", "date", "yes", "yes", "no"],
]

DROPDOWN_VALUES = [
    ["Status"],
    ["Active"],
    ["Inactive"],
]


@pytest.fixture(autouse=True)
def _test_config(monkeypatch):
    monkeypatch.setattr(Config, "SESSION_SECRET", "test-secret")
    monkeypatch.setattr(Config, "QUOTA_BACKOFF_SECONDS", 0)
    monkeypatch.setattr(Config, "SHEET_WRITE_DELAY", 0)
    monkeypatch.setattr(Config, "GOOGLE_SHEET_ID", "sheet-123")
    monkeypatch.setattr(Config, "GOOGLE_APPS_SCRIPT_URL", "https://script.example/exec")


@pytest.fixture
def workbook():
    return FakeSpreadsheet([
        FakeWorksheet("Data", FLAT_VALUES),
        FakeWorksheet(GROUPED_SHEET, GROUPED_VALUES, merges=GROUPED_MERGES),
        FakeWorksheet("users", USERS_VALUES),
        FakeWorksheet("page_setting", PAGE_SETTING_VALUES),
        FakeWorksheet("colom_setting", COLUMN_SETTING_VALUES),
        FakeWorksheet("list_dropdown", DROPDOWN_VALUES),
    ])


@pytest.fixture
def sheets(workbook):
    from core.sheets import SheetsManager

    return SheetsManager(FakeClient(workbook), sheet_id="sheet-123")


@pytest.fixture
def make_api_error():
    return api_error
