"""Spreadsheet export of the current table view."""

from __future__ import annotations

import re
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

MAX_TITLE_LEN = 31  # Excel sheet title limit
_INVALID_TITLE = re.compile(r"[\\*?:/\[\]]")


def export_xlsx(view) -> bytes:
    """
    Write the visible columns of every filtered and sorted row (all pages,
    not just the current one) to an .xlsx workbook and return its bytes.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = _INVALID_TITLE.sub("-", view.sheet_name or "Sheet")[:MAX_TITLE_LEN] or "Sheet"

    columns = view.visible_columns
    ws.append([c.label for c in columns])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in view.filtered_rows():
        ws.append([row.get(c.key) for c in columns])

    for idx, col in enumerate(columns, start=1):
        width = max([len(col.label)] + [len(row.get(col.key)) for row in view.rows[:200]])
        ws.column_dimensions[get_column_letter(idx)].width = min(max(width + 2, 8), 60)

    ws.freeze_panes = "A2"
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
