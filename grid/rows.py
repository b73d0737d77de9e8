"""Row projection: raw sheet rows -> keyed records with a durable row index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Union

from grid.settings import column_key

ID_COLUMN_NAME = "NO"


@dataclass
class RowRecord:
    id: Union[str, int]
    row_index: int
    columns: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str:
        return self.columns.get(key, "")

    def to_dict(self) -> dict:
        return {"id": self.id, "rowIndex": self.row_index, **self.columns}


def find_id_column(headers: Sequence[str]) -> int:
    for idx, header in enumerate(headers):
        if str(header or "").strip().upper() == ID_COLUMN_NAME:
            return idx
    return -1


def project_rows(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[RowRecord]:
    """
    Project raw rows into ``RowRecord``s.

    ``row_index`` is always the 0-based position among data rows; ``id`` comes
    from a non-empty ``NO`` cell when the sheet has that column.
    """
    id_col = find_id_column(headers)
    records = []
    for position, raw in enumerate(rows):
        columns = {}
        for idx in range(len(headers)):
            value = raw[idx] if idx < len(raw) else ""
            columns[column_key(idx)] = "" if value is None else str(value)

        row_id: Union[str, int] = position
        if id_col != -1 and columns[column_key(id_col)]:
            row_id = columns[column_key(id_col)]

        records.append(RowRecord(id=row_id, row_index=position, columns=columns))
    return records


def sheet_row_number(row_index: int, header_rows: int = 1) -> int:
    """Translate a 0-based data row index to the sheet's 1-based row number."""
    return row_index + header_rows + 1
