"""
================================================================================
HEADERS.PY - HEADER MERGE RECONCILER
================================================================================
PURPOSE: Rebuild the two-level header (grouped header + optional subheader row)
         of a sheet from its flat header row, its subheader row and the merge
         ranges Google Sheets reports for row 0.

LOGIC:
  - Scan visible columns left to right
  - A column that starts a row-0 merge consumes the whole span as one group
    (colspan = visible columns in the span, label = top header text)
  - A group "has a subheader" when ANY column in it has subheader text:
    centred, row_span 1, controls live on the row-2 cells
  - A group without subheader spans both rows and carries sort/filter on its
    first column only
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from grid.settings import column_key


@dataclass(frozen=True)
class MergeInfo:
    """A merged range; column and row ends are exclusive (GridRange style)."""

    start_col: int
    end_col: int
    start_row: int = 0
    end_row: int = 1

    def covers(self, col: int) -> bool:
        return self.start_col <= col < self.end_col

    def to_dict(self) -> dict:
        return {
            "startColumnIndex": self.start_col,
            "endColumnIndex": self.end_col,
            "startRowIndex": self.start_row,
            "endRowIndex": self.end_row,
        }


@dataclass
class HeaderGroup:
    label: str
    columns: List[int] = field(default_factory=list)
    has_subheader: bool = False
    row_span: int = 1
    merged: bool = False
    sort_column: Optional[str] = None
    filter_column: Optional[str] = None

    @property
    def colspan(self) -> int:
        return len(self.columns)

    @property
    def centered(self) -> bool:
        return self.has_subheader

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "columns": [column_key(i) for i in self.columns],
            "colspan": self.colspan,
            "rowSpan": self.row_span,
            "hasSubheader": self.has_subheader,
            "centered": self.centered,
            "sortColumn": self.sort_column,
            "filterColumn": self.filter_column,
        }


@dataclass(frozen=True)
class SubheaderCell:
    column: str
    label: str
    sortable: bool
    filterable: bool

    def to_dict(self) -> dict:
        return {
            "column": self.column,
            "label": self.label,
            "sortable": self.sortable,
            "filterable": self.filterable,
        }


def _subheader_at(subheaders: Optional[Sequence[str]], idx: int) -> str:
    if not subheaders or idx >= len(subheaders):
        return ""
    return str(subheaders[idx] or "").strip()


def top_row_merges(merges: Optional[Iterable[MergeInfo]]) -> List[MergeInfo]:
    """Keep only merges that start on the header row and span real columns."""
    return [m for m in (merges or []) if m.start_row == 0 and m.end_col > m.start_col]


def reconcile_headers(
    headers: Sequence[str],
    subheaders: Optional[Sequence[str]] = None,
    merges: Optional[Iterable[MergeInfo]] = None,
    visible: Optional[Iterable[int]] = None,
) -> List[HeaderGroup]:
    """
    Build the grouped header row.

    ARGS:
      headers: flat header row
      subheaders: second header row or None when the sheet has none
      merges: merge ranges (only row-0 merges are considered)
      visible: header indexes to render; defaults to every column

    RETURNS:
      list[HeaderGroup] whose colspans add up to the number of visible columns
    """
    visible_cols = list(range(len(headers))) if visible is None else sorted(set(visible))
    visible_set = set(visible_cols)
    two_rows = bool(subheaders)
    spans = top_row_merges(merges)

    groups: List[HeaderGroup] = []
    consumed = set()

    for idx in visible_cols:
        if idx in consumed:
            continue

        merge = next((m for m in spans if m.covers(idx)), None)
        if merge is not None:
            members = [c for c in range(merge.start_col, merge.end_col) if c in visible_set]
            label = str(headers[merge.start_col] if merge.start_col < len(headers) else "")
            merged = True
        else:
            members = [idx]
            label = str(headers[idx] or "")
            merged = False

        consumed.update(members)
        has_sub = any(_subheader_at(subheaders, c) for c in members)
        group = HeaderGroup(
            label=label,
            columns=members,
            has_subheader=has_sub,
            row_span=1 if (has_sub or not two_rows) else 2,
            merged=merged,
        )
        if not has_sub:
            group.sort_column = column_key(members[0])
            group.filter_column = column_key(members[0])
        groups.append(group)

    return groups


def subheader_cells(
    groups: Sequence[HeaderGroup],
    subheaders: Optional[Sequence[str]],
) -> List[SubheaderCell]:
    """
    Row-2 cells, in column order, for every group rendered with row_span 1
    under a subheader row. Columns without subheader text inside such a group
    get an inert placeholder so the row stays rectangular.
    """
    if not subheaders:
        return []
    cells = []
    for group in groups:
        if not group.has_subheader:
            continue
        for idx in group.columns:
            text = _subheader_at(subheaders, idx)
            cells.append(
                SubheaderCell(
                    column=column_key(idx),
                    label=text,
                    sortable=bool(text),
                    filterable=bool(text),
                )
            )
    return cells
