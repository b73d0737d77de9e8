"""
================================================================================
EDITING.PY - EDIT / SYNC COORDINATOR
================================================================================
PURPOSE: Own the single active edit session of a table view and push cell
         edits to the spreadsheet.

COMMIT PROTOCOL:
  1. begin_commit records the old value and a per-cell version token
  2. the remote updater is called
  3. complete_commit applies the value locally only when the call succeeded
     AND the token is still the newest one for that cell, so a late response
     never overwrites a newer edit
  4. for upload-linked columns whose value really changed (old and new both
     non-empty) a folder rename is dispatched separately; its failure only
     adds a warning and never touches the committed cell

Checkbox columns skip the session and write TRUE/FALSE immediately.
Dropdown columns commit as soon as a different option is chosen.
================================================================================
"""

from __future__ import annotations

import itertools
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from core.errors import AccessDenied, RemoteCallFailed
from core.logger import log_msg
from grid.rows import RowRecord
from grid.settings import ColumnType, ResolvedColumn


@dataclass(frozen=True)
class CellRef:
    row_index: int
    column: str


@dataclass(frozen=True)
class Notification:
    level: str  # success | info | warning | error
    message: str

    def to_dict(self) -> dict:
        return {"type": self.level, "message": self.message}


@dataclass(frozen=True)
class PendingEdit:
    cell: CellRef
    value: str
    old_value: str
    token: int


@dataclass
class CommitResult:
    ok: bool
    cell: CellRef
    value: str
    applied: bool = False
    error: Optional[str] = None
    rename: Optional[Future] = None


def run_inline(fn: Callable[[], object]) -> Future:
    """Default dispatcher: run ``fn`` now and hand back a completed Future."""
    future: Future = Future()
    try:
        future.set_result(fn())
    except Exception as exc:
        future.set_exception(exc)
    return future


class EditCoordinator:
    """
    PURPOSE: Single-session cell editor for one sheet.

    ATTRIBUTES:
      active (CellRef | None): the cell currently in edit mode
      notifications (list[Notification]): user-facing messages, oldest first
    """

    def __init__(
        self,
        sheet_name: str,
        rows: Sequence[RowRecord],
        columns: Sequence[ResolvedColumn],
        updater,
        files=None,
        can_edit: bool = True,
        dispatch: Optional[Callable[[Callable[[], object]], Future]] = None,
        dropdown_options: Optional[Mapping[str, List[str]]] = None,
    ):
        self.sheet_name = sheet_name
        self.updater = updater
        self.files = files
        self.can_edit = can_edit
        self.dispatch = dispatch or run_inline
        self.dropdown_options = dict(dropdown_options or {})
        self.active: Optional[CellRef] = None
        self.notifications: List[Notification] = []

        self._rows: Dict[int, RowRecord] = {r.row_index: r for r in rows}
        self._columns: Dict[str, ResolvedColumn] = {c.key: c for c in columns}
        self._versions: Dict[CellRef, int] = {}
        self._tokens = itertools.count(1)

    # ==================== SESSION ====================

    def column(self, key: str) -> ResolvedColumn:
        try:
            return self._columns[key]
        except KeyError:
            raise ValueError(f"Unknown column: {key}") from None

    def row(self, row_index: int) -> RowRecord:
        try:
            return self._rows[row_index]
        except KeyError:
            raise ValueError(f"Unknown row index: {row_index}") from None

    def can_activate(self, row_index: int, column: str) -> bool:
        col = self._columns.get(column)
        if col is None or row_index not in self._rows:
            return False
        return self.can_edit and col.editable and not col.is_checkbox

    def activate(self, row_index: int, column: str) -> bool:
        """Enter edit mode on a cell; any other open session is replaced."""
        if not self.can_activate(row_index, column):
            return False
        self.active = CellRef(row_index, column)
        return True

    def is_editing(self, row_index: int, column: str) -> bool:
        return self.active == CellRef(row_index, column)

    def cancel(self):
        self.active = None

    def blur(self, new_value: str) -> Optional[CommitResult]:
        """Leave the active cell; commits only when the value changed."""
        if self.active is None:
            return None
        cell = self.active
        if new_value == self.row(cell.row_index).get(cell.column):
            self.active = None
            return None
        return self.commit(cell.row_index, cell.column, new_value)

    # ==================== COMMIT ====================

    def begin_commit(self, row_index: int, column: str, value: str) -> PendingEdit:
        col = self.column(column)
        row = self.row(row_index)
        if not (self.can_edit and col.editable):
            raise AccessDenied(f"Column '{col.label}' is not editable")

        cell = CellRef(row_index, column)
        token = next(self._tokens)
        self._versions[cell] = token
        return PendingEdit(cell=cell, value=value, old_value=row.get(column), token=token)

    def complete_commit(self, pending: PendingEdit, error: Optional[Exception] = None) -> CommitResult:
        cell = pending.cell
        if self.active == cell:
            self.active = None

        if error is not None:
            message = str(error) or "Update failed"
            log_msg(f"[ERROR] Update {self.sheet_name}!{cell.column} row {cell.row_index} failed: {message}")
            self.notifications.append(Notification("error", message))
            return CommitResult(ok=False, cell=cell, value=pending.value, error=message)

        if self._versions.get(cell) != pending.token:
            log_msg(f"[INFO] Ignoring stale update for {cell.column} row {cell.row_index}")
            return CommitResult(ok=True, cell=cell, value=pending.value, applied=False)

        self._rows[cell.row_index].columns[cell.column] = pending.value
        result = CommitResult(ok=True, cell=cell, value=pending.value, applied=True)

        col = self._columns[cell.column]
        old, new = pending.old_value, pending.value
        if col.upload_linked and old and new and old != new and self.files is not None:
            result.rename = self._dispatch_rename(old, new)
        return result

    def commit(self, row_index: int, column: str, value: str) -> CommitResult:
        """Write one cell remotely, then reconcile local state."""
        pending = self.begin_commit(row_index, column, value)
        col = self._columns[column]
        try:
            self.updater.update_cell(self.sheet_name, row_index, col.index, value)
        except RemoteCallFailed as exc:
            return self.complete_commit(pending, exc)
        return self.complete_commit(pending)

    def toggle_checkbox(self, row_index: int, column: str, checked: bool) -> CommitResult:
        col = self.column(column)
        if not col.is_checkbox:
            raise ValueError(f"Column '{col.label}' is not a checkbox column")
        return self.commit(row_index, column, "TRUE" if checked else "FALSE")

    def choose_option(self, row_index: int, column: str, value: str) -> Optional[CommitResult]:
        if value == self.row(row_index).get(column):
            if self.active == CellRef(row_index, column):
                self.active = None
            return None
        return self.commit(row_index, column, value)

    def options_for(self, column: str) -> List[str]:
        """Dropdown choices by match key, header, label, then case-insensitively."""
        col = self.column(column)
        if col.type != ColumnType.DROPDOWN:
            return []
        for name in (col.match_key, col.header.strip(), col.label):
            if name in self.dropdown_options:
                return list(self.dropdown_options[name])
        wanted = col.match_key.lower()
        for name, values in self.dropdown_options.items():
            if name.lower() == wanted:
                return list(values)
        return []

    # ==================== SIDE EFFECTS ====================

    def _dispatch_rename(self, old: str, new: str) -> Future:
        log_msg(f"[FILE] Renaming folder '{old}' -> '{new}'")
        future = self.dispatch(lambda: self.files.rename_folder(old, new))

        def _report(done: Future):
            exc = done.exception()
            if exc is None:
                log_msg(f"[OK] Folder renamed '{old}' -> '{new}'")
                self.notifications.append(
                    Notification("success", f'Cell updated and folder renamed from "{old}" to "{new}"')
                )
            else:
                log_msg(f"[WARN] Folder rename '{old}' -> '{new}' failed: {exc}")
                self.notifications.append(
                    Notification("warning", f"Cell updated successfully, but folder rename failed: {exc}")
                )

        future.add_done_callback(_report)
        return future
