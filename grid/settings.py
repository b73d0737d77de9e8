"""
================================================================================
SETTINGS.PY - COLUMN SETTINGS RESOLVER
================================================================================
PURPOSE: Turn the stringly-typed ``colom_setting`` and ``list_dropdown`` sheets
         into strict column rules, and resolve the rule for every header
         position of a data sheet.

RULES:
  - Match key is the subheader text when present, else the header text
    (trimmed, case-insensitive)
  - Missing settings fail open: text, visible, editable, not upload-linked
  - uuid columns are never editable
  - show = "sticky" means visible and pinned
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from grid.utils import is_yes

PRIORITY_FLAG_NAME = "prioritas"


class ColumnType(str, Enum):
    TEXT = "text"
    DATE = "date"
    TIME = "time"
    DROPDOWN = "dropdown"
    UUID = "uuid"
    CHECKBOX = "checkbox"

    @classmethod
    def parse(cls, value) -> "ColumnType":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.TEXT


@dataclass(frozen=True)
class ColumnSetting:
    name: str
    type: ColumnType = ColumnType.TEXT
    visible: bool = True
    sticky: bool = False
    editable: bool = True
    upload_linked: bool = False


DEFAULT_SETTING = ColumnSetting(name="")


@dataclass(frozen=True)
class ResolvedColumn:
    """Effective display rules for one header position."""

    index: int
    key: str
    header: str
    subheader: str
    match_key: str
    label: str
    type: ColumnType
    visible: bool
    sticky: bool
    editable: bool
    upload_linked: bool

    @property
    def has_subheader(self) -> bool:
        return self.subheader != ""

    @property
    def is_checkbox(self) -> bool:
        return self.type == ColumnType.CHECKBOX or self.match_key.lower() == PRIORITY_FLAG_NAME

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "key": self.key,
            "header": self.header,
            "subheader": self.subheader,
            "label": self.label,
            "type": self.type.value,
            "visible": self.visible,
            "sticky": self.sticky,
            "editable": self.editable,
            "uploadLinked": self.upload_linked,
            "checkbox": self.is_checkbox,
        }


def column_key(index: int) -> str:
    return f"col_{index}"


def parse_settings_rows(rows: Sequence[Sequence[str]]) -> List[ColumnSetting]:
    """
    Normalise raw ``colom_setting`` rows (name, type, show, edit, upload).

    Rows without a name are skipped. Blank show/edit cells default to "yes",
    matching how the sheet is maintained by hand.
    """
    settings = []
    for row in rows:
        cells = [str(c or "").strip() for c in row]
        cells += [""] * (5 - len(cells))
        name, type_, show, edit, upload = cells[:5]
        if not name:
            continue
        show = (show or "yes").lower()
        edit = edit or "yes"
        settings.append(
            ColumnSetting(
                name=name,
                type=ColumnType.parse(type_ or "text"),
                visible=is_yes(show) or show == "sticky",
                sticky=show == "sticky",
                editable=is_yes(edit),
                upload_linked=is_yes(upload),
            )
        )
    return settings


def parse_dropdown_options(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> Dict[str, List[str]]:
    """Each ``list_dropdown`` column header names a column; its cells are the choices."""
    options: Dict[str, List[str]] = {}
    for col_idx, header in enumerate(headers):
        name = str(header or "").strip()
        if not name:
            continue
        values = []
        for row in rows:
            value = str(row[col_idx] if col_idx < len(row) else "").strip()
            if value:
                values.append(value)
        options[name] = values
    return options


def find_setting(settings: Sequence[ColumnSetting], match_key: str) -> Optional[ColumnSetting]:
    wanted = match_key.strip().lower()
    for setting in settings:
        if setting.name.strip().lower() == wanted:
            return setting
    return None


def resolve_columns(
    headers: Sequence[str],
    subheaders: Optional[Sequence[str]],
    settings: Sequence[ColumnSetting],
) -> List[ResolvedColumn]:
    """Resolve the effective rules for every header position (pure)."""
    resolved = []
    for idx, raw_header in enumerate(headers):
        header = str(raw_header or "")
        subheader = ""
        if subheaders and idx < len(subheaders):
            subheader = str(subheaders[idx] or "").strip()
        match_key = subheader or header.strip()

        setting = find_setting(settings, match_key) or DEFAULT_SETTING
        editable = setting.editable and setting.type != ColumnType.UUID

        resolved.append(
            ResolvedColumn(
                index=idx,
                key=column_key(idx),
                header=header,
                subheader=subheader,
                match_key=match_key,
                label=subheader or header,
                type=setting.type,
                visible=setting.visible,
                sticky=setting.sticky,
                editable=editable,
                upload_linked=setting.upload_linked,
            )
        )
    return resolved
