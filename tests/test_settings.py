"""Tests for column settings parsing and resolution."""

from __future__ import annotations

from grid.settings import (
    ColumnSetting,
    ColumnType,
    parse_dropdown_options,
    parse_settings_rows,
    resolve_columns,
)


def test_missing_setting_defaults_to_visible_editable_text() -> None:
    columns = resolve_columns(["Name"], None, [])
    col = columns[0]
    assert col.type == ColumnType.TEXT
    assert col.visible is True
    assert col.editable is True
    assert col.sticky is False
    assert col.upload_linked is False
    assert col.key == "col_0"


def test_uuid_column_is_never_editable() -> None:
    settings = [ColumnSetting(name="id", type=ColumnType.UUID, editable=True)]
    col = resolve_columns(["ID"], None, settings)[0]
    assert col.type == ColumnType.UUID
    assert col.editable is False


def test_subheader_text_is_the_match_key() -> None:
    settings = parse_settings_rows([
        ["TGL. SK", "date", "yes", "no", ""],
        ["SK", "text", "no", "yes", ""],
    ])
    columns = resolve_columns(["SK", "SK"], ["", "tgl. sk "], settings)
    assert columns[0].match_key == "SK"
    assert columns[0].visible is False
    assert columns[1].match_key == "tgl. sk"
    assert columns[1].label == "tgl. sk"
    assert columns[1].type == ColumnType.DATE
    assert columns[1].editable is False


def test_sticky_means_visible_and_pinned() -> None:
    setting = parse_settings_rows([["NAMA", "text", "Sticky", "", ""]])[0]
    assert setting.visible is True
    assert setting.sticky is True


def test_free_form_flags_are_normalised() -> None:
    rows = [
        ["A", "DROPDOWN", "Y", "true", "yes"],
        ["B", "mystery", "no", "n", ""],
        ["", "text", "yes", "yes", "yes"],
        ["C"],
    ]
    a, b, c = parse_settings_rows(rows)
    assert (a.type, a.visible, a.editable, a.upload_linked) == (ColumnType.DROPDOWN, True, True, True)
    assert (b.type, b.visible, b.editable) == (ColumnType.TEXT, False, False)
    # blank show/edit cells count as yes
    assert (c.name, c.visible, c.editable, c.upload_linked) == ("C", True, True, False)


def test_priority_flag_column_renders_as_checkbox() -> None:
    col = resolve_columns(["Prioritas"], None, [])[0]
    assert col.is_checkbox
    assert col.to_dict()["checkbox"] is True


def test_dropdown_options_read_column_wise() -> None:
    options = parse_dropdown_options(
        ["Status", "", "Unit"],
        [["Active", "x", "HR"], ["Inactive", "y", ""], ["", "", "IT"]],
    )
    assert options == {"Status": ["Active", "Inactive"], "Unit": ["HR", "IT"]}
