"""Tests for the command line entry and the bootstrap script."""

from __future__ import annotations

import json

import pytest

import main
from scripts.bootstrap_users import USER_HEADERS, seed_permissions, seed_users


def test_show_arguments_become_a_table_query() -> None:
    args = main.build_parser().parse_args(
        ["show", "Data", "--search", "col_0=bo", "--sort=-col_0", "--page-size", "10", "--page", "2"]
    )
    query = main._query_args(args)
    assert json.loads(query["filters"]) == {"col_0": {"kind": "text", "text": "bo"}}
    assert query["sort"] == "-col_0"
    assert query["pageSize"] == 10
    assert query["page"] == 1


def test_search_needs_column_and_text() -> None:
    args = main.build_parser().parse_args(["show", "Data", "--search", "col_0"])
    with pytest.raises(ValueError):
        main._query_args(args)


def test_page_size_is_limited_to_known_choices() -> None:
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["show", "Data", "--page-size", "7"])


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        main.build_parser().parse_args([])


# ==================== BOOTSTRAP ====================

def test_seed_users_keeps_existing_accounts(sheets, workbook) -> None:
    assert seed_users(sheets, "root", "pw", "Root", "admin") is False
    assert workbook.worksheet("users").values[1][0] == "admin"


def test_seed_users_creates_sheet_when_missing(sheets, workbook) -> None:
    workbook.remove("users")
    assert seed_users(sheets, "root", "pw", "Root", "admin") is True
    assert workbook.worksheet("users").values == [USER_HEADERS, ["root", "pw", "Root", "admin", "yes", "yes"]]


def test_seed_permissions_with_force_grants_every_data_sheet(sheets, workbook) -> None:
    assert seed_permissions(sheets, "admin") is False
    assert seed_permissions(sheets, "admin", force=True) is True
    assert workbook.worksheet("page_setting").values == [
        ["Type", "Data", "Pelantikan", "users"],
        ["admin", "yes", "yes", "yes"],
    ]
