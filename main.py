#!/usr/bin/env python3
"""
================================================================================
MAIN.PY - ENTRY POINT
================================================================================
PURPOSE: Command line entry for SheetDesk.

COMMANDS:
  serve   Run the JSON API (Flask development server)
  check   Validate configuration and the spreadsheet connection
  show    Print one page of a sheet through the table engine

USAGE:
  python main.py serve --port 8080
  python main.py check
  python main.py show "Pelantikan" --search col_2=budi --sort=-col_4 --page-size 20
================================================================================
"""

import sys
import json
import argparse

from rich.table import Table

from config import Config
from core.errors import SheetDeskError
from core.logger import (
    console, get_timestamp_full, log_msg, print_header, print_separator,
    print_success, print_error, print_warning,
)
from core.auth import UserContext
from core.sheets import SheetsManager, authenticate_google
from grid.view import TableView
from web.flask_app import apply_query, create_app


# ==================== COMMANDS ====================

def cmd_serve(args) -> int:
    if Config.validate(verbose=False):
        print_warning("Configuration incomplete - run `python main.py check` for details")

    host = args.host or Config.HOST
    port = args.port or Config.PORT
    print_header("SheetDesk API", {
        "Host": host,
        "Port": port,
        "Started": get_timestamp_full(),
        "Mode": "CI/CD (GitHub Actions)" if Config.IS_CI else "Local Development",
    })
    create_app().run(host=host, port=port, debug=args.debug)
    return 0


def cmd_check(args) -> int:
    """
    PURPOSE: Validate configuration, then open the spreadsheet and confirm the
             settings sheets exist.

    RETURNS:
      int: 0 when everything is reachable, 1 otherwise
    """
    if Config.validate():
        return 1

    try:
        sheets = SheetsManager(authenticate_google())
        titles = sheets.list_sheets()
    except SheetDeskError as e:
        print_error(f"Failed to connect to Google Sheets: {e}")
        return 1

    print_separator()
    log_msg(f"[SHEET] {len(titles)} worksheet(s) found")
    missing = [name for name in (Config.SHEET_USERS,) + Config.META_SHEETS if name not in titles]
    for name in missing:
        print_warning(f"Sheet '{name}' not found")
    if not missing:
        print_success("All settings sheets present")
    print_separator()
    return 0


def _query_args(args) -> dict:
    query = {}
    filters = {}
    for item in args.search or []:
        column, _, text = item.partition("=")
        if not text:
            raise ValueError(f"--search expects COLUMN=TEXT, got '{item}'")
        filters[column] = {"kind": "text", "text": text}
    if filters:
        query["filters"] = json.dumps(filters)
    if args.preset:
        query["preset"] = args.preset
    if args.sort:
        query["sort"] = args.sort
    if args.page_size:
        query["pageSize"] = args.page_size
    if args.page:
        query["page"] = args.page - 1
    return query


def cmd_show(args) -> int:
    try:
        sheets = SheetsManager(authenticate_google())
        user = UserContext(user="cli", name="cli", user_type=args.user_type or "")
        view = TableView(
            args.sheet,
            sheets.get_sheet_data(args.sheet),
            sheets.get_column_settings(),
            user,
            sheets,
            dropdown_options=sheets.get_dropdown_options(),
        )
        apply_query(view, _query_args(args))
    except (SheetDeskError, ValueError) as e:
        print_error(str(e))
        return 1

    table = Table(title=args.sheet, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    for col in view.visible_columns:
        table.add_column(col.label, style="bold" if col.sticky else None)
    for row in view.page_rows():
        table.add_row(str(row.id), *[row.get(c.key) for c in view.visible_columns])

    console.print(table)
    log_msg(
        f"[INFO] Page {view.pagination.page_index + 1}/{view.page_count} - "
        f"{view.filtered_count} of {len(view.rows)} rows"
    )
    return 0


# ==================== MAIN ====================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SheetDesk - Google Sheets admin dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the JSON API")
    serve.add_argument("--host", default=None, help="Bind address (default from .env)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from .env)")
    serve.add_argument("--debug", action="store_true", help="Flask debug mode")
    serve.set_defaults(func=cmd_serve)

    check = sub.add_parser("check", help="Validate configuration and connection")
    check.set_defaults(func=cmd_check)

    show = sub.add_parser("show", help="Print a sheet through the table engine")
    show.add_argument("sheet", help="Worksheet name")
    show.add_argument("--search", action="append", metavar="COLUMN=TEXT",
                      help="Text filter on a column key (repeatable)")
    show.add_argument("--preset", metavar="COLUMN:PRESET", help="Quick date filter, e.g. col_3:thismonth")
    show.add_argument("--sort", metavar="COLUMN", help="Sort column key; use --sort=-COLUMN for descending")
    show.add_argument("--page-size", type=int, default=None, choices=Config.PAGE_SIZE_CHOICES)
    show.add_argument("--page", type=int, default=None, help="1-based page number")
    show.add_argument("--user-type", default=None, help="User type label shown in the context")
    show.set_defaults(func=cmd_show)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
