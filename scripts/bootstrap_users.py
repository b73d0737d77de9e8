#!/usr/bin/env python3
"""
================================================================================
BOOTSTRAP_USERS.PY - SEED THE USERS AND PERMISSION SHEETS
================================================================================
PURPOSE: Prepare a fresh spreadsheet for login.

LOGIC:
  - Create the ``users`` sheet if missing and write the first account
  - Create ``page_setting`` if missing: one column per data sheet, one row for
    the new account's type with access to everything
  - Existing content is left alone unless --force is given

USAGE:
  python -m scripts.bootstrap_users --username admin --password secret
================================================================================
"""

import sys
import argparse

from config import Config
from core.errors import SheetDeskError
from core.logger import log_msg, print_header, print_success, print_error, print_warning
from sheets_manager import SheetsManager, authenticate_google

USER_HEADERS = ["Username", "Password", "Name", "Type", "allowUploadFiles", "allowDeleteFiles"]
PERMISSION_TYPE_HEADER = "Type"


def seed_users(sheets, username: str, password: str, name: str, user_type: str, force: bool = False) -> bool:
    sheets.ensure_sheet(Config.SHEET_USERS, cols=len(USER_HEADERS))
    if sheets.get_users() and not force:
        print_warning(f"'{Config.SHEET_USERS}' already has accounts (use --force to overwrite)")
        return False
    sheets.replace_values(
        Config.SHEET_USERS, USER_HEADERS, [[username, password, name, user_type, "yes", "yes"]]
    )
    print_success(f"User '{username}' ({user_type}) written to '{Config.SHEET_USERS}'")
    return True


def seed_permissions(sheets, user_type: str, force: bool = False) -> bool:
    """Grant ``user_type`` every data sheet in a new page_setting matrix."""
    sheets.ensure_sheet(Config.SHEET_PAGE_SETTING)
    current = sheets.get_sheet_data(Config.SHEET_PAGE_SETTING)
    if current.rows and not force:
        print_warning(f"'{Config.SHEET_PAGE_SETTING}' already configured (use --force to overwrite)")
        return False

    reserved = set(Config.META_SHEETS) | {Config.SHEET_USERS}
    data_sheets = [t for t in sheets.list_sheets() if t not in reserved]
    headers = [PERMISSION_TYPE_HEADER] + data_sheets + [Config.SHEET_USERS]
    row = [user_type] + ["yes"] * (len(headers) - 1)
    sheets.replace_values(Config.SHEET_PAGE_SETTING, headers, [row])
    log_msg(f"[SHEET] '{user_type}' granted {len(headers) - 1} sheet(s) in '{Config.SHEET_PAGE_SETTING}'")
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed the users and page_setting sheets")
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--type", dest="user_type", default="admin")
    parser.add_argument("--force", action="store_true", help="Overwrite existing rows")
    args = parser.parse_args(argv)

    if Config.validate(verbose=False):
        print_error("Configuration incomplete - run `python main.py check`")
        return 1

    print_header("SheetDesk bootstrap", {"User": args.username, "Type": args.user_type})
    try:
        sheets = SheetsManager(authenticate_google())
        seed_users(sheets, args.username, args.password, args.name, args.user_type, args.force)
        seed_permissions(sheets, args.user_type, args.force)
    except SheetDeskError as e:
        print_error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
