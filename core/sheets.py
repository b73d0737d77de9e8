"""
================================================================================
SHEETS.PY - GOOGLE SHEETS OPERATIONS
================================================================================
PURPOSE: Handle all Google Sheets API interactions for the dashboard:
         authentication, reading a sheet with its grouped header, and the
         single-cell / single-row mutations the table engine issues.

FEATURES:
  - Service account auth (credentials file, raw JSON, or email + private key)
  - Header merge discovery from spreadsheet metadata
  - Subheader row detection for the grouped-header sheets
  - Cell update, row append/insert, row delete, bulk replace
  - 429 quota retry; every other API or transport error becomes RemoteCallFailed
================================================================================
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import gspread
import requests
from gspread.exceptions import APIError, GSpreadException, WorksheetNotFound
from google.oauth2.service_account import Credentials

from config import Config
from core.auth import PermissionMatrix
from core.errors import ConfigurationMissing, RemoteCallFailed, SheetNotFound
from core.logger import log_msg
from grid.headers import MergeInfo
from grid.rows import sheet_row_number
from grid.settings import ColumnSetting, parse_dropdown_options, parse_settings_rows
from grid.utils import col_to_letter

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]
TOKEN_URI = "https://oauth2.googleapis.com/token"
MAX_ATTEMPTS = 3


# ==================== GOOGLE AUTH ====================

def clean_private_key(raw: str) -> str:
    """Strip surrounding quotes and turn literal ``\\n`` sequences into newlines."""
    key = (raw or "").strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in ("'", '"'):
        key = key[1:-1]
    return key.replace("\\n", "\n")


def authenticate_google():
    """
    PURPOSE: Authenticate with Google Sheets API using a service account.

    LOGIC:
      - Use the credentials file when it exists
      - Else the raw JSON from GOOGLE_CREDENTIALS_JSON
      - Else GOOGLE_SERVICE_ACCOUNT_EMAIL + GOOGLE_PRIVATE_KEY
      - Authorize a gspread client with the required scopes

    RETURNS:
      gspread.Client: Authenticated Sheets client

    RAISES:
      ConfigurationMissing: no usable credentials were configured
    """
    log_msg("[INFO] Authenticating with Google Sheets API...")

    cred_path = Config.get_credentials_path()
    try:
        if cred_path and Path(cred_path).exists():
            log_msg(f"[INFO] Using credentials from: {cred_path}")
            credentials = Credentials.from_service_account_file(str(cred_path), scopes=SCOPES)
            cred_source = "local file"

        elif Config.GOOGLE_CREDENTIALS_JSON:
            cred_dict = json.loads(Config.GOOGLE_CREDENTIALS_JSON)
            credentials = Credentials.from_service_account_info(cred_dict, scopes=SCOPES)
            cred_source = "raw JSON"

        elif Config.GOOGLE_SERVICE_ACCOUNT_EMAIL and Config.GOOGLE_PRIVATE_KEY.strip():
            info = {
                "type": "service_account",
                "client_email": Config.GOOGLE_SERVICE_ACCOUNT_EMAIL,
                "private_key": clean_private_key(Config.GOOGLE_PRIVATE_KEY),
                "token_uri": TOKEN_URI,
            }
            credentials = Credentials.from_service_account_info(info, scopes=SCOPES)
            cred_source = "service account key"

        else:
            raise ConfigurationMissing(
                "Google credentials not found. Set GOOGLE_APPLICATION_CREDENTIALS, "
                "GOOGLE_CREDENTIALS_JSON, or GOOGLE_SERVICE_ACCOUNT_EMAIL + GOOGLE_PRIVATE_KEY"
            )
    except json.JSONDecodeError as e:
        raise ConfigurationMissing(f"Invalid JSON in credentials: {e}") from e
    except ValueError as e:
        raise ConfigurationMissing(f"Invalid service account credentials: {e}") from e

    client = gspread.authorize(credentials)
    log_msg(f"[OK] Google Sheets authenticated ({cred_source})")
    return client


# ==================== SHEET DATA ====================

@dataclass
class SheetData:
    headers: List[str]
    subheaders: Optional[List[str]] = None
    rows: List[List[str]] = field(default_factory=list)
    header_merges: List[MergeInfo] = field(default_factory=list)

    @property
    def header_rows(self) -> int:
        return 2 if self.subheaders else 1

    def to_dict(self) -> dict:
        data = {
            "headers": self.headers,
            "rows": self.rows,
            "headerMerges": [m.to_dict() for m in self.header_merges],
        }
        if self.subheaders:
            data["subheaders"] = self.subheaders
        return data


def row_has_label_text(row: Sequence[str]) -> bool:
    """True when any cell holds non-empty text that is not a number."""
    for cell in row:
        text = str(cell or "").strip()
        if not text:
            continue
        try:
            float(text)
        except ValueError:
            return True
    return False


# ==================== SHEETS MANAGER CLASS ====================

class SheetsManager:
    """
    PURPOSE: Centralized manager for all Google Sheets operations.

    ATTRIBUTES:
      client (gspread.Client): Authenticated Sheets API client
      ss (Spreadsheet): Active Google Spreadsheet
    """

    def __init__(self, client, sheet_id: str = None):
        sheet_id = sheet_id or Config.GOOGLE_SHEET_ID
        if not sheet_id:
            raise ConfigurationMissing("GOOGLE_SHEET_ID not set")

        log_msg("[INFO] Opening spreadsheet...")
        self.client = client
        self.ss = self._with_retry("open spreadsheet", lambda: client.open_by_key(sheet_id))
        self._header_rows: Dict[str, int] = {}
        log_msg("[OK] Sheets manager initialized")

    # ==================== INTERNALS ====================

    def _with_retry(self, operation: str, call):
        """
        PURPOSE: Run one API call, waiting out 429 quota errors.

        RAISES:
          RemoteCallFailed: any other API, gspread or transport error, or
                            quota still exceeded after MAX_ATTEMPTS
          WorksheetNotFound: passed through for the caller to translate
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return call()
            except APIError as e:
                if '429' in str(e) and attempt < MAX_ATTEMPTS:
                    log_msg(f"[API] 429 Quota exceeded, waiting {Config.QUOTA_BACKOFF_SECONDS:.0f}s...")
                    time.sleep(Config.QUOTA_BACKOFF_SECONDS)
                    continue
                log_msg(f"[ERROR] Failed to {operation}: {e}")
                raise RemoteCallFailed(f"Failed to {operation}: {e}", operation) from e
            except WorksheetNotFound:
                raise
            except (GSpreadException, requests.RequestException) as e:
                log_msg(f"[ERROR] Failed to {operation}: {e}")
                raise RemoteCallFailed(f"Failed to {operation}: {e}", operation) from e

    def _worksheet(self, name: Optional[str] = None):
        if not name:
            return self._with_retry("open first sheet", lambda: self.ss.get_worksheet(0))
        try:
            return self._with_retry("open sheet", lambda: self.ss.worksheet(name))
        except WorksheetNotFound:
            raise SheetNotFound(f"Sheet not found: {name}") from None

    def ensure_sheet(self, name: str, rows: int = 1000, cols: int = 26):
        """Get an existing worksheet or create it when missing."""
        try:
            return self._worksheet(name)
        except SheetNotFound:
            log_msg(f"[SHEET] Creating new sheet: {name}")
            return self._with_retry("create sheet", lambda: self.ss.add_worksheet(title=name, rows=rows, cols=cols))

    def _pause(self):
        if Config.SHEET_WRITE_DELAY:
            time.sleep(Config.SHEET_WRITE_DELAY)

    def _header_merges(self, title: str) -> List[MergeInfo]:
        """Row-0 merge ranges of one worksheet, read from spreadsheet metadata."""
        meta = self._with_retry("read sheet metadata", self.ss.fetch_sheet_metadata)
        for sheet in meta.get("sheets", []):
            if sheet.get("properties", {}).get("title") != title:
                continue
            merges = []
            for m in sheet.get("merges", []):
                # zero-valued indexes are omitted from the API response
                start_row = m.get("startRowIndex", 0)
                if start_row != 0:
                    continue
                merges.append(MergeInfo(
                    start_col=m.get("startColumnIndex", 0),
                    end_col=m.get("endColumnIndex", 0),
                    start_row=start_row,
                    end_row=m.get("endRowIndex", 1),
                ))
            return merges
        return []

    # ==================== READS ====================

    def list_sheets(self) -> List[str]:
        worksheets = self._with_retry("list sheets", self.ss.worksheets)
        return [ws.title for ws in worksheets]

    def get_sheet_data(self, name: Optional[str] = None) -> SheetData:
        """
        PURPOSE: Read a sheet with its header, optional subheader and merges.

        LOGIC:
          - No name reads the first worksheet
          - Row 2 is a subheader row only for SUBHEADER_SHEETS, only when the
            header row has merges, and only when row 2 has non-numeric text

        RETURNS:
          SheetData
        """
        ws = self._worksheet(name)
        values = self._with_retry("read sheet", ws.get_all_values)
        merges = self._header_merges(ws.title)

        headers = [str(c) for c in values[0]] if values else []
        subheaders = None
        data_start = 1

        if name in Config.SUBHEADER_SHEETS and len(values) > 1 and merges:
            second = values[1]
            if row_has_label_text(second):
                subheaders = [str(c or "") for c in second]
                data_start = 2
                log_msg(f"[SHEET] Subheaders detected in '{name}', data starts at row 3")

        data = SheetData(
            headers=headers,
            subheaders=subheaders,
            rows=[list(r) for r in values[data_start:]],
            header_merges=merges,
        )
        self._header_rows[ws.title] = data.header_rows
        return data

    def header_rows(self, name: str) -> int:
        if name not in Config.SUBHEADER_SHEETS:
            return 1
        if name not in self._header_rows:
            self.get_sheet_data(name)
        return self._header_rows[name]

    def get_users(self) -> List[List[str]]:
        """Data rows of the users sheet (Username, Password, Name, Type, ...)."""
        return self.get_sheet_data(Config.SHEET_USERS).rows

    def get_column_settings(self) -> List[ColumnSetting]:
        """Column rules from colom_setting; a missing sheet means defaults everywhere."""
        try:
            data = self.get_sheet_data(Config.SHEET_COLUMN_SETTING)
        except SheetNotFound:
            log_msg(f"[WARN] '{Config.SHEET_COLUMN_SETTING}' sheet missing, using default column rules")
            return []
        return parse_settings_rows(data.rows)

    def get_dropdown_options(self) -> Dict[str, List[str]]:
        try:
            data = self.get_sheet_data(Config.SHEET_DROPDOWN)
        except SheetNotFound:
            log_msg(f"[WARN] '{Config.SHEET_DROPDOWN}' sheet missing, dropdowns will be empty")
            return {}
        return parse_dropdown_options(data.headers, data.rows)

    def get_permission_matrix(self) -> PermissionMatrix:
        data = self.get_sheet_data(Config.SHEET_PAGE_SETTING)
        return PermissionMatrix.from_sheet(data.headers, data.rows)

    # ==================== WRITES ====================

    def update_cell(self, name: str, row_index: int, col_index: int, value: str):
        """
        PURPOSE: Write one cell RAW.

        ARGS:
          row_index (int): 0-based data row (header rows excluded)
          col_index (int): 0-based column
        """
        if row_index < 0 or col_index < 0:
            raise ValueError("rowIndex and colIndex must be non-negative")
        ws = self._worksheet(name)
        row = sheet_row_number(row_index, self.header_rows(name))
        a1 = f"{col_to_letter(col_index)}{row}"
        self._with_retry("update cell", lambda: ws.update(values=[[value]], range_name=a1))
        log_msg(f"[SHEET] {name}!{a1} updated")
        self._pause()

    def append_row(self, name: str, values: Sequence[str]):
        """
        PURPOSE: Add a row. Grouped-header sheets get the row right below the
                 header block; every other sheet appends at the end.
        """
        ws = self._worksheet(name)
        row_values = ["" if v is None else str(v) for v in values]
        header_rows = self.header_rows(name)
        if header_rows > 1:
            self._with_retry("insert row", lambda: ws.insert_row(row_values, index=header_rows + 1))
            log_msg(f"[SHEET] Row inserted into '{name}' at row {header_rows + 1}")
        else:
            self._with_retry("append row", lambda: ws.append_row(row_values, insert_data_option="INSERT_ROWS"))
            log_msg(f"[SHEET] Row appended to '{name}'")
        self._pause()

    def delete_row(self, name: str, row_number: int):
        """Delete one row by its 1-based sheet row number."""
        if row_number < 1:
            raise ValueError("rowIndex must be a 1-based sheet row number")
        ws = self._worksheet(name)
        self._with_retry("delete row", lambda: ws.delete_rows(row_number))
        log_msg(f"[SHEET] Row {row_number} deleted from '{name}'")
        self._pause()

    def replace_values(self, name: str, headers: Sequence[str], rows: Sequence[Sequence[str]]):
        """Clear a sheet and rewrite it as headers + rows (user management)."""
        ws = self._worksheet(name)
        values = [list(headers)] + [list(r) for r in rows]
        self._with_retry("clear sheet", ws.clear)
        self._with_retry("write sheet", lambda: ws.update(values=values, range_name="A1"))
        log_msg(f"[SHEET] '{name}' rewritten with {len(rows)} rows")
        self._pause()
