"""
================================================================================
FLASK_APP.PY - SHEETDESK JSON API
================================================================================
PURPOSE: Serve the table engine, login/session handling and the file store
         proxies over HTTP.

NOTES:
  - The spreadsheet connection is opened lazily on first use so /healthz and
    app import work without credentials
  - Every route below /api except login needs a valid session cookie
  - SheetDeskError subclasses carry their own HTTP status; ValueError is 400
================================================================================
"""

from __future__ import annotations

import json
from io import BytesIO

from flask import Flask, jsonify, request, send_file

from config import Config
from core.auth import (
    UserContext, create_session_token, login, verify_session_token,
)
from core.dashboard import dashboard_stats
from core.errors import AccessDenied, NotAuthenticated, RemoteCallFailed, SheetDeskError
from core.files import FileStorageClient, preview_url
from core.logger import get_local_time, log_msg
from core.sheets import SheetsManager, authenticate_google
from grid.editing import run_inline
from grid.export import export_xlsx
from grid.filters import filter_from_payload
from grid.settings import ColumnType, column_key, resolve_columns
from grid.utils import format_date_ddmmmyyyy
from grid.view import TableView

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _as_int(value, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer") from None


def _require(body: dict, *names: str):
    missing = [n for n in names if body.get(n) in (None, "")]
    if missing:
        raise ValueError(f"Missing parameters: {', '.join(missing)}")


def apply_query(view: TableView, args) -> TableView:
    """
    Apply ``filters``, ``preset``, ``sort``, ``pageSize`` and ``page`` query
    arguments to a view. Date presets are computed in the configured local time.

      filters   JSON object: column key -> filter payload
      preset    "<column key>:<preset name>", e.g. "col_3:thismonth"
      sort      column key, prefixed with "-" for descending
    """
    now = get_local_time()
    raw_filters = args.get("filters")
    if raw_filters:
        parsed = json.loads(raw_filters)
        if not isinstance(parsed, dict):
            raise ValueError("filters must be a JSON object")
        for column, payload in parsed.items():
            spec = filter_from_payload(payload, now=now)
            if spec is not None:
                view.set_filter(column, spec)

    preset = args.get("preset")
    if preset:
        column, _, name = preset.partition(":")
        if not view.apply_date_preset(column, name, now=now):
            raise ValueError(f"Unknown date preset: {name}")

    sort = args.get("sort")
    if sort:
        view.set_sort(sort.lstrip("-"), descending=sort.startswith("-"))

    if args.get("pageSize"):
        view.pagination.set_page_size(_as_int(args.get("pageSize"), "pageSize"))
    if args.get("page"):
        view.go_to_page(_as_int(args.get("page"), "page"))
    return view


def create_app(sheets=None, files=None, dispatch=None) -> Flask:
    """
    PURPOSE: Build the Flask application.

    ARGS:
      sheets: SheetsManager (opened lazily from Config when omitted)
      files: FileStorageClient (built from Config when omitted)
      dispatch: runs the folder-rename side effect. Inline by default so the
                rename outcome still lands in the /api/sheetUpdate
                notifications. With an executor the response carries
                ``renamePending`` instead and the outcome is only logged.
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    state = {"sheets": sheets, "files": files}
    dispatch = dispatch or run_inline

    def get_sheets():
        if state["sheets"] is None:
            state["sheets"] = SheetsManager(authenticate_google())
        return state["sheets"]

    def get_files():
        if state["files"] is None:
            state["files"] = FileStorageClient()
        return state["files"]

    # ==================== SESSION HELPERS ====================

    def session_payload() -> dict:
        payload = verify_session_token(request.cookies.get(Config.SESSION_COOKIE))
        if payload is None:
            raise NotAuthenticated("Not authenticated")
        return payload

    def body() -> dict:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    def user_for(payload: dict, sheet: str, write: bool = False) -> UserContext:
        matrix = get_sheets().get_permission_matrix()
        user_type = payload.get("type", "")
        if write:
            if not matrix.is_allowed(user_type, sheet):
                raise AccessDenied("Access denied")
        elif not matrix.can_read(user_type, sheet):
            raise AccessDenied("Access denied")
        return UserContext.from_session(payload, matrix, sheet)

    def build_view(sheet: str, user: UserContext) -> TableView:
        manager = get_sheets()
        file_client = get_files()
        return TableView(
            sheet,
            manager.get_sheet_data(sheet),
            manager.get_column_settings(),
            user,
            manager,
            files=file_client if file_client.script_url else None,
            dropdown_options=manager.get_dropdown_options(),
            dispatch=dispatch,
        )

    # ==================== ERRORS ====================

    @app.errorhandler(SheetDeskError)
    def handle_sheetdesk_error(exc):
        return jsonify({"ok": False, "error": str(exc)}), exc.status_code

    @app.errorhandler(ValueError)
    def handle_value_error(exc):
        return jsonify({"ok": False, "error": str(exc)}), 400

    # ==================== HEALTH / SESSION ====================

    @app.route("/healthz")
    def healthz():
        return jsonify({"ok": True})

    @app.route("/api/login", methods=["POST"])
    def api_login():
        data = body()
        username = str(data.get("user") or "")
        password = str(data.get("pass") or "")
        if not username or not password:
            raise ValueError("user and pass required")

        found = login(get_sheets(), username, password)
        if found is None:
            raise NotAuthenticated("Invalid credentials")

        max_age = Config.SESSION_HOURS * 3600
        token = create_session_token(found, expires_in=max_age)
        response = jsonify({"ok": True, "user": found})
        response.set_cookie(
            Config.SESSION_COOKIE, token, max_age=max_age, path="/",
            httponly=True, samesite="Lax", secure=Config.COOKIE_SECURE,
        )
        return response

    @app.route("/api/logout", methods=["POST"])
    def api_logout():
        response = jsonify({"ok": True})
        response.set_cookie(Config.SESSION_COOKIE, "", max_age=0, path="/", httponly=True, samesite="Lax")
        return response

    @app.route("/api/permissions")
    def api_permissions():
        payload = session_payload()
        matrix = get_sheets().get_permission_matrix()
        user_type = payload.get("type", "")
        return jsonify({
            "ok": True,
            "type": user_type,
            "allowed": matrix.allowed_sheets(user_type),
            "user": UserContext.from_session(payload).to_dict(),
        })

    # ==================== SHEETS ====================

    @app.route("/api/sheet")
    def api_sheet():
        payload = session_payload()
        sheet = request.args.get("sheet") or None
        if sheet:
            user_for(payload, sheet)

        manager = get_sheets()
        data = manager.get_sheet_data(sheet)
        if sheet and sheet not in Config.META_SHEETS:
            columns = resolve_columns(data.headers, data.subheaders, manager.get_column_settings())
            date_cols = [c.index for c in columns if c.type == ColumnType.DATE]
            if date_cols:
                data.rows = [
                    [format_date_ddmmmyyyy(v) if i in date_cols else v for i, v in enumerate(row)]
                    for row in data.rows
                ]
        return jsonify(data.to_dict())

    @app.route("/api/table")
    def api_table():
        payload = session_payload()
        sheet = request.args.get("sheet")
        if not sheet:
            raise ValueError("sheet is required")
        user = user_for(payload, sheet)
        view = apply_query(build_view(sheet, user), request.args)

        result = view.to_dict()
        result["user"] = user.to_dict()
        result["dropdownOptions"] = {
            c.key: view.editor.options_for(c.key)
            for c in view.visible_columns if c.type == ColumnType.DROPDOWN
        }
        return jsonify(result)

    @app.route("/api/sheetUpdate", methods=["POST"])
    def api_sheet_update():
        payload = session_payload()
        data = body()
        _require(data, "sheetName", "rowIndex", "colIndex")
        sheet = str(data["sheetName"])
        row_index = _as_int(data["rowIndex"], "rowIndex")
        col_index = _as_int(data["colIndex"], "colIndex")
        value = "" if data.get("value") is None else str(data.get("value"))

        user = user_for(payload, sheet, write=True)
        view = build_view(sheet, user)
        result = view.editor.commit(row_index, column_key(col_index), value)
        response = {
            "ok": result.ok,
            "applied": result.applied,
            "value": result.value,
            "renamePending": result.rename is not None and not result.rename.done(),
            "notifications": [n.to_dict() for n in view.notifications],
        }
        if not result.ok:
            response["error"] = result.error
            return jsonify(response), RemoteCallFailed.status_code
        return jsonify(response)

    @app.route("/api/sheetAppend", methods=["POST"])
    def api_sheet_append():
        payload = session_payload()
        data = body()
        _require(data, "sheetName")
        sheet = str(data["sheetName"])
        values = data.get("values")
        if values is not None and not isinstance(values, list):
            raise ValueError("values must be a list")

        view = build_view(sheet, user_for(payload, sheet, write=True))
        if values is not None:
            width = len(view.headers) or len(values)
            values = [("" if v is None else str(v)) for v in values[:width]]
            values += [""] * (width - len(values))
        ok = view.add_row(values)
        response = {"ok": ok, "notifications": [n.to_dict() for n in view.notifications]}
        return jsonify(response), (200 if ok else RemoteCallFailed.status_code)

    @app.route("/api/sheetDelete", methods=["POST"])
    def api_sheet_delete():
        payload = session_payload()
        data = body()
        _require(data, "sheetName")
        sheet = str(data["sheetName"])

        if data.get("rowIndexes") is not None:
            indexes = data["rowIndexes"]
            if not isinstance(indexes, list) or not indexes:
                raise ValueError("rowIndexes must be a non-empty list")
            view = build_view(sheet, user_for(payload, sheet, write=True))
            view.selection.selected = {_as_int(i, "rowIndexes") for i in indexes}
            report = view.delete_selected()
            response = report.to_dict()
            response["notifications"] = [n.to_dict() for n in view.notifications]
            return jsonify(response), (200 if report.ok else RemoteCallFailed.status_code)

        _require(data, "rowIndex")
        row_number = _as_int(data["rowIndex"], "rowIndex")
        user_for(payload, sheet, write=True)
        get_sheets().delete_row(sheet, row_number)
        return jsonify({"ok": True})

    @app.route("/api/sheetBulkUpdate", methods=["POST"])
    def api_sheet_bulk_update():
        payload = session_payload()
        data = body()
        _require(data, "sheet")
        headers, rows = data.get("headers"), data.get("rows")
        if not isinstance(headers, list) or not isinstance(rows, list):
            raise ValueError("Missing sheet, headers, or rows")
        sheet = str(data["sheet"])
        user_for(payload, sheet, write=True)
        get_sheets().replace_values(sheet, headers, rows)
        log_msg(f"[SHEET] Bulk update of '{sheet}' by {payload.get('user', '?')}")
        return jsonify({"ok": True})

    @app.route("/api/export")
    def api_export():
        payload = session_payload()
        sheet = request.args.get("sheet")
        if not sheet:
            raise ValueError("sheet is required")
        view = apply_query(build_view(sheet, user_for(payload, sheet)), request.args)
        filename = sheet.replace("/", "-") + ".xlsx"
        return send_file(BytesIO(export_xlsx(view)), mimetype=XLSX_MIME,
                         as_attachment=True, download_name=filename)

    @app.route("/api/dashboard")
    def api_dashboard():
        session_payload()
        return jsonify(dashboard_stats(get_sheets()))

    # ==================== FILES ====================

    @app.route("/api/fileList")
    def api_file_list():
        session_payload()
        folder = request.args.get("folderName")
        if not folder:
            raise ValueError("Missing required parameter: folderName")
        files_found = get_files().list_files(folder)
        for item in files_found:
            if isinstance(item, dict):
                item["previewUrl"] = preview_url(item)
        return jsonify({"success": True, "data": files_found})

    @app.route("/api/fileUpload", methods=["POST"])
    def api_file_upload():
        user = UserContext.from_session(session_payload())
        if not user.can_upload:
            raise AccessDenied("You do not have permission to upload files")
        data = body()
        _require(data, "folderName", "fileName", "fileData")
        result = get_files().upload_file(
            data["folderName"], data["fileName"], data["fileData"],
            data.get("mimeType") or "application/octet-stream",
        )
        return jsonify({"success": True, "data": result})

    @app.route("/api/fileDelete", methods=["POST"])
    def api_file_delete():
        user = UserContext.from_session(session_payload())
        if not user.can_delete:
            raise AccessDenied("You do not have permission to delete files")
        data = body()
        _require(data, "fileId")
        result = get_files().delete_file(data["fileId"])
        return jsonify({"success": True, "data": result})

    @app.route("/api/folderRename", methods=["POST"])
    def api_folder_rename():
        session_payload()
        data = body()
        _require(data, "oldFolderName", "newFolderName")
        result = get_files().rename_folder(data["oldFolderName"], data["newFolderName"])
        return jsonify({"success": True, "message": "Folder renamed successfully", "data": result})

    return app
