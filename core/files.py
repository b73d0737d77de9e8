"""
================================================================================
FILES.PY - APPS SCRIPT FILE STORE CLIENT
================================================================================
PURPOSE: Talk to the Google Apps Script web app that keeps row attachments in
         Drive folders named after a cell value.

ACTIONS:
  - listFiles   GET  ?action=listFiles&folderName=...
  - upload      POST form: folderName, fileName, fileData (base64), mimeType
  - deleteFile  POST form: fileId
  - rename      POST form: oldFolderName, newFolderName

Every response is JSON ``{"success": bool, "message": str, "data": ...}``.
A non-JSON body or ``success: false`` raises RemoteCallFailed.
================================================================================
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

import requests

from config import Config
from core.errors import ConfigurationMissing, RemoteCallFailed
from core.logger import log_msg

_DRIVE_ID = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_DOC_TYPES = ("pdf", "document", "spreadsheet", "presentation")


def preview_url(file: Dict[str, Any]) -> str:
    """
    Embeddable preview link for a listed file: Drive images use the ``uc``
    endpoint, documents the ``/preview`` page, anything else its download link.
    """
    url = str(file.get("url") or "")
    mime = str(file.get("mimeType") or "")
    if "drive.google.com" in url:
        match = _DRIVE_ID.search(url)
        if match:
            file_id = match.group(1)
            if "image/" in mime:
                return f"https://drive.google.com/uc?id={file_id}"
            if any(kind in mime for kind in _DOC_TYPES):
                return f"https://drive.google.com/file/d/{file_id}/preview"
    return str(file.get("downloadUrl") or url)


class FileStorageClient:
    def __init__(self, script_url: Optional[str] = None, timeout: Optional[int] = None, session=None):
        self.script_url = script_url if script_url is not None else Config.GOOGLE_APPS_SCRIPT_URL
        self.timeout = timeout or Config.FILE_REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def _require_url(self) -> str:
        if not self.script_url:
            raise ConfigurationMissing("GOOGLE_APPS_SCRIPT_URL not set")
        return self.script_url

    def _call(self, action: str, method: str = "POST", **fields) -> Dict[str, Any]:
        url = self._require_url()
        try:
            if method == "GET":
                response = self.session.get(url, params={"action": action, **fields}, timeout=self.timeout)
            else:
                response = self.session.post(url, data={"action": action, **fields}, timeout=self.timeout)
        except requests.RequestException as exc:
            log_msg(f"[ERROR] File store '{action}' request failed: {exc}")
            raise RemoteCallFailed(f"File store request failed: {exc}", action) from exc

        try:
            result = response.json()
        except ValueError:
            log_msg(f"[ERROR] File store '{action}' returned non-JSON (HTTP {response.status_code})")
            raise RemoteCallFailed("Invalid response from file store", action) from None

        if not isinstance(result, dict) or not result.get("success"):
            message = result.get("message") if isinstance(result, dict) else None
            log_msg(f"[ERROR] File store '{action}' failed: {message or 'unknown error'}")
            raise RemoteCallFailed(message or f"File store '{action}' failed", action)
        return result

    def list_files(self, folder_name: str):
        result = self._call("listFiles", method="GET", folderName=folder_name)
        files = result.get("data") or []
        log_msg(f"[FILE] {len(files)} file(s) in '{folder_name}'")
        return files

    def upload_file(self, folder_name: str, file_name: str, file_data: str,
                    mime_type: str = "application/octet-stream"):
        """``file_data`` is the base64 payload without any data-URL prefix."""
        result = self._call(
            "upload",
            folderName=folder_name,
            fileName=file_name,
            fileData=file_data,
            mimeType=mime_type or "application/octet-stream",
        )
        log_msg(f"[FILE] Uploaded '{file_name}' to '{folder_name}'")
        return result.get("data")

    def delete_file(self, file_id: str):
        result = self._call("deleteFile", fileId=file_id)
        log_msg(f"[FILE] Deleted file {file_id}")
        return result.get("data")

    def rename_folder(self, old_name: str, new_name: str):
        result = self._call("rename", oldFolderName=old_name, newFolderName=new_name)
        log_msg(f"[FILE] Folder '{old_name}' renamed to '{new_name}'")
        return result.get("data")
