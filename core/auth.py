"""
================================================================================
AUTH.PY - LOGIN, SESSIONS AND SHEET PERMISSIONS
================================================================================
PURPOSE: Check credentials against the ``users`` sheet, issue and verify signed
         session tokens, and decide which sheets a user type may open from
         the ``page_setting`` matrix.

SESSION TOKEN:
  base64url(JSON payload incl. "exp") + "." + base64url(HMAC-SHA256)
  Verification is constant-time and rejects expired tokens.

USERS SHEET COLUMNS (by position):
  Username | Password | Name | Type | allowUploadFiles | allowDeleteFiles
================================================================================
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from config import Config
from core.errors import ConfigurationMissing
from core.logger import log_msg
from grid.utils import is_yes


# ==================== USERS ====================

def find_user(rows: Sequence[Sequence[str]], username: str, password: str) -> Optional[Dict[str, str]]:
    """
    PURPOSE: Find the users-sheet row matching a username/password pair.

    ARGS:
      rows: data rows of the users sheet (header excluded)

    RETURNS:
      dict with user, name, type, allowUploadFiles, allowDeleteFiles
      or None when nothing matches
    """
    if not username or not password:
        return None
    for row in rows:
        cells = [str(c or "") for c in row] + [""] * 6
        if cells[0] == username and cells[1] == password:
            return {
                "user": cells[0],
                "name": cells[2],
                "type": cells[3],
                "allowUploadFiles": cells[4],
                "allowDeleteFiles": cells[5],
            }
    return None


# ==================== SESSION TOKENS ====================

def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _secret(secret: Optional[str]) -> bytes:
    key = secret if secret is not None else Config.SESSION_SECRET
    if not key:
        raise ConfigurationMissing("SESSION_SECRET not set")
    return key.encode("utf-8")


def _sign(body: str, secret: Optional[str]) -> str:
    return _b64encode(hmac.new(_secret(secret), body.encode("utf-8"), hashlib.sha256).digest())


def create_session_token(payload: dict, expires_in: Optional[int] = None,
                         secret: Optional[str] = None, now: Optional[float] = None) -> str:
    """Sign ``payload`` plus an ``exp`` claim (seconds since epoch)."""
    if expires_in is None:
        expires_in = Config.SESSION_HOURS * 3600
    issued = int(now if now is not None else time.time())
    body = _b64encode(json.dumps({**payload, "exp": issued + expires_in}).encode("utf-8"))
    return f"{body}.{_sign(body, secret)}"


def verify_session_token(token: Optional[str], secret: Optional[str] = None,
                         now: Optional[float] = None) -> Optional[dict]:
    """Return the payload of a valid, unexpired token, else None."""
    if not token or token.count(".") != 1:
        return None
    body, sig = token.split(".")
    if not hmac.compare_digest(sig, _sign(body, secret)):
        return None
    try:
        payload = json.loads(_b64decode(body).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    current = now if now is not None else time.time()
    if isinstance(exp, (int, float)) and exp < int(current):
        return None
    return payload


# ==================== PERMISSIONS ====================

class PermissionMatrix:
    """
    ``page_setting``: column 0 holds the user type, every other header is a
    sheet name, cells are yes/y/true flags. Unknown types and unlisted
    sheets are denied.
    """

    def __init__(self, table: Dict[str, Dict[str, bool]]):
        self._table = table

    @classmethod
    def from_sheet(cls, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> "PermissionMatrix":
        sheets = [str(h or "") for h in headers]
        table = {}
        for row in rows:
            if not row:
                continue
            user_type = str(row[0] or "").strip()
            if not user_type:
                continue
            table[user_type.lower()] = {
                sheet: is_yes(row[i] if i < len(row) else "")
                for i, sheet in enumerate(sheets) if i > 0 and sheet
            }
        return cls(table)

    def user_types(self) -> List[str]:
        return sorted(self._table)

    def allowed_sheets(self, user_type: str) -> Dict[str, bool]:
        return dict(self._table.get(str(user_type or "").strip().lower(), {}))

    def is_allowed(self, user_type: str, sheet: str) -> bool:
        return self.allowed_sheets(user_type).get(sheet, False)

    def can_read(self, user_type: str, sheet: str) -> bool:
        """Meta sheets are readable by every logged-in user."""
        return sheet in Config.META_SHEETS or self.is_allowed(user_type, sheet)


@dataclass(frozen=True)
class UserContext:
    user: str
    name: str
    user_type: str
    can_edit: bool = False
    can_upload: bool = False
    can_delete: bool = False

    @classmethod
    def from_session(cls, payload: dict, matrix: Optional[PermissionMatrix] = None,
                     sheet: Optional[str] = None) -> "UserContext":
        """Edit rights come from the sheet permission; file rights from the user row."""
        user_type = str(payload.get("type", ""))
        can_edit = bool(matrix and sheet and matrix.is_allowed(user_type, sheet))
        return cls(
            user=str(payload.get("user", "")),
            name=str(payload.get("name", "")),
            user_type=user_type,
            can_edit=can_edit,
            can_upload=is_yes(payload.get("allowUploadFiles")),
            can_delete=is_yes(payload.get("allowDeleteFiles")),
        )

    def to_dict(self) -> dict:
        return {
            "user": self.user,
            "name": self.name,
            "type": self.user_type,
            "canEdit": self.can_edit,
            "canUpload": self.can_upload,
            "canDelete": self.can_delete,
        }


def login(sheets, username: str, password: str) -> Optional[Dict[str, str]]:
    """Check credentials against the users sheet; logs the outcome."""
    found = find_user(sheets.get_users(), username, password)
    if found is None:
        log_msg(f"[LOGIN] Rejected login for '{username}'")
        return None
    log_msg(f"[LOGIN] {found['user']} logged in as {found['type'] or 'unknown type'}")
    return found
