"""Tests for login lookup, session tokens and the sheet permission matrix."""

from __future__ import annotations

import pytest

from core.auth import (
    PermissionMatrix,
    UserContext,
    create_session_token,
    find_user,
    login,
    verify_session_token,
)
from core.errors import ConfigurationMissing

USER_ROWS = [
    ["admin", "pw", "Admin", "admin", "yes", "no"],
    ["short", "x"],
]


def test_find_user_matches_exact_username_and_password() -> None:
    found = find_user(USER_ROWS, "admin", "pw")
    assert found == {
        "user": "admin",
        "name": "Admin",
        "type": "admin",
        "allowUploadFiles": "yes",
        "allowDeleteFiles": "no",
    }
    assert find_user(USER_ROWS, "admin", "PW") is None
    assert find_user(USER_ROWS, "Admin", "pw") is None
    assert find_user(USER_ROWS, "", "") is None


def test_find_user_tolerates_short_rows() -> None:
    found = find_user(USER_ROWS, "short", "x")
    assert found["type"] == "" and found["allowDeleteFiles"] == ""


def test_login_reads_the_users_sheet(sheets) -> None:
    assert login(sheets, "viewer", "pw2")["type"] == "viewer"
    assert login(sheets, "viewer", "wrong") is None


# ==================== TOKENS ====================

def test_token_round_trip() -> None:
    token = create_session_token({"user": "admin", "type": "admin"}, expires_in=60, now=1000)
    payload = verify_session_token(token, now=1030)
    assert payload == {"user": "admin", "type": "admin", "exp": 1060}


def test_expired_token_is_rejected() -> None:
    token = create_session_token({"user": "admin"}, expires_in=60, now=1000)
    assert verify_session_token(token, now=1061) is None


def test_tampered_token_is_rejected() -> None:
    token = create_session_token({"user": "viewer", "type": "viewer"}, now=1000)
    _, sig = token.split(".")
    forged = create_session_token({"user": "viewer", "type": "admin"}, now=1000).split(".")[0]
    assert verify_session_token(f"{forged}.{sig}", now=1000) is None
    assert verify_session_token(token, secret="another-secret", now=1000) is None
    assert verify_session_token("not-a-token") is None
    assert verify_session_token(None) is None


def test_missing_secret_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationMissing):
        create_session_token({"user": "a"}, secret="")


# ==================== PERMISSIONS ====================

@pytest.fixture
def matrix():
    return PermissionMatrix.from_sheet(
        ["Type", "Pelantikan", "Data", ""],
        [["Admin", "yes", "TRUE", "yes"], ["viewer", "no", "y"], ["", "yes", "yes"]],
    )


def test_matrix_flags_are_normalised(matrix) -> None:
    assert matrix.user_types() == ["admin", "viewer"]
    assert matrix.allowed_sheets("ADMIN") == {"Pelantikan": True, "Data": True}
    assert matrix.allowed_sheets("viewer") == {"Pelantikan": False, "Data": True}


def test_unknown_types_and_sheets_are_denied(matrix) -> None:
    assert not matrix.is_allowed("guest", "Data")
    assert not matrix.is_allowed("admin", "Secret")
    assert matrix.allowed_sheets("guest") == {}


def test_meta_sheets_are_always_readable(matrix) -> None:
    assert matrix.can_read("guest", "colom_setting")
    assert matrix.can_read("viewer", "page_setting")
    assert not matrix.can_read("viewer", "users")


def test_user_context_combines_matrix_and_user_flags(matrix) -> None:
    payload = {"user": "viewer", "name": "V", "type": "viewer",
               "allowUploadFiles": "no", "allowDeleteFiles": "yes"}
    on_data = UserContext.from_session(payload, matrix, "Data")
    on_grouped = UserContext.from_session(payload, matrix, "Pelantikan")
    assert on_data.can_edit and not on_grouped.can_edit
    assert (on_data.can_upload, on_data.can_delete) == (False, True)
    assert UserContext.from_session(payload).can_edit is False
    assert on_data.to_dict()["canDelete"] is True
