"""
================================================================================
core/__init__.py - Package Initialization
================================================================================
PURPOSE: Makes the core folder a Python package and exposes the collaborators
         around the table engine for easy importing

EXPORTS:
  - SheetsManager, SheetData, authenticate_google (from sheets)
  - FileStorageClient (from files)
  - PermissionMatrix, UserContext, session helpers (from auth)
  - error taxonomy (from errors)
  - log_msg and console helpers (from logger)
================================================================================
"""

from core.logger import (
    log_msg, get_local_time, get_timestamp_full,
    print_header, print_separator, print_success, print_error, print_warning
)

from core.errors import (
    SheetDeskError, ConfigurationMissing, NotAuthenticated, AccessDenied,
    SheetNotFound, RemoteCallFailed
)

from core.auth import (
    PermissionMatrix, UserContext, find_user, login,
    create_session_token, verify_session_token
)

from core.sheets import authenticate_google, SheetsManager, SheetData

from core.files import FileStorageClient, preview_url

from core.dashboard import dashboard_stats

__all__ = [
    'log_msg', 'get_local_time', 'get_timestamp_full',
    'print_header', 'print_separator', 'print_success', 'print_error', 'print_warning',
    'SheetDeskError', 'ConfigurationMissing', 'NotAuthenticated', 'AccessDenied',
    'SheetNotFound', 'RemoteCallFailed',
    'PermissionMatrix', 'UserContext', 'find_user', 'login',
    'create_session_token', 'verify_session_token',
    'authenticate_google', 'SheetsManager', 'SheetData',
    'FileStorageClient', 'preview_url',
    'dashboard_stats',
]
