"""
================================================================================
SHEETS_MANAGER.PY - HIGH LEVEL COLLABORATOR INTERFACES
================================================================================
PURPOSE: Provide a single import point for the spreadsheet and file store
         collaborators. Internally this re-exports the implementations in
         ``core.sheets`` and ``core.files``.
================================================================================
"""

from core.sheets import authenticate_google, SheetsManager, SheetData
from core.files import FileStorageClient

__all__ = ["authenticate_google", "SheetsManager", "SheetData", "FileStorageClient"]
