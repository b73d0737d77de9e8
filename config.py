"""
Configuration Manager for SheetDesk
Handles all environment variables and settings
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Get script directory
SCRIPT_DIR = Path(__file__).parent.absolute()

# Load .env file
env_path = SCRIPT_DIR / '.env'
if env_path.exists():
    load_dotenv(env_path)


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y")


class Config:
    """Central configuration class"""

    # Google Sheets
    GOOGLE_SHEET_ID = os.getenv('GOOGLE_SHEET_ID', '').strip()
    GOOGLE_CREDENTIALS_JSON = os.getenv('GOOGLE_CREDENTIALS_JSON', '').strip()
    GOOGLE_APPLICATION_CREDENTIALS = os.getenv('GOOGLE_APPLICATION_CREDENTIALS', 'credentials.json').strip()
    GOOGLE_SERVICE_ACCOUNT_EMAIL = os.getenv('GOOGLE_SERVICE_ACCOUNT_EMAIL', '').strip()
    GOOGLE_PRIVATE_KEY = os.getenv('GOOGLE_PRIVATE_KEY', '')

    # File storage (Apps Script web app)
    GOOGLE_APPS_SCRIPT_URL = os.getenv('GOOGLE_APPS_SCRIPT_URL', '').strip()
    FILE_REQUEST_TIMEOUT = int(os.getenv('FILE_REQUEST_TIMEOUT', '60'))

    # Sessions
    SESSION_SECRET = (os.getenv('SESSION_SECRET', '') or GOOGLE_PRIVATE_KEY).strip()
    SESSION_HOURS = int(os.getenv('SESSION_HOURS', '8'))
    SESSION_COOKIE = 'sheetdesk_session'
    COOKIE_SECURE = _env_flag('COOKIE_SECURE')

    # Server
    HOST = os.getenv('HOST', '127.0.0.1').strip()
    PORT = int(os.getenv('PORT', '8080'))

    # Sheet API pacing
    SHEET_WRITE_DELAY = float(os.getenv('SHEET_WRITE_DELAY', '0'))
    QUOTA_BACKOFF_SECONDS = float(os.getenv('QUOTA_BACKOFF_SECONDS', '60'))

    # Table defaults
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '50'))
    PAGE_SIZE_CHOICES = (5, 10, 20, 50, 100)

    # Local time (WIB by default)
    UTC_OFFSET_HOURS = int(os.getenv('UTC_OFFSET_HOURS', '7'))

    # Paths
    SCRIPT_DIR = SCRIPT_DIR

    # Environment
    IS_CI = bool(os.getenv('GITHUB_ACTIONS'))

    # Sheet Names
    SHEET_USERS = "users"
    SHEET_PAGE_SETTING = "page_setting"
    SHEET_COLUMN_SETTING = "colom_setting"
    SHEET_DROPDOWN = "list_dropdown"

    # Readable by every logged-in user so the UI can build menus and columns
    META_SHEETS = (SHEET_PAGE_SETTING, SHEET_COLUMN_SETTING, SHEET_DROPDOWN)

    # Sheets whose second row may be a subheader row under merged headers
    SUBHEADER_SHEETS = (
        "Pengusulan Administrator dan Pengawas",
        "Pengusulan Pelaksana Tugas/Harian",
        "Pelantikan",
        "Penugasan Luar Instansi",
        "Pengusulan JPT",
        "Data Rektor",
    )

    # Dashboard categories: rows with a name are submissions, rows that also
    # carry a decree number are issued
    DASHBOARD_CATEGORIES = [
        {
            "name": "Pengusulan Pelaksana Tugas/Harian",
            "sheet": "Pengusulan Pelaksana Tugas/Harian",
            "name_field": "NAMA",
            "doc_field": "NO. SURAT PLT/PLH",
            "date_fields": ["TGL. SURAT USUL", "TGL. SURAT PLT/PLH"],
        },
        {
            "name": "Pengusulan Administrator & Pengawas",
            "sheet": "Pengusulan Administrator dan Pengawas",
            "name_field": "NAMA",
            "doc_field": "NO. SK",
            "date_fields": ["TGL. SURAT USUL", "TGL. SK"],
        },
        {
            "name": "Pelantikan",
            "sheet": "Pelantikan",
            "name_field": "NAMA",
            "doc_field": "NO. SK",
            "date_fields": ["TGL. SK"],
        },
        {
            "name": "Penugasan Luar Instansi",
            "sheet": "Penugasan Luar Instansi",
            "name_field": "NAMA",
            "doc_field": "NO. SK PENUGASAN",
            "date_fields": ["TGL. SURAT", "TGL. SK PENUGASAN"],
        },
        {
            "name": "Pengusulan JPT",
            "sheet": "Pengusulan JPT",
            "name_field": "NAMA",
            "doc_field": "NO. SK",
            "date_fields": ["TGL. SURAT USUL", "TGL. SK"],
        },
    ]

    @classmethod
    def validate(cls, verbose: bool = True):
        """Validate critical configuration and return the list of problems"""
        errors = []

        cred_path = cls._get_credentials_path()

        if verbose:
            print("=" * 70)
            print("CONFIGURATION VALIDATION")
            print("=" * 70)
            print(f"📍 Script Directory: {cls.SCRIPT_DIR}")
            print(f"📍 Credentials Path: {cred_path}")

        if not cls.GOOGLE_SHEET_ID:
            errors.append("❌ GOOGLE_SHEET_ID is required")
        elif verbose:
            print("✅ Google Sheet ID: Present")

        has_json = bool(cls.GOOGLE_CREDENTIALS_JSON)
        has_file = bool(cred_path) and Path(cred_path).exists()
        has_key = bool(cls.GOOGLE_SERVICE_ACCOUNT_EMAIL and cls.GOOGLE_PRIVATE_KEY.strip())

        if not (has_json or has_file or has_key):
            errors.append("❌ Google credentials required (JSON, file, or service account email + key)")
        elif verbose:
            if has_json:
                print("✅ Google Credentials: Raw JSON found")
            if has_file:
                print(f"✅ Google Credentials: File found at {cred_path}")
            if has_key:
                print("✅ Google Credentials: Service account email + private key")

        if not cls.SESSION_SECRET:
            errors.append("❌ SESSION_SECRET is required")

        if verbose:
            if not cls.GOOGLE_APPS_SCRIPT_URL:
                print("⚠️  GOOGLE_APPS_SCRIPT_URL not set (file attachments disabled)")
            print("=" * 70)
            if errors:
                print("❌ VALIDATION FAILED")
                print("=" * 70)
                for error in errors:
                    print(error)
            else:
                print("✅ VALIDATION PASSED")
            print("=" * 70)

        return errors

    @classmethod
    def _get_credentials_path(cls):
        """Get the actual credentials file path"""
        if cls.GOOGLE_APPLICATION_CREDENTIALS:
            p = Path(cls.GOOGLE_APPLICATION_CREDENTIALS)
            if p.is_absolute():
                return p
            return cls.SCRIPT_DIR / cls.GOOGLE_APPLICATION_CREDENTIALS
        return cls.SCRIPT_DIR / 'credentials.json'

    @classmethod
    def get_credentials_path(cls):
        """Public method to get credentials path"""
        return cls._get_credentials_path()
