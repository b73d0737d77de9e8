"""Per-category submission / issued-decree counts for the dashboard page."""

from typing import Dict, List, Optional, Sequence

from config import Config
from core.errors import RemoteCallFailed, SheetNotFound
from core.logger import log_msg


def _normalise(text: str) -> str:
    return "".join(ch for ch in str(text or "").upper() if ch not in " .")


def _find(headers: Sequence[str], wanted: str) -> int:
    target = _normalise(wanted)
    for idx, header in enumerate(headers):
        if header and target in _normalise(header):
            return idx
    return -1


def _cell(row: Sequence[str], idx: int) -> str:
    if idx < 0 or idx >= len(row):
        return ""
    return str(row[idx] or "").strip()


def category_stats(category: dict, data) -> Dict[str, object]:
    """
    PURPOSE: Count one category sheet.

    LOGIC:
      - Name column is searched in the header row
      - Decree column is searched in the subheader row first, then the header
        row (ignoring spaces and dots)
      - A row with a name is a submission; one that also has a decree number
        counts as issued

    RETURNS:
      dict: submitted, issued, details
    """
    headers = data.headers or []
    subheaders = data.subheaders or []
    name_idx = next(
        (i for i, h in enumerate(headers) if h and category["name_field"].upper() in str(h).upper()), -1
    )
    doc_idx = _find(subheaders, category["doc_field"]) if subheaders else -1
    if doc_idx == -1:
        doc_idx = _find(headers, category["doc_field"])

    date_source = subheaders or headers
    date_cols = {}
    for field in category.get("date_fields", []):
        idx = next((i for i, h in enumerate(date_source) if str(h or "").upper() == field.upper()), -1)
        if idx != -1:
            date_cols[field] = idx

    details: List[dict] = []
    issued = 0
    for row in data.rows:
        name = _cell(row, name_idx)
        if not name:
            continue
        doc = _cell(row, doc_idx)
        if doc:
            issued += 1
        detail = {"name": name, "doc": doc}
        for field, idx in date_cols.items():
            detail[field] = _cell(row, idx)
        details.append(detail)

    return {"submitted": len(details), "issued": issued, "details": details}


def dashboard_stats(sheets, categories: Optional[Sequence[dict]] = None) -> Dict[str, dict]:
    """Stats for every category; a sheet that cannot be read counts as empty."""
    result = {}
    for category in categories if categories is not None else Config.DASHBOARD_CATEGORIES:
        try:
            data = sheets.get_sheet_data(category["sheet"])
        except (RemoteCallFailed, SheetNotFound) as e:
            log_msg(f"[WARN] Dashboard: could not read '{category['sheet']}': {e}")
            result[category["name"]] = {"submitted": 0, "issued": 0, "details": []}
            continue
        result[category["name"]] = category_stats(category, data)
    return result
