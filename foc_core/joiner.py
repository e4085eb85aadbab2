from __future__ import annotations

from typing import Dict, Optional, Sequence

from foc_core.sheets import cell, col_index, normalize_headers

EMPTY_TOKENS = {"", "-"}


def composite_key(unit_name: str, holder: str) -> str:
    return f"{unit_name.strip()}||{holder.strip()}"


def imei_key(imei: Optional[str]) -> Optional[str]:
    value = (imei or "").strip()
    return None if value in EMPTY_TOKENS else value


def build_request_date_index(request_rows: Sequence[Sequence[str]]) -> Dict[str, str]:
    """Map IMEI (or `unit||kol`) to the latest request timestamp in the request log.

    Rows are assumed to be appended in time order, so later rows overwrite
    earlier ones for the same key. Rows without a timestamp are skipped.
    """
    index: Dict[str, str] = {}
    if not request_rows or len(request_rows) <= 1:
        return index

    headers = normalize_headers(request_rows[0], blank="Unknown")
    time_idx = col_index(headers, "Timestamp")
    unit_idx = col_index(headers, "Unit Name")
    imei_idx = col_index(headers, "IMEI")
    kol_idx = col_index(headers, "KOL Name")

    for row in request_rows[1:]:
        timestamp = cell(row, time_idx)
        if not timestamp:
            continue
        key = imei_key(cell(row, imei_idx))
        if key is None:
            unit_name = cell(row, unit_idx)
            kol = cell(row, kol_idx)
            if not unit_name.strip() or not kol.strip():
                continue
            key = composite_key(unit_name, kol)
        index[key] = timestamp
    return index
