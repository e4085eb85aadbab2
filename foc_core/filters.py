from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from foc_core.inventory import FIELD_COLUMNS

SORT_KEYS = tuple(FIELD_COLUMNS)


@dataclass(frozen=True)
class InventoryFilters:
    query: str = ""
    status: str = "ALL"
    location: str = "ALL"
    sort_key: Optional[str] = None
    descending: bool = False
    page: int = 1
    page_size: int = 10


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except Exception:
        return default


def normalize_filters(raw: dict) -> InventoryFilters:
    query = (raw.get("query") or "").strip()
    status = (raw.get("status") or "ALL").strip().upper() or "ALL"
    location = (raw.get("location") or "ALL").strip().upper() or "ALL"

    sort_key = raw.get("sort_key") or None
    if sort_key not in SORT_KEYS:
        sort_key = None
    descending = str(raw.get("direction") or "asc").strip().lower() == "desc"

    page = max(1, _as_int(raw.get("page", 1), 1))
    page_size = max(1, min(200, _as_int(raw.get("page_size", 10), 10)))

    return InventoryFilters(
        query=query,
        status=status,
        location=location,
        sort_key=sort_key,
        descending=descending,
        page=page,
        page_size=page_size,
    )
