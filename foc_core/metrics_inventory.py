from __future__ import annotations

import math
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from foc_core.data import is_asap, is_past_due
from foc_core.filters import InventoryFilters
from foc_core.inventory import InventoryItem


def _matches_location(item: InventoryItem, location: str) -> bool:
    if location == "ALL":
        return True
    loc = (item.status_location or "").upper()
    if location == "LOANED":
        return "LOANED" in loc or "ON KOL" in loc
    return location in loc


def matches(item: InventoryItem, filters: InventoryFilters) -> bool:
    q = filters.query.lower()
    if q and not any(q in (value or "").lower() for value in (item.imei, item.unit_name, item.on_holder)):
        return False
    if filters.status != "ALL" and (item.foc_status or "").strip().upper() != filters.status:
        return False
    return _matches_location(item, filters.location)


def is_loan_overdue(item: InventoryItem, today: date) -> bool:
    """A loaned unit flagged for return whose planned date has passed."""
    if (item.foc_status or "").strip().upper() != "RETURN":
        return False
    if "LOANED" not in (item.status_location or "").upper():
        return False
    planned = item.planned_return_date or ""
    if not planned or planned == "N/A" or is_asap(planned):
        return False
    return is_past_due(planned, today)


def compute_master_list(
    items: Sequence[InventoryItem],
    filters: InventoryFilters,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    filtered = [item for item in items if matches(item, filters)]
    if filters.sort_key:
        filtered = sorted(
            filtered,
            key=lambda i: (getattr(i, filters.sort_key) or "").lower(),
            reverse=filters.descending,
        )

    total = len(filtered)
    total_pages = max(1, math.ceil(total / filters.page_size))
    page = min(filters.page, total_pages)
    start = (page - 1) * filters.page_size
    rows: List[Dict[str, Any]] = []
    for item in filtered[start : start + filters.page_size]:
        row = item.to_dict()
        row["overdue"] = is_loan_overdue(item, today)
        rows.append(row)

    return {
        "total": total,
        "page": page,
        "page_size": filters.page_size,
        "total_pages": total_pages,
        "items": rows,
    }
