from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from foc_core.data import ASAP, is_asap, is_past_due, parse_sheet_date
from foc_core.inventory import BLANK, InventoryItem


@dataclass(frozen=True)
class ReturnGroup:
    item: InventoryItem
    group_count: int
    planned_return_date: str
    overdue: bool = False

    @property
    def is_asap(self) -> bool:
        return is_asap(self.planned_return_date)

    def to_dict(self) -> Dict[str, Any]:
        out = self.item.to_dict()
        out.update(
            planned_return_date=self.planned_return_date,
            group_count=self.group_count,
            is_asap=self.is_asap,
            overdue=self.overdue,
        )
        return out


def awaiting_return(item: InventoryItem) -> bool:
    if "RETURN TO TCC" in (item.status_location or "").upper():
        return False
    planned = (item.planned_return_date or "").strip()
    return bool(planned) and planned.upper() != "N/A"


def _group_key(item: InventoryItem) -> Tuple[str, str, str]:
    return (
        item.unit_name.strip() or BLANK,
        item.sein_pic.strip() or BLANK,
        item.goat_pic.strip() or BLANK,
    )


def _urgency(planned: str) -> Tuple:
    # ASAP first, then by date ascending, unparsable dates last.
    if is_asap(planned):
        return (0,)
    ts = parse_sheet_date(planned)
    if ts is None:
        return (2,)
    return (1, ts)


def group_by_return_urgency(items: Sequence[InventoryItem], today: Optional[date] = None) -> List[ReturnGroup]:
    today = today or date.today()
    groups: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
    for item in items:
        if not awaiting_return(item):
            continue
        key = _group_key(item)
        group = groups.get(key)
        if group is None:
            groups[key] = {"item": item, "count": 1, "planned": item.planned_return_date}
            continue
        group["count"] += 1
        if is_asap(item.planned_return_date):
            group["planned"] = ASAP

    ordered = sorted(groups.values(), key=lambda g: _urgency(g["planned"]))
    return [
        ReturnGroup(
            item=g["item"],
            group_count=g["count"],
            planned_return_date=ASAP if is_asap(g["planned"]) else g["planned"],
            overdue=is_past_due(g["planned"], today),
        )
        for g in ordered
    ]


def compute_returns(items: Sequence[InventoryItem], today: Optional[date] = None) -> Dict[str, Any]:
    groups = group_by_return_urgency(items, today)
    return {
        "kpis": {
            "pending_returns": len(groups),
            "asap": sum(1 for g in groups if g.is_asap),
            "overdue": sum(1 for g in groups if g.overdue),
        },
        "returns": [g.to_dict() for g in groups],
    }
