from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from foc_core.data import clean_group_key, inventory_frame
from foc_core.inventory import BLANK, InventoryItem

PHONE_FIELDS = ("KOL Phone Number", "Phone Number")
ADDRESS_FIELDS = ("KOL Address", "Address")


def _first_present(full_data: Dict[str, str], names: Sequence[str]) -> str:
    for name in names:
        if full_data.get(name):
            return full_data[name]
    return BLANK


def group_by_holder(items: Sequence[InventoryItem]) -> pd.DataFrame:
    df = inventory_frame(items)
    df["name"] = clean_group_key(df["on_holder"])
    df = df.dropna(subset=["name"])
    if df.empty:
        return pd.DataFrame(columns=["name", "active_count", "total_items", "positions"])
    df["is_active"] = df["is_loaned"] | df["status_upper"].eq("RETURN")
    grouped = (
        df.groupby("name", sort=False)
        .agg(
            active_count=("is_active", "sum"),
            total_items=("pos", "size"),
            positions=("pos", list),
        )
        .reset_index()
    )
    return grouped.sort_values("active_count", ascending=False, kind="stable").reset_index(drop=True)


def compute_kols(items: Sequence[InventoryItem]) -> Dict[str, Any]:
    kols: List[Dict[str, Any]] = []
    for row in group_by_holder(items).itertuples(index=False):
        latest = items[row.positions[-1]].full_data
        kols.append(
            {
                "name": row.name,
                "active_count": int(row.active_count),
                "total_items": int(row.total_items),
                "phone": _first_present(latest, PHONE_FIELDS),
                "address": _first_present(latest, ADDRESS_FIELDS),
                "items": [items[p].to_dict() for p in row.positions],
            }
        )
    return {"kols": kols}
