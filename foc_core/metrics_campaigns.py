from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from foc_core.charts import stacked_status_bar
from foc_core.data import clean_group_key, inventory_frame
from foc_core.inventory import InventoryItem


def group_by_campaign(items: Sequence[InventoryItem]) -> pd.DataFrame:
    df = inventory_frame(items)
    df["name"] = clean_group_key(df["campaign_name"])
    df = df.dropna(subset=["name"])
    if df.empty:
        return pd.DataFrame(columns=["name", "total", "available", "loaned", "unique_models", "positions"])
    df["model"] = df["unit_name"].str.strip().replace("", pd.NA)
    grouped = (
        df.groupby("name", sort=False)
        .agg(
            total=("pos", "size"),
            available=("is_available", "sum"),
            loaned=("is_loaned", "sum"),
            unique_models=("model", "nunique"),
            positions=("pos", list),
        )
        .reset_index()
    )
    return grouped.sort_values("total", ascending=False, kind="stable").reset_index(drop=True)


def compute_campaigns(items: Sequence[InventoryItem]) -> Dict[str, Any]:
    grouped = group_by_campaign(items)
    campaigns: List[Dict[str, Any]] = [
        {
            "name": row.name,
            "total": int(row.total),
            "available": int(row.available),
            "loaned": int(row.loaned),
            "unique_models": int(row.unique_models),
            "items": [items[p].to_dict() for p in row.positions],
        }
        for row in grouped.itertuples(index=False)
    ]

    charts: Dict[str, Any] = {}
    if not grouped.empty:
        charts["campaign_status"] = stacked_status_bar(
            grouped[["name", "available", "loaned"]].head(20),
            label="Campaign",
            title="Units by campaign",
            statuses=["available", "loaned"],
        )
    return {"campaigns": campaigns, "charts": charts}
