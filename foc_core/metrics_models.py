from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from foc_core.charts import stacked_status_bar
from foc_core.data import clean_group_key, inventory_frame
from foc_core.inventory import InventoryItem

MODEL_COLUMNS = ["name", "total", "available", "loaned", "missing"]


def group_by_model(items: Sequence[InventoryItem]) -> pd.DataFrame:
    df = inventory_frame(items)
    df["name"] = clean_group_key(df["unit_name"])
    df = df.dropna(subset=["name"])
    if df.empty:
        return pd.DataFrame(columns=MODEL_COLUMNS + ["positions"])
    grouped = (
        df.groupby("name", sort=False)
        .agg(
            total=("pos", "size"),
            available=("is_available", "sum"),
            loaned=("is_loaned", "sum"),
            missing=("is_missing", "sum"),
            positions=("pos", list),
        )
        .reset_index()
    )
    return grouped.sort_values("total", ascending=False, kind="stable").reset_index(drop=True)


def compute_models(items: Sequence[InventoryItem]) -> Dict[str, Any]:
    grouped = group_by_model(items)
    models: List[Dict[str, Any]] = []
    for row in grouped.itertuples(index=False):
        models.append(
            {
                "name": row.name,
                "total": int(row.total),
                "available": int(row.available),
                "loaned": int(row.loaned),
                "missing": int(row.missing),
                "items": [items[p].to_dict() for p in row.positions],
            }
        )

    charts: Dict[str, Any] = {}
    if not grouped.empty:
        charts["model_status"] = stacked_status_bar(
            grouped[MODEL_COLUMNS].head(20),
            label="Model",
            title="Units by model",
            statuses=["available", "loaned", "missing"],
        )
    return {"models": models, "charts": charts}
