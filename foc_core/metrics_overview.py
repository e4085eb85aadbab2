from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from foc_core.charts import to_vega_spec
from foc_core.data import inventory_frame, parse_timestamp
from foc_core.inventory import BLANK, OWN_DATE_FIELDS, InventoryItem
from foc_core.metrics_returns import group_by_return_urgency

RECENT_ACTIVITY_LIMIT = 15


def _own_date(item: InventoryItem) -> Optional[str]:
    for name in OWN_DATE_FIELDS:
        value = (item.full_data.get(name) or "").strip()
        if value and value != BLANK:
            return value
    return None


def recent_activity(items: Sequence[InventoryItem], limit: int = RECENT_ACTIVITY_LIMIT) -> List[Dict[str, Any]]:
    dated = [(item, _own_date(item)) for item in items if item.is_valid]
    dated = [(item, raw) for item, raw in dated if raw]
    if not dated:
        return []
    df = pd.DataFrame(
        {
            "pos": range(len(dated)),
            "when": [parse_timestamp(raw) for _, raw in dated],
        }
    )
    df["when"] = pd.to_datetime(df["when"])
    df = df.sort_values("when", ascending=False, na_position="last", kind="stable").head(limit)
    out = []
    for pos in df["pos"]:
        item, raw = dated[int(pos)]
        row = item.to_dict()
        row["activity_date"] = raw
        out.append(row)
    return out


def compute_overview(items: Sequence[InventoryItem], today: Optional[date] = None) -> Dict[str, Any]:
    df = inventory_frame(items)
    valid = df[df["is_valid"]]

    kpis = {
        "total_stock": int(len(valid)),
        "available": int(valid["is_available"].sum()),
        "on_kol": int(valid["is_loaned"].sum()),
        "gifted": int(df["status_upper"].eq("UNRETURN").sum()),
        "pending_returns": len(group_by_return_urgency(items, today)),
    }

    charts: Dict[str, Any] = {}
    if not valid.empty:
        breakdown = pd.DataFrame(
            {
                "location": ["Available", "Loaned", "Other"],
                "units": [
                    kpis["available"],
                    kpis["on_kol"],
                    int((~valid["is_available"] & ~valid["is_loaned"]).sum()),
                ],
            }
        )
        donut = (
            alt.Chart(breakdown)
            .mark_arc(innerRadius=50)
            .encode(
                theta=alt.Theta("units:Q"),
                color=alt.Color("location:N", title="Location"),
                tooltip=["location", alt.Tooltip("units:Q", format=",")],
            )
        )
        charts["location_breakdown"] = to_vega_spec(donut)

    return {"kpis": kpis, "recent_activity": recent_activity(items), "charts": charts}
