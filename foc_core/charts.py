from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def stacked_status_bar(df: pd.DataFrame, *, label: str, title: str, statuses: List[str]) -> Dict[str, Any]:
    """Horizontal stacked bar of status counts per group (`name` column)."""
    long_df = df.melt(id_vars=["name"], value_vars=statuses, var_name="status", value_name="units")
    chart = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            y=alt.Y("name:N", title=label, sort="-x"),
            x=alt.X("units:Q", title="Units", stack="zero"),
            color=alt.Color("status:N", title="Status"),
            tooltip=["name", "status", alt.Tooltip("units:Q", format=",")],
        )
        .properties(title=title)
    )
    return to_vega_spec(chart)
