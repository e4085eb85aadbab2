from __future__ import annotations

import warnings
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from foc_core.inventory import FIELD_COLUMNS, InventoryItem

SENTINELS = {"", "-", "N/A"}
ASAP = "ASAP"

ITEM_COLUMNS: List[str] = list(FIELD_COLUMNS)


def inventory_frame(items: Sequence[InventoryItem]) -> pd.DataFrame:
    """One row per item (source order) with upper-cased status helpers.

    `pos` indexes back into `items` so groups can return the original objects.
    """
    df = pd.DataFrame(
        [{name: getattr(item, name) or "" for name in ITEM_COLUMNS} for item in items],
        columns=ITEM_COLUMNS,
    )
    df.insert(0, "pos", range(len(df)))
    location = df["status_location"].astype(str).str.upper()
    status = df["foc_status"].astype(str).str.upper()
    df["is_valid"] = df["imei"].str.strip().ne("") | df["unit_name"].str.strip().ne("")
    df["is_available"] = location.str.contains("AVAILABLE", regex=False)
    df["is_loaned"] = location.str.contains("LOANED", regex=False)
    df["is_on_kol"] = location.str.contains("ON KOL", regex=False)
    df["is_missing"] = status.str.contains("MISSING", regex=False)
    df["status_upper"] = status.str.strip()
    return df


def clean_group_key(series: pd.Series) -> pd.Series:
    """Trim values and blank out sentinels (``""``, ``"-"``, ``"N/A"``) as NA."""
    s = series.astype("string").str.strip()
    return s.mask(s.isin(SENTINELS))


def parse_sheet_date(value: object) -> Optional[pd.Timestamp]:
    """Parse a free-text sheet date; None when it cannot be read as a date."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.upper() in {ASAP, "N/A", "-"}:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        ts = pd.to_datetime(text, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts


def parse_timestamp(value: object, formats: Iterable[str] = ("%d/%m/%Y, %H.%M.%S", "%d/%m/%Y %H.%M.%S")) -> Optional[pd.Timestamp]:
    """Like `parse_sheet_date` but tries the request-log timestamp formats first."""
    text = str(value or "").strip()
    for fmt in formats:
        try:
            return pd.Timestamp(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return parse_sheet_date(text)


def is_asap(value: object) -> bool:
    return str(value or "").strip().upper() == ASAP


def is_past_due(value: object, today: date) -> bool:
    """True when `value` parses to a day strictly before `today`."""
    if is_asap(value):
        return False
    ts = parse_sheet_date(value)
    if ts is None:
        return False
    return ts.normalize() < pd.Timestamp(today)
