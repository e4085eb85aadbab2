from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from foc_core.errors import NoInventoryDataError
from foc_core.joiner import build_request_date_index, composite_key, imei_key
from foc_core.settings import Settings
from foc_core.sheets import SheetStore, cell, col_index, normalize_headers, read_sheets

logger = logging.getLogger(__name__)

REQUEST_DATE_FIELD = "Step 3 Request Date"
OWN_DATE_FIELDS = ("Timestamp", "Date Received", "Request Date")
BLANK = "-"

# canonical field -> (header name, positional fallback)
FIELD_COLUMNS: Dict[str, Tuple[str, int]] = {
    "imei": ("IMEI", 3),
    "unit_name": ("Unit Name", 4),
    "foc_status": ("RETURN / UNRETURN", 5),
    "goat_pic": ("PIC GOAT", 8),
    "sein_pic": ("PIC SEIN", 2),
    "status_location": ("STATUS LOCATION", 11),
    "on_holder": ("ON HOLDER", 12),
    "planned_return_date": ("Planned Return Date", 6),
    "campaign_name": ("Campaign Name", 9),
}


@dataclass(frozen=True)
class InventoryItem:
    imei: str = ""
    unit_name: str = ""
    foc_status: str = ""
    goat_pic: str = ""
    sein_pic: str = ""
    status_location: str = ""
    on_holder: str = ""
    planned_return_date: str = ""
    campaign_name: str = ""
    full_data: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return bool(self.imei.strip() or self.unit_name.strip())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FieldResolver:
    """Resolves canonical fields by header name first, then by fixed position."""

    def __init__(self, headers: Sequence[str], columns: Mapping[str, Tuple[str, int]] = FIELD_COLUMNS) -> None:
        self.columns = dict(columns)
        self.by_name = {name: col_index(headers, header) for name, (header, _) in self.columns.items()}
        self.drift: Dict[str, Tuple[int, int]] = {
            name: (idx, self.columns[name][1])
            for name, idx in self.by_name.items()
            if idx >= 0 and idx != self.columns[name][1]
        }

    def resolve_by_name(self, row: Sequence[str], name: str) -> str:
        return cell(row, self.by_name[name])

    def resolve_by_position(self, row: Sequence[str], name: str) -> str:
        return cell(row, self.columns[name][1])

    def resolve(self, row: Sequence[str], name: str) -> str:
        return self.resolve_by_name(row, name) or self.resolve_by_position(row, name) or ""

    def warn_on_drift(self) -> None:
        for name, (found, fixed) in self.drift.items():
            logger.warning(
                "header %r found at column %d but positional fallback is %d; sheet layout may have drifted",
                self.columns[name][0],
                found,
                fixed,
            )


def _full_data_keys(headers: Sequence[str]) -> List[str]:
    seen: Dict[str, int] = {}
    keys: List[str] = []
    for header in headers:
        seen[header] = seen.get(header, 0) + 1
        keys.append(header if seen[header] == 1 else f"{header} ({seen[header]})")
    return keys


def _resolve_request_date(item_fields: Mapping[str, str], full_data: Mapping[str, str], index: Mapping[str, str]) -> str:
    key = imei_key(item_fields["imei"])
    if key is not None and index.get(key):
        return index[key]
    unit_name, holder = item_fields["unit_name"], item_fields["on_holder"]
    if unit_name.strip() and holder.strip():
        found = index.get(composite_key(unit_name, holder))
        if found:
            return found
    for name in OWN_DATE_FIELDS:
        value = (full_data.get(name) or "").strip()
        if value and value != BLANK:
            return full_data[name]
    return BLANK


def materialize(master_rows: Sequence[Sequence[str]], request_date_index: Mapping[str, str]) -> List[InventoryItem]:
    if not master_rows or len(master_rows) <= 1:
        raise NoInventoryDataError("No inventory data found or only headers present.")

    headers = normalize_headers(master_rows[0])
    keys = _full_data_keys(headers)
    resolver = FieldResolver(headers)
    resolver.warn_on_drift()

    items: List[InventoryItem] = []
    for row in master_rows[1:]:
        full_data = {key: cell(row, idx) or BLANK for idx, key in enumerate(keys)}
        fields = {name: resolver.resolve(row, name) for name in FIELD_COLUMNS}
        full_data[REQUEST_DATE_FIELD] = _resolve_request_date(fields, full_data, request_date_index)
        items.append(InventoryItem(full_data=full_data, **fields))
    return items


def load_inventory(store: SheetStore, settings: Settings) -> List[InventoryItem]:
    data = read_sheets(store, settings)
    index = build_request_date_index(data.request_rows)
    items = materialize(data.master_rows, index)
    logger.info("materialized %d inventory items (%d request dates indexed)", len(items), len(index))
    return items


def valid_items(items: Sequence[InventoryItem]) -> List[InventoryItem]:
    return [item for item in items if item.is_valid]


class InventoryCache:
    """Time-limited snapshot of the materialized inventory with explicit invalidation."""

    def __init__(
        self,
        loader: Callable[[], List[InventoryItem]],
        *,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: Optional[List[InventoryItem]] = None
        self._loaded_at = 0.0
        self._lock = threading.Lock()

    def get(self) -> List[InventoryItem]:
        with self._lock:
            now = self._clock()
            if self._items is None or now - self._loaded_at >= self.ttl_seconds:
                self._items = self._loader()
                self._loaded_at = now
            return self._items

    def invalidate(self) -> None:
        with self._lock:
            self._items = None
        logger.debug("inventory cache invalidated")
