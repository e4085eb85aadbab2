from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Sequence

import gspread
from google.oauth2.service_account import Credentials

from foc_core.errors import ConfigurationError, NoInventoryDataError, StoreError
from foc_core.settings import Settings

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
UNKNOWN_COLUMN = "Unknown Column"

Grid = List[List[str]]


class SheetStore(Protocol):
    def read_range(self, range_name: str) -> Grid: ...

    def batch_read_ranges(self, range_names: Sequence[str]) -> List[Grid]: ...

    def append_row(self, range_name: str, row: Sequence[str]) -> None: ...


def _as_grid(values: Optional[List[List[Any]]]) -> Grid:
    if not values:
        return []
    return [["" if cell is None else str(cell) for cell in row] for row in values]


class GoogleSheetStore:
    """Spreadsheet access through gspread, bound to a single spreadsheet."""

    def __init__(self, client: gspread.Client, spreadsheet_id: str) -> None:
        self._client = client
        self.spreadsheet_id = spreadsheet_id
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleSheetStore":
        if not settings.spreadsheet_id:
            raise ConfigurationError("GOOGLE_SHEET_ID is not set.", public_message="Server misconfigured — spreadsheet not set.")
        if not settings.google_client_email or not settings.google_private_key:
            raise ConfigurationError(
                "GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY must be set.",
                public_message="Server misconfigured — spreadsheet credentials missing.",
            )
        try:
            creds = Credentials.from_service_account_info(
                {
                    "client_email": settings.google_client_email,
                    "private_key": settings.google_private_key,
                    "token_uri": TOKEN_URI,
                },
                scopes=SCOPES,
            )
        except (ValueError, TypeError, KeyError) as exc:
            logger.error("service account credentials rejected: %s", type(exc).__name__)
            raise ConfigurationError(
                f"invalid service account credentials: {exc}",
                public_message="Server misconfigured — spreadsheet credentials invalid.",
            ) from exc
        return cls(gspread.authorize(creds), settings.spreadsheet_id)

    def _sheet(self) -> gspread.Spreadsheet:
        with self._lock:
            if self._spreadsheet is None:
                self._spreadsheet = self._client.open_by_key(self.spreadsheet_id)
            return self._spreadsheet

    def read_range(self, range_name: str) -> Grid:
        return self.batch_read_ranges([range_name])[0]

    def batch_read_ranges(self, range_names: Sequence[str]) -> List[Grid]:
        try:
            result = self._sheet().values_batch_get(list(range_names))
        except Exception as exc:
            logger.exception("batch read failed for ranges %s", list(range_names))
            raise StoreError(f"batch read failed: {exc}") from exc
        value_ranges = result.get("valueRanges", []) or []
        grids = [_as_grid(vr.get("values")) for vr in value_ranges]
        # One grid per requested range, even when the response is short.
        while len(grids) < len(range_names):
            grids.append([])
        return grids

    def append_row(self, range_name: str, row: Sequence[str]) -> None:
        try:
            self._sheet().values_append(
                range_name,
                params={"valueInputOption": "USER_ENTERED"},
                body={"values": [list(row)]},
            )
        except Exception as exc:
            logger.exception("append failed for range %s", range_name)
            raise StoreError(f"append failed: {exc}") from exc
        logger.info("appended 1 row to %s", range_name)


class LazySheetStore:
    """Builds the real store on first use, so configuration errors surface inside the caller's error handling."""

    def __init__(self, factory: Callable[[], SheetStore]) -> None:
        self._factory = factory
        self._store: Optional[SheetStore] = None
        self._lock = threading.Lock()

    def _resolve(self) -> SheetStore:
        with self._lock:
            if self._store is None:
                self._store = self._factory()
            return self._store

    def read_range(self, range_name: str) -> Grid:
        return self._resolve().read_range(range_name)

    def batch_read_ranges(self, range_names: Sequence[str]) -> List[Grid]:
        return self._resolve().batch_read_ranges(range_names)

    def append_row(self, range_name: str, row: Sequence[str]) -> None:
        self._resolve().append_row(range_name, row)


# ---------------- Header resolution ----------------
def normalize_headers(header_row: Sequence[str], blank: str = UNKNOWN_COLUMN) -> List[str]:
    return [(str(h).strip() if h is not None else "") or blank for h in header_row]


def col_index(headers: Sequence[str], name: str) -> int:
    """Index of the first header equal to `name` (trimmed, case-insensitive), or -1."""
    target = name.strip().casefold()
    for idx, header in enumerate(headers):
        if str(header).strip().casefold() == target:
            return idx
    return -1


def cell(row: Sequence[str], idx: int) -> str:
    if idx < 0 or idx >= len(row):
        return ""
    value = row[idx]
    return "" if value is None else str(value)


# ---------------- Reader ----------------
@dataclass(frozen=True)
class SheetData:
    master_rows: Grid = field(default_factory=list)
    request_rows: Grid = field(default_factory=list)


def read_sheets(store: SheetStore, settings: Settings) -> SheetData:
    master_rows, request_rows = store.batch_read_ranges([settings.master_range, settings.request_range])
    if not master_rows or len(master_rows) <= 1:
        raise NoInventoryDataError("No inventory data found or only headers present.")
    logger.debug("read %d master rows, %d request rows", len(master_rows) - 1, max(len(request_rows) - 1, 0))
    return SheetData(master_rows=master_rows, request_rows=request_rows)
