from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import pytest

from foc_core.auth import AuthGate
from foc_core.errors import StoreError
from foc_core.inventory import InventoryCache, load_inventory
from foc_core.ratelimit import RateLimiter
from foc_core.settings import Settings

MASTER_HEADERS = [
    "Timestamp",
    "Date Received",
    "PIC SEIN",
    "IMEI",
    "Unit Name",
    "RETURN / UNRETURN",
    "Planned Return Date",
    "KOL Phone Number",
    "PIC GOAT",
    "Campaign Name",
    "KOL Address",
    "STATUS LOCATION",
    "ON HOLDER",
    "Notes",
    "Request Date",
]

REQUEST_HEADERS = ["Timestamp", "Email Address", "Requestor", "Campaign Name", "Unit Name", "IMEI", "KOL Name", "KOL Address"]

FIELD_TO_HEADER = {
    "timestamp": "Timestamp",
    "date_received": "Date Received",
    "sein_pic": "PIC SEIN",
    "imei": "IMEI",
    "unit_name": "Unit Name",
    "foc_status": "RETURN / UNRETURN",
    "planned_return_date": "Planned Return Date",
    "phone": "KOL Phone Number",
    "goat_pic": "PIC GOAT",
    "campaign_name": "Campaign Name",
    "address": "KOL Address",
    "status_location": "STATUS LOCATION",
    "on_holder": "ON HOLDER",
    "notes": "Notes",
    "request_date": "Request Date",
}


def master_row(**fields: str) -> List[str]:
    row = [""] * len(MASTER_HEADERS)
    for name, value in fields.items():
        row[MASTER_HEADERS.index(FIELD_TO_HEADER[name])] = value
    return row


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSheetStore:
    def __init__(self, ranges: Optional[Dict[str, List[List[str]]]] = None) -> None:
        self.ranges: Dict[str, List[List[str]]] = dict(ranges or {})
        self.appended: List[tuple] = []
        self.reads = 0
        self.fail_append = False

    def read_range(self, range_name: str) -> List[List[str]]:
        return [list(r) for r in self.ranges.get(range_name, [])]

    def batch_read_ranges(self, range_names: Sequence[str]) -> List[List[List[str]]]:
        self.reads += 1
        return [self.read_range(name) for name in range_names]

    def append_row(self, range_name: str, row: Sequence[str]) -> None:
        if self.fail_append:
            raise StoreError("quota exceeded")
        self.appended.append((range_name, list(row)))


@pytest.fixture
def settings() -> Settings:
    return Settings(spreadsheet_id="sheet-id", signing_secret="test-secret", authorized_pins=["1234", "9999"])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(settings: Settings) -> FakeSheetStore:
    return FakeSheetStore(
        {
            settings.master_range: [
                MASTER_HEADERS,
                master_row(imei="111", unit_name="Galaxy S24", status_location="AVAILABLE", campaign_name="Launch"),
                master_row(
                    imei="222",
                    unit_name="Galaxy S24",
                    status_location="LOANED / ON KOL",
                    foc_status="RETURN",
                    on_holder="Alice",
                    planned_return_date="2020-01-01",
                    campaign_name="Launch",
                ),
            ],
            settings.request_range: [
                REQUEST_HEADERS,
                ["01/01/2025, 10.00.00", "a@x.com", "Ops", "Launch", "Galaxy S24", "222", "Alice", "Street 1"],
            ],
        }
    )


@pytest.fixture
def gate(settings: Settings, clock: FakeClock) -> AuthGate:
    return AuthGate.from_settings(settings, limiter=RateLimiter(clock=clock), clock=clock)


@pytest.fixture
def cache(store: FakeSheetStore, settings: Settings, clock: FakeClock) -> InventoryCache:
    return InventoryCache(lambda: load_inventory(store, settings), ttl_seconds=30, clock=clock)
