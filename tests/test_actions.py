from datetime import datetime

import pytest

from foc_core.actions import InventoryActions
from foc_core.auth import AuthGate
from foc_core.errors import ConfigurationError
from foc_core.sheets import LazySheetStore

NOW = datetime(2026, 10, 19, 14, 5, 3)

REQUEST = {
    "username": "rina",
    "requestor": "Other",
    "customRequestor": "Agency X",
    "campaignName": "Launch",
    "unitName": "Galaxy S24",
    "kolName": "Alice",
    "kolAddress": "Street 1",
    "kolPhoneNumber": "0812",
    "deliveryDate": "2026-10-20",
    "typeOfDelivery": "Courier",
    "typeOfFoc": "Loan",
}

RETURN = {
    "username": "rina",
    "requestor": "Ops",
    "unitName": "Galaxy S24",
    "imei": "222",
    "fromKol": "Alice",
    "kolAddress": "Street 1",
    "kolPhoneNumber": "0812",
    "typeOfFoc": "Loan",
}


@pytest.fixture
def actions(store, cache, gate, settings):
    return InventoryActions(store, cache, gate, settings, now=lambda: NOW)


def test_request_appends_twelve_fields_in_order(actions, store, gate):
    result = actions.request_unit(REQUEST, gate.issue_token())
    assert result.to_dict() == {"success": True}
    assert store.appended == [
        (
            "Step 3 FOC Request",
            [
                "19/10/2026, 14.05.03",
                "rina@wppmedia.com",
                "Agency X",
                "Launch",
                "Galaxy S24",
                "",
                "Alice",
                "Street 1",
                "0812",
                "2026-10-20",
                "Courier",
                "Loan",
            ],
        )
    ]


def test_request_invalidates_cached_inventory(actions, store, cache, gate):
    cache.get()
    cache.get()
    assert store.reads == 1
    assert actions.request_unit(REQUEST, gate.issue_token()).success
    cache.get()
    assert store.reads == 2


def test_return_appends_nine_fields(actions, store, gate):
    result = actions.return_unit(RETURN, gate.issue_token())
    assert result.success
    range_name, row = store.appended[0]
    assert range_name == "Step 4 FOC Return"
    assert row == ["19/10/2026, 14.05.03", "rina@wppmedia.com", "Ops", "Galaxy S24", "222", "Alice", "Street 1", "0812", "Loan"]


def test_other_requestor_without_custom_name_falls_back(actions, store, gate):
    actions.request_unit({**REQUEST, "customRequestor": ""}, gate.issue_token())
    assert store.appended[0][1][2] == "Other"


def test_unauthorized_is_checked_before_validation(actions, store):
    result = actions.request_unit({}, None)
    assert result.success is False
    assert result.error == "Unauthorized — please log in first."
    assert result.status_code == 401
    assert store.appended == []


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "Username is required"),
        ({**REQUEST, "campaignName": ""}, "Campaign Name is required"),
        ({**REQUEST, "deliveryDate": "20/10/2026"}, "Invalid date format"),
        ({**REQUEST, "kolName": "", "typeOfFoc": ""}, "KOL Name is required"),
    ],
)
def test_request_validation_returns_first_message(actions, store, gate, payload, message):
    result = actions.request_unit(payload, gate.issue_token())
    assert result.to_dict() == {"success": False, "error": message}
    assert result.status_code == 422
    assert store.appended == []


def test_return_requires_imei(actions, gate):
    result = actions.return_unit({**RETURN, "imei": ""}, gate.issue_token())
    assert result.error == "IMEI is required"


def test_store_failure_becomes_generic_result(actions, store, cache, gate):
    cache.get()
    store.fail_append = True
    result = actions.return_unit(RETURN, gate.issue_token())
    assert result.to_dict() == {"success": False, "error": "Failed to return unit due to a server error."}
    cache.get()
    assert store.reads == 1


def test_missing_signing_secret_fails_mutations(store, cache, settings, clock):
    actions = InventoryActions(store, cache, AuthGate(None, ["1234"], clock=clock), settings)
    result = actions.request_unit(REQUEST, "token")
    assert result.error == "Server misconfigured — signing key missing."
    assert store.appended == []


def test_unconfigured_store_fails_inside_the_result(cache, gate, settings):
    def unconfigured():
        raise ConfigurationError("GOOGLE_SHEET_ID is not set.", public_message="Server misconfigured — spreadsheet not set.")

    actions = InventoryActions(LazySheetStore(unconfigured), cache, gate, settings)
    anonymous = actions.return_unit({}, None)
    assert (anonymous.status_code, anonymous.error) == (401, "Unauthorized — please log in first.")

    result = actions.request_unit(REQUEST, gate.issue_token())
    assert result.to_dict() == {"success": False, "error": "Server misconfigured — spreadsheet not set."}
    assert result.status_code == 500
