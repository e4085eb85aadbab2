import pytest
from fastapi.testclient import TestClient

from foc_api.deps import get_actions, get_auth_gate, get_inventory_cache, get_settings
from foc_api.main import app
from foc_core.actions import InventoryActions
from foc_core.errors import ConfigurationError, NoInventoryDataError, StoreError
from foc_core.inventory import InventoryCache
from foc_core.settings import AUTH_COOKIE_NAME, Settings
from foc_core.sheets import LazySheetStore
from tests.test_actions import REQUEST

READ_ROUTES = [
    ("get", "/inventory"),
    ("get", "/inventory/overview"),
    ("post", "/inventory/master-list"),
    ("get", "/inventory/models"),
    ("get", "/inventory/campaigns"),
    ("get", "/kols"),
    ("get", "/returns"),
]


@pytest.fixture
def client(store, cache, gate, settings):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_inventory_cache] = lambda: cache
    app.dependency_overrides[get_auth_gate] = lambda: gate
    app.dependency_overrides[get_actions] = lambda: InventoryActions(store, cache, gate, settings)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def session(client, gate):
    client.cookies.set(AUTH_COOKIE_NAME, gate.issue_token())
    return client


def _call(client, method, path):
    if method == "post":
        return client.post(path, json={})
    return client.get(path)


@pytest.mark.parametrize("method,path", READ_ROUTES)
def test_read_views_require_session(client, store, method, path):
    response = _call(client, method, path)
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized — please log in first."
    assert response.headers["x-middleware-auth"] == "failed"
    assert store.reads == 0


@pytest.mark.parametrize("method,path", READ_ROUTES)
def test_read_views_with_session(session, method, path):
    response = _call(session, method, path)
    assert response.status_code == 200
    assert response.headers["x-middleware-auth"] == "success"


def test_read_view_payloads(session):
    assert len(session.get("/inventory").json()["items"]) == 2
    assert session.get("/inventory/models").json()["models"][0]["name"] == "Galaxy S24"
    assert session.get("/inventory/campaigns").json()["campaigns"][0]["total"] == 2
    assert session.get("/kols").json()["kols"][0]["name"] == "Alice"
    returns = session.get("/returns").json()["returns"]
    assert returns[0]["overdue"] is True
    assert session.get("/inventory/overview").json()["kpis"]["total_stock"] == 2
    listing = session.post("/inventory/master-list", json={"location": "AVAILABLE"}).json()
    assert [r["imei"] for r in listing["items"]] == ["111"]


def test_expired_session_is_rejected(session, clock):
    clock.advance(24 * 60 * 60 + 1)
    response = session.get("/kols")
    assert response.status_code == 401
    assert "max-age=0" in response.headers["set-cookie"].lower()


def test_missing_inventory_is_service_unavailable(session):
    def empty():
        raise NoInventoryDataError("none")

    app.dependency_overrides[get_inventory_cache] = lambda: InventoryCache(empty)
    response = session.get("/inventory")
    assert response.status_code == 503
    assert "items" not in response.json()


def test_store_errors_do_not_leak_details(session):
    def broken():
        raise StoreError("permission denied for sheet-id")

    app.dependency_overrides[get_inventory_cache] = lambda: InventoryCache(broken)
    response = session.get("/returns")
    assert response.status_code == 502
    assert "sheet-id" not in response.text


def test_pin_login_sets_session_cookie(client):
    bad = client.post("/auth/pin", json={"pin": "0000"})
    assert bad.status_code == 401
    assert bad.json() == {"success": False, "error": "Invalid PIN. 4 attempts remaining."}

    ok = client.post("/auth/pin", json={"pin": "1234"})
    assert ok.json() == {"success": True}
    cookie = ok.headers["set-cookie"].lower()
    assert cookie.startswith(f"{AUTH_COOKIE_NAME}=")
    assert "httponly" in cookie
    assert "samesite=lax" in cookie
    assert "max-age=86400" in cookie
    assert "path=/" in cookie
    assert "; secure" not in cookie
    assert client.get("/inventory").status_code == 200


def test_session_cookie_is_secure_in_production(client):
    app.dependency_overrides[get_settings] = lambda: Settings(signing_secret="test-secret", authorized_pins=["1234"], production=True)
    response = client.post("/auth/pin", json={"pin": "1234"})
    assert response.json() == {"success": True}
    assert "; secure" in response.headers["set-cookie"].lower()


def test_mutations_require_session(client, store, gate):
    denied = client.post("/actions/request", json=REQUEST)
    assert denied.status_code == 401
    assert denied.json() == {"success": False, "error": "Unauthorized — please log in first."}

    client.cookies.set(AUTH_COOKIE_NAME, gate.issue_token())
    assert client.get("/auth/status").json() == {"authenticated": True}
    accepted = client.post("/actions/request", json=REQUEST)
    assert accepted.status_code == 200
    assert accepted.json() == {"success": True}
    assert len(store.appended) == 1

    invalid = client.post("/actions/return", json={"username": "rina"})
    assert invalid.status_code == 422
    assert invalid.json() == {"success": False, "error": "Requestor is required"}


def test_unconfigured_store_still_answers_with_action_result(client, cache, gate, settings):
    def unconfigured():
        raise ConfigurationError("GOOGLE_SHEET_ID is not set.", public_message="Server misconfigured — spreadsheet not set.")

    app.dependency_overrides[get_actions] = lambda: InventoryActions(LazySheetStore(unconfigured), cache, gate, settings)

    anonymous = client.post("/actions/request", json=REQUEST)
    assert anonymous.status_code == 401
    assert anonymous.json() == {"success": False, "error": "Unauthorized — please log in first."}

    client.cookies.set(AUTH_COOKIE_NAME, gate.issue_token())
    signed_in = client.post("/actions/request", json=REQUEST)
    assert signed_in.status_code == 500
    assert signed_in.json() == {"success": False, "error": "Server misconfigured — spreadsheet not set."}


def test_middleware_flags_and_clears_bad_cookie(client, gate):
    assert client.get("/auth/status").headers["x-middleware-auth"] == "failed"

    client.cookies.set(AUTH_COOKIE_NAME, "forged")
    response = client.get("/auth/status")
    assert response.json() == {"authenticated": False}
    assert response.headers["x-middleware-auth"] == "failed"
    assert "max-age=0" in response.headers["set-cookie"].lower()

    client.cookies.set(AUTH_COOKIE_NAME, gate.issue_token())
    assert client.get("/auth/status").headers["x-middleware-auth"] == "success"


def test_revalidate_forces_refetch(session, store):
    session.get("/inventory")
    session.get("/inventory")
    assert store.reads == 1
    assert session.post("/inventory/revalidate").json() == {"success": True}
    session.get("/inventory")
    assert store.reads == 2
