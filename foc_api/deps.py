from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Request

from foc_core.actions import InventoryActions
from foc_core.auth import AuthGate
from foc_core.errors import UnauthorizedError
from foc_core.inventory import InventoryCache, load_inventory
from foc_core.settings import AUTH_COOKIE_NAME, Settings, load_settings
from foc_core.sheets import GoogleSheetStore, LazySheetStore, SheetStore


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_store() -> SheetStore:
    # Built on first read or append, inside the callers' error handling.
    return LazySheetStore(lambda: GoogleSheetStore.from_settings(get_settings()))


@lru_cache(maxsize=1)
def get_inventory_cache() -> InventoryCache:
    settings = get_settings()
    return InventoryCache(lambda: load_inventory(get_store(), settings), ttl_seconds=settings.cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_auth_gate() -> AuthGate:
    return AuthGate.from_settings(get_settings())


def get_actions() -> InventoryActions:
    return InventoryActions(get_store(), get_inventory_cache(), get_auth_gate(), get_settings())


def current_session(request: Request, gate: AuthGate = Depends(get_auth_gate)) -> bool:
    """Checks the session cookie once per request and records the outcome on `request.state`."""
    authenticated = gate.is_authenticated(request.cookies.get(AUTH_COOKIE_NAME))
    request.state.authenticated = authenticated
    return authenticated


def require_session(authenticated: bool = Depends(current_session)) -> None:
    if not authenticated:
        raise UnauthorizedError()
