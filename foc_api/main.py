from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict

import numpy as np
import pandas as pd
from fastapi import Body, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from foc_api.deps import current_session, get_actions, get_auth_gate, get_inventory_cache, get_settings, require_session
from foc_api.schemas import ActionResponse, AuthStatusResponse, MasterListFiltersModel, PinModel
from foc_core.actions import InventoryActions
from foc_core.auth import AuthGate
from foc_core.errors import ActionResult, FocError
from foc_core.filters import normalize_filters
from foc_core.inventory import InventoryCache
from foc_core.metrics_campaigns import compute_campaigns
from foc_core.metrics_inventory import compute_master_list
from foc_core.metrics_kols import compute_kols
from foc_core.metrics_models import compute_models
from foc_core.metrics_overview import compute_overview
from foc_core.metrics_returns import compute_returns
from foc_core.settings import AUTH_COOKIE_NAME, SESSION_TTL_SECONDS, Settings

app = FastAPI(title="FOC Inventory API", version="0.1.0", dependencies=[Depends(current_session)])
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: FocError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message, "type": type(exc).__name__})


def _unexpected(name: str) -> JSONResponse:
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "type": "InternalError"})


def _action(result: ActionResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.to_dict())


@app.exception_handler(FocError)
async def foc_error_handler(request: Request, exc: FocError) -> JSONResponse:
    logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return _error(exc)


@app.middleware("http")
async def session_header(request: Request, call_next):
    response = await call_next(request)
    # Set by `current_session`; None when no route matched.
    checked = getattr(request.state, "authenticated", None)
    ok = checked is True
    response.headers["x-middleware-auth"] = "success" if ok else "failed"
    token = request.cookies.get(AUTH_COOKIE_NAME)
    sets_cookie = any(AUTH_COOKIE_NAME in v for v in response.headers.getlist("set-cookie"))
    if token and checked is False and not sets_cookie:
        response.delete_cookie(AUTH_COOKIE_NAME, path="/")
    return response


# ---------------- Read views ----------------
@app.get("/inventory", dependencies=[Depends(require_session)])
def inventory(cache: InventoryCache = Depends(get_inventory_cache)):
    try:
        items = cache.get()
        return _json({"items": [item.to_dict() for item in items]})
    except FocError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("inventory")


@app.get("/inventory/overview", dependencies=[Depends(require_session)])
def overview(cache: InventoryCache = Depends(get_inventory_cache)):
    try:
        return _json(compute_overview(cache.get(), date.today()))
    except FocError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("overview")


@app.post("/inventory/master-list", dependencies=[Depends(require_session)])
def master_list(filters: MasterListFiltersModel, cache: InventoryCache = Depends(get_inventory_cache)):
    try:
        f = normalize_filters(filters.model_dump())
        return _json(compute_master_list(cache.get(), f, date.today()))
    except FocError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("master_list")


@app.get("/inventory/models", dependencies=[Depends(require_session)])
def models(cache: InventoryCache = Depends(get_inventory_cache)):
    try:
        return _json(compute_models(cache.get()))
    except FocError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("models")


@app.get("/inventory/campaigns", dependencies=[Depends(require_session)])
def campaigns(cache: InventoryCache = Depends(get_inventory_cache)):
    try:
        return _json(compute_campaigns(cache.get()))
    except FocError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("campaigns")


@app.get("/kols", dependencies=[Depends(require_session)])
def kols(cache: InventoryCache = Depends(get_inventory_cache)):
    try:
        return _json(compute_kols(cache.get()))
    except FocError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("kols")


@app.get("/returns", dependencies=[Depends(require_session)])
def returns(cache: InventoryCache = Depends(get_inventory_cache)):
    try:
        return _json(compute_returns(cache.get(), date.today()))
    except FocError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("returns")


@app.post("/inventory/revalidate", response_model=ActionResponse, dependencies=[Depends(require_session)])
def revalidate(cache: InventoryCache = Depends(get_inventory_cache)):
    cache.invalidate()
    return _action(ActionResult.ok())


# ---------------- Auth ----------------
@app.post("/auth/pin", response_model=ActionResponse)
def login(
    body: PinModel,
    gate: AuthGate = Depends(get_auth_gate),
    settings: Settings = Depends(get_settings),
):
    result = gate.verify_pin(body.pin)
    response = _action(result)
    if result.success and result.token:
        response.set_cookie(
            AUTH_COOKIE_NAME,
            result.token,
            max_age=SESSION_TTL_SECONDS,
            path="/",
            httponly=True,
            secure=settings.production,
            samesite="lax",
        )
    return response


@app.get("/auth/status", response_model=AuthStatusResponse)
def auth_status(authenticated: bool = Depends(current_session)):
    return {"authenticated": authenticated}


# ---------------- Mutations ----------------
@app.post("/actions/request", response_model=ActionResponse)
def request_unit(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    actions: InventoryActions = Depends(get_actions),
):
    return _action(actions.request_unit(payload, request.cookies.get(AUTH_COOKIE_NAME)))


@app.post("/actions/return", response_model=ActionResponse)
def return_unit(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    actions: InventoryActions = Depends(get_actions),
):
    return _action(actions.return_unit(payload, request.cookies.get(AUTH_COOKIE_NAME)))
