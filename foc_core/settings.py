from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[1]

MASTER_RANGE_DEFAULT = "Step 1 Data Bank!A:O"
REQUEST_RANGE_DEFAULT = "Step 3 FOC Request!A:H"
REQUEST_APPEND_RANGE_DEFAULT = "Step 3 FOC Request"
RETURN_APPEND_RANGE_DEFAULT = "Step 4 FOC Return"

AUTH_COOKIE_NAME = "foc_auth_token"
SESSION_TTL_SECONDS = 60 * 60 * 24


def _split_pins(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]


def _as_float(raw: Optional[str], default: float) -> float:
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    spreadsheet_id: Optional[str] = None
    google_client_email: Optional[str] = None
    google_private_key: Optional[str] = None
    signing_secret: Optional[str] = None
    authorized_pins: List[str] = field(default_factory=list)
    production: bool = False
    email_domain: str = "wppmedia.com"
    cache_ttl_seconds: float = 30.0
    master_range: str = MASTER_RANGE_DEFAULT
    request_range: str = REQUEST_RANGE_DEFAULT
    request_append_range: str = REQUEST_APPEND_RANGE_DEFAULT
    return_append_range: str = RETURN_APPEND_RANGE_DEFAULT


def load_settings(env: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> Settings:
    """Build `Settings` from the process environment (or an explicit mapping)."""
    if env is None:
        if dotenv:
            load_dotenv(BASE_DIR / ".env")
        env = os.environ

    private_key = env.get("GOOGLE_PRIVATE_KEY") or None
    if private_key:
        private_key = private_key.replace("\\n", "\n")

    return Settings(
        spreadsheet_id=env.get("GOOGLE_SHEET_ID") or None,
        google_client_email=env.get("GOOGLE_CLIENT_EMAIL") or None,
        google_private_key=private_key,
        # JWT_SECRET wins; the service-account key is the legacy fallback.
        signing_secret=env.get("JWT_SECRET") or private_key,
        authorized_pins=_split_pins(env.get("AUTHORIZED_PINS")),
        production=(env.get("APP_ENV", "") or "").strip().lower() == "production",
        email_domain=(env.get("FOC_EMAIL_DOMAIN") or "wppmedia.com").strip(),
        cache_ttl_seconds=_as_float(env.get("INVENTORY_CACHE_TTL"), 30.0),
        master_range=env.get("MASTER_RANGE") or MASTER_RANGE_DEFAULT,
        request_range=env.get("REQUEST_RANGE") or REQUEST_RANGE_DEFAULT,
        request_append_range=env.get("REQUEST_APPEND_RANGE") or REQUEST_APPEND_RANGE_DEFAULT,
        return_append_range=env.get("RETURN_APPEND_RANGE") or RETURN_APPEND_RANGE_DEFAULT,
    )
