from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class PinModel(BaseModel):
    pin: str = ""


class MasterListFiltersModel(BaseModel):
    query: str = ""
    status: str = "ALL"
    location: str = "ALL"
    sort_key: Optional[str] = None
    direction: Literal["asc", "desc"] = "asc"
    page: int = 1
    page_size: int = Field(default=10, ge=1, le=200)


class AuthStatusResponse(BaseModel):
    authenticated: bool


class ActionResponse(BaseModel):
    success: bool
    error: Optional[str] = None
