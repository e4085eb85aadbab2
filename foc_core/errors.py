from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


class FocError(Exception):
    """Base error. `public_message` is safe to show to end users."""

    status_code: int = 500
    public_message: str = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, *, public_message: Optional[str] = None) -> None:
        super().__init__(message or public_message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class ConfigurationError(FocError):
    status_code = 500
    public_message = "Server misconfigured — signing key missing."


class NoInventoryDataError(FocError):
    status_code = 503
    public_message = "Inventory is temporarily unavailable. Please try again shortly."


NoDataError = NoInventoryDataError


class PayloadValidationError(FocError):
    status_code = 422
    public_message = "Validation failed"


class UnauthorizedError(FocError):
    status_code = 401
    public_message = "Unauthorized — please log in first."


class RateLimitedError(FocError):
    status_code = 429
    public_message = "Too many failed attempts. Please try again in 15 minutes."


class StoreError(FocError):
    status_code = 502
    public_message = "Failed to reach the inventory spreadsheet."


@dataclass(frozen=True)
class ActionResult:
    success: bool
    error: Optional[str] = None
    status_code: int = 200

    @classmethod
    def ok(cls) -> "ActionResult":
        return cls(success=True)

    @classmethod
    def failure(cls, exc: FocError) -> "ActionResult":
        return cls(success=False, error=exc.public_message, status_code=exc.status_code)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            out["error"] = self.error
        return out
