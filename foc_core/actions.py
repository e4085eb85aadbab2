from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional

from foc_core.auth import AuthGate
from foc_core.errors import ActionResult, ConfigurationError, FocError, StoreError, UnauthorizedError
from foc_core.inventory import InventoryCache
from foc_core.settings import Settings
from foc_core.sheets import SheetStore
from foc_core.validations import RequestPayload, ReturnPayload, final_requestor, parse_payload

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%d/%m/%Y, %H.%M.%S"


class InventoryActions:
    """Request/return handlers. Every outcome is an `ActionResult`; nothing is raised."""

    def __init__(
        self,
        store: SheetStore,
        cache: InventoryCache,
        auth: AuthGate,
        settings: Settings,
        *,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.cache = cache
        self.auth = auth
        self.settings = settings
        self._now = now

    def _authorize(self, token: Optional[str]) -> None:
        if not self.auth.is_configured:
            logger.error("mutation attempted without a signing secret configured")
            raise ConfigurationError("signing secret missing")
        if not self.auth.is_authenticated(token):
            raise UnauthorizedError()

    def _stamp(self, username: str) -> List[str]:
        return [self._now().strftime(TIMESTAMP_FORMAT), f"{username}@{self.settings.email_domain}"]

    def _run(self, action: str, token: Optional[str], build_row: Callable[[], tuple]) -> ActionResult:
        try:
            self._authorize(token)
            range_name, row = build_row()
            self.store.append_row(range_name, row)
        except StoreError as exc:
            return ActionResult.failure(StoreError(str(exc), public_message=f"Failed to {action} unit due to a server error."))
        except FocError as exc:
            return ActionResult.failure(exc)
        except Exception:
            logger.exception("unexpected failure during %s", action)
            return ActionResult(success=False, error=f"Failed to {action} unit due to a server error.", status_code=500)

        self.cache.invalidate()
        return ActionResult.ok()

    def request_unit(self, data: Any, token: Optional[str]) -> ActionResult:
        def build_row() -> tuple:
            p: RequestPayload = parse_payload(RequestPayload, data)
            row = self._stamp(p.username) + [
                final_requestor(p),
                p.campaignName,
                p.unitName,
                p.imeiIfAny or "",
                p.kolName,
                p.kolAddress,
                p.kolPhoneNumber,
                p.deliveryDate,
                p.typeOfDelivery,
                p.typeOfFoc,
            ]
            return self.settings.request_append_range, row

        return self._run("request", token, build_row)

    def return_unit(self, data: Any, token: Optional[str]) -> ActionResult:
        def build_row() -> tuple:
            p: ReturnPayload = parse_payload(ReturnPayload, data)
            row = self._stamp(p.username) + [
                final_requestor(p),
                p.unitName,
                p.imei,
                p.fromKol,
                p.kolAddress,
                p.kolPhoneNumber,
                p.typeOfFoc,
            ]
            return self.settings.return_append_range, row

        return self._run("return", token, build_row)

    def revalidate(self) -> ActionResult:
        self.cache.invalidate()
        return ActionResult.ok()
