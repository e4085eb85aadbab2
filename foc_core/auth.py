from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from itsdangerous import BadData, URLSafeTimedSerializer

from foc_core.errors import ActionResult, ConfigurationError, FocError, RateLimitedError
from foc_core.ratelimit import RateLimiter
from foc_core.settings import SESSION_TTL_SECONDS, Settings

logger = logging.getLogger(__name__)

PIN_RATE_LIMIT_KEY = "pin-global"
AUTHORIZED_ROLE = "authorized"
TOKEN_SALT = "foc-auth-token"


@dataclass(frozen=True)
class PinResult(ActionResult):
    """`ActionResult` that also carries the minted session token on success."""

    token: Optional[str] = None


class AuthGate:
    def __init__(
        self,
        secret: Optional[str],
        authorized_pins: Sequence[str],
        *,
        limiter: Optional[RateLimiter] = None,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._pins: List[str] = list(authorized_pins)
        self.limiter = limiter if limiter is not None else RateLimiter(clock=clock)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "AuthGate":
        return cls(settings.signing_secret, settings.authorized_pins, **kwargs)

    @property
    def is_configured(self) -> bool:
        return bool(self._secret)

    def _serializer(self) -> URLSafeTimedSerializer:
        if not self._secret:
            raise ConfigurationError("JWT_SECRET or GOOGLE_PRIVATE_KEY must be set.")
        return URLSafeTimedSerializer(self._secret, salt=TOKEN_SALT)

    def issue_token(self) -> str:
        expires_at = int(self._clock()) + self.ttl_seconds
        return self._serializer().dumps({"role": AUTHORIZED_ROLE, "exp": expires_at})

    def is_authenticated(self, token: Optional[str]) -> bool:
        """Never raises: a missing, forged or expired token is simply False."""
        if not token:
            return False
        try:
            payload = self._serializer().loads(token, max_age=self.ttl_seconds)
        except ConfigurationError:
            logger.error("session check without a signing secret configured")
            return False
        except BadData:
            return False
        if not isinstance(payload, dict) or payload.get("role") != AUTHORIZED_ROLE:
            return False
        try:
            expires_at = int(payload.get("exp"))
        except (TypeError, ValueError):
            return False
        return self._clock() < expires_at

    def verify_pin(self, pin: str, key: str = PIN_RATE_LIMIT_KEY) -> PinResult:
        # Check and record must not interleave across request threads.
        with self.limiter.lock:
            return self._verify_pin(pin, key)

    def _verify_pin(self, pin: str, key: str) -> PinResult:
        if self.limiter.is_rate_limited(key):
            return self._failure(RateLimitedError())

        if not self._pins:
            logger.error("AUTHORIZED_PINS is empty; PIN login is disabled")
            return self._failure(ConfigurationError(public_message="Server misconfigured — no PINs configured."))

        if pin in self._pins:
            try:
                token = self.issue_token()
            except ConfigurationError as exc:
                logger.error("PIN accepted but no signing secret is configured")
                return self._failure(exc)
            self.limiter.clear_attempts(key)
            return PinResult(success=True, token=token)

        self.limiter.record_failed_attempt(key)
        remaining = self.limiter.remaining_attempts(key)
        if remaining <= 0:
            return self._failure(RateLimitedError())
        suffix = "" if remaining == 1 else "s"
        return PinResult(success=False, error=f"Invalid PIN. {remaining} attempt{suffix} remaining.", status_code=401)

    @staticmethod
    def _failure(exc: FocError) -> PinResult:
        return PinResult(success=False, error=exc.public_message, status_code=exc.status_code)
