"""Fixed-window limiter for failed PIN attempts.

Attempt records live in an `AttemptStore`. The default in-memory store is
process-local, so multiple instances each keep their own counts; pass a shared
store to make the lockout hold across instances.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

MAX_ATTEMPTS = 5
WINDOW_SECONDS = 15 * 60


@dataclass
class AttemptRecord:
    count: int
    first_attempt: float


class AttemptStore(Protocol):
    def get(self, key: str) -> Optional[AttemptRecord]: ...

    def set(self, key: str, record: AttemptRecord) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryAttemptStore:
    def __init__(self) -> None:
        self._records: Dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[AttemptRecord]:
        with self._lock:
            record = self._records.get(key)
            return AttemptRecord(record.count, record.first_attempt) if record else None

    def set(self, key: str, record: AttemptRecord) -> None:
        with self._lock:
            self._records[key] = AttemptRecord(record.count, record.first_attempt)

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)


class RateLimiter:
    """Counts failed attempts per key.

    `lock` is reentrant so a caller can hold it across a check and the
    following record, making check-then-record atomic for this process.
    """

    def __init__(
        self,
        store: Optional[AttemptStore] = None,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store if store is not None else InMemoryAttemptStore()
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self.lock = threading.RLock()

    def _live_record(self, key: str) -> Optional[AttemptRecord]:
        record = self.store.get(key)
        if record is None:
            return None
        if self._clock() - record.first_attempt > self.window_seconds:
            self.store.delete(key)
            return None
        return record

    def is_rate_limited(self, key: str) -> bool:
        with self.lock:
            record = self._live_record(key)
            return record is not None and record.count >= self.max_attempts

    def record_failed_attempt(self, key: str) -> None:
        with self.lock:
            record = self._live_record(key)
            if record is None:
                self.store.set(key, AttemptRecord(count=1, first_attempt=self._clock()))
            else:
                record.count += 1
                self.store.set(key, record)

    def clear_attempts(self, key: str) -> None:
        with self.lock:
            self.store.delete(key)

    def remaining_attempts(self, key: str) -> int:
        with self.lock:
            record = self._live_record(key)
            if record is None:
                return self.max_attempts
            return max(0, self.max_attempts - record.count)
