from __future__ import annotations

import threading
import time
from typing import Dict, Hashable, Tuple

from nivalus.core.config import settings


class AttemptLimiter:
    """In-memory failure counter keyed by client address or user id.

    A key is blocked once it has ``max_attempts`` recorded failures. Counters
    are cleared on success, dropped lazily once older than ``window_seconds``,
    and wiped wholesale by ``sweep()`` which the scheduler calls on the same
    interval. State is per-process and lost on restart.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: int = 3600) -> None:
        self._max_attempts = max_attempts
        self._window_seconds = window_seconds
        # key -> (first failure timestamp, failure count)
        self._entries: Dict[Hashable, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def _purge_expired(self) -> None:
        now = time.time()
        keys_to_delete = [key for key, (ts, _) in self._entries.items() if now - ts > self._window_seconds]
        for key in keys_to_delete:
            self._entries.pop(key, None)

    def attempts(self, key: Hashable) -> int:
        with self._lock:
            self._purge_expired()
            entry = self._entries.get(key)
            return entry[1] if entry else 0

    def check(self, key: Hashable) -> bool:
        """Return True while the key is still allowed to try"""
        return self.attempts(key) < self._max_attempts

    def record_failure(self, key: Hashable) -> int:
        with self._lock:
            self._purge_expired()
            ts, count = self._entries.get(key, (time.time(), 0))
            self._entries[key] = (ts, count + 1)
            return count + 1

    def record_success(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        """Clear every counter; returns how many keys were dropped"""
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            return dropped

    reset = sweep


login_limiter = AttemptLimiter(
    max_attempts=settings.LOGIN_MAX_ATTEMPTS,
    window_seconds=settings.LOGIN_WINDOW_SECONDS,
)
pin_limiter = AttemptLimiter(
    max_attempts=settings.PIN_MAX_ATTEMPTS,
    window_seconds=settings.LOGIN_WINDOW_SECONDS,
)


def get_login_limiter() -> AttemptLimiter:
    return login_limiter


def get_pin_limiter() -> AttemptLimiter:
    return pin_limiter
