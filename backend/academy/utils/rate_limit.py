"""In-memory attempt limiter used to throttle login requests."""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque


class AttemptLimiter:
    """Sliding-window attempt counter per key.

    A key is typically `client:username`. Successful logins call `reset`
    so a legitimate user is never locked out by their own earlier typos.
    """

    def __init__(self, clock=time.monotonic):
        self._attempts = defaultdict(deque)
        self._lock = threading.Lock()
        self._clock = clock

    def hit(self, key: str, max_attempts: int, window_seconds: int) -> tuple[bool, int]:
        """Record an attempt; return `(allowed, retry_after_seconds)`."""
        now = self._clock()
        cutoff = now - window_seconds
        with self._lock:
            self._sweep(cutoff)
            attempts = self._attempts[key]
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if len(attempts) >= max_attempts:
                return False, max(1, int(window_seconds - (now - attempts[0])))
            attempts.append(now)
        return True, 0

    def _sweep(self, cutoff: float) -> None:
        # drop keys whose newest attempt is outside the window; caller holds the lock
        stale = [k for k, q in self._attempts.items() if not q or q[-1] <= cutoff]
        for k in stale:
            del self._attempts[k]

    def reset(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()
