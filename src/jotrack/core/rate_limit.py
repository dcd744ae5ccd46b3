from __future__ import annotations

import math
import threading
import time
from collections import deque
from collections.abc import Callable

from jotrack.config import get_settings
from jotrack.errors import RateLimitedError


class RateLimiter:
    """Sliding-window limiter keyed by identifier (in-process only)."""

    def __init__(
        self,
        max_calls: int,
        window_sec: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_calls = max_calls
        self.window_sec = window_sec
        self._clock = clock
        self._calls: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, identifier: str, now: float) -> deque[float]:
        calls = self._calls.setdefault(identifier, deque())
        while calls and now - calls[0] >= self.window_sec:
            calls.popleft()
        return calls

    def check(self, identifier: str) -> None:
        with self._lock:
            now = self._clock()
            calls = self._prune(identifier, now)
            if len(calls) >= self.max_calls:
                raise RateLimitedError(max(1, math.ceil(calls[0] + self.window_sec - now)))
            calls.append(now)

    def remaining(self, identifier: str) -> int:
        with self._lock:
            calls = self._prune(identifier, self._clock())
            return max(0, self.max_calls - len(calls))

    def reset(self, identifier: str | None = None) -> None:
        with self._lock:
            if identifier is None:
                self._calls.clear()
            else:
                self._calls.pop(identifier, None)


_AI_LIMITER: RateLimiter | None = None


def get_ai_rate_limiter() -> RateLimiter:
    global _AI_LIMITER
    if _AI_LIMITER is None:
        settings = get_settings()
        _AI_LIMITER = RateLimiter(settings.ai_rate_limit_calls, settings.ai_rate_limit_window_sec)
    return _AI_LIMITER
