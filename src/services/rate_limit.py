from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple


@dataclass
class RateLimitResult:
    success: bool
    retry_after: Optional[int] = None


class RateLimiter(Protocol):
    def check(self, ip: str) -> RateLimitResult:  # pragma: no cover - interface only
        ...


class FixedWindowRateLimiter:
    """Per-IP request counter reset every ``window_seconds``.

    Process-local; deployments with several workers should inject a shared
    backend with the same ``check`` signature.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def check(self, ip: str) -> RateLimitResult:
        if self._max_requests <= 0:
            return RateLimitResult(success=True)
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(ip, (now, 0))
            if now - started >= self._window:
                started, count = now, 0
            if count >= self._max_requests:
                retry_after = max(1, math.ceil(started + self._window - now))
                return RateLimitResult(success=False, retry_after=retry_after)
            self._windows[ip] = (started, count + 1)
            self._prune(now)
        return RateLimitResult(success=True)

    def _prune(self, now: float) -> None:
        expired = [key for key, (started, _) in self._windows.items() if now - started >= self._window]
        for key in expired:
            del self._windows[key]
