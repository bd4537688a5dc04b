"""
Fixed-window request counters keyed by client IP.

Windows are aligned to multiples of window_seconds, so every key rolls over at
the same boundary. Counters live in process memory; increments are serialized
by a lock.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Tuple


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        return max(1, int(math.ceil(self.reset_at - now)))


class FixedWindowRateLimiter:
    """Allow max_requests per key in each window of window_seconds."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.max_requests = max(1, int(max_requests))
        self.window_seconds = max(1, int(window_seconds))
        self._clock = clock
        self._lock = Lock()
        # key -> (window start, count)
        self._counters: Dict[str, Tuple[float, int]] = {}

    def _window_start(self, now: float) -> float:
        return math.floor(now / self.window_seconds) * self.window_seconds

    def hit(self, key: str) -> RateLimitResult:
        """Count one request for key and report whether it is within the limit."""
        now = self._clock()
        window_start = self._window_start(now)
        reset_at = window_start + self.window_seconds
        key = (key or "").strip() or "unknown"
        with self._lock:
            start, count = self._counters.get(key, (window_start, 0))
            if start != window_start:
                count = 0
                self._prune(window_start)
            count += 1
            self._counters[key] = (window_start, count)
        return RateLimitResult(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=reset_at,
        )

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._counters.clear()
            else:
                self._counters.pop(key, None)

    def now(self) -> float:
        return self._clock()

    def _prune(self, current_window: float) -> None:
        # caller holds the lock
        stale = [k for k, (start, _) in self._counters.items() if start != current_window]
        for k in stale:
            del self._counters[k]

    @classmethod
    def parse(cls, spec: str, *, name: str = "default", clock: Callable[[], float] = time.time):
        """Build from "MAX/WINDOW_SECONDS", e.g. "5/900"."""
        try:
            max_raw, window_raw = spec.split("/", 1)
            return cls(int(max_raw), int(window_raw), name=name, clock=clock)
        except ValueError as exc:
            raise ValueError(f"Invalid rate limit spec {spec!r}; expected MAX/WINDOW_SECONDS") from exc
