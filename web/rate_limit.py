"""Per-client sliding-window rate limiting for Flask views."""

from __future__ import annotations

import threading
import time
from collections import deque
from functools import wraps
from typing import Callable, Deque, Dict, Optional

from flask import current_app, request

from core.constants import RateLimitDefaults
from core.exceptions import RateLimitError


class SlidingWindowLimiter:
    """Allows ``max_requests`` per ``window_seconds`` for each key.

    A limit of 0 or less turns limiting off. Keys whose timestamps have all
    expired are forgotten, at most once per window.
    """

    def __init__(
        self,
        max_requests: int = RateLimitDefaults.SELL_MAX_REQUESTS,
        window_seconds: float = RateLimitDefaults.SELL_WINDOW_SECONDS,
    ) -> None:
        self.max_requests = max_requests
        self.window = window_seconds
        self._events: Dict[str, Deque[float]] = {}
        self._last_sweep = time.monotonic()
        self._lock = threading.Lock()

    def hit(self, key: str, max_requests: Optional[int] = None, window: Optional[float] = None) -> float:
        """Record one request; returns 0 when allowed, else seconds until a slot frees."""
        limit = self.max_requests if max_requests is None else max_requests
        window = self.window if window is None else window
        if limit <= 0:
            return 0.0
        now = time.monotonic()
        with self._lock:
            if now - self._last_sweep > window:
                self._sweep(now, window)
            bucket = self._events.setdefault(key, deque())
            # Evict old timestamps
            while bucket and now - bucket[0] > window:
                bucket.popleft()
            if len(bucket) >= limit:
                return window - (now - bucket[0])
            bucket.append(now)
            return 0.0

    def _sweep(self, now: float, window: float) -> None:
        for key in list(self._events):
            bucket = self._events[key]
            if not bucket or now - bucket[-1] > window:
                del self._events[key]
        self._last_sweep = now

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._events)

    def reset(self) -> None:
        with self._lock:
            self._events.clear()
            self._last_sweep = time.monotonic()


sell_limiter = SlidingWindowLimiter()


def rate_limited(limiter: SlidingWindowLimiter, scope: str) -> Callable:
    """Reject a view with ``RateLimitError`` once the client exceeds its budget.

    Limits come from ``SELL_RATE_LIMIT`` / ``SELL_RATE_WINDOW`` in the app
    config, falling back to the limiter's own.
    """
    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            key = f"{scope}:{request.remote_addr or 'unknown'}"
            retry_after = limiter.hit(
                key,
                current_app.config.get("SELL_RATE_LIMIT"),
                current_app.config.get("SELL_RATE_WINDOW"),
            )
            if retry_after > 0:
                raise RateLimitError(
                    "Too many ticket sales from this client, please wait",
                    {"retryAfterSeconds": round(retry_after, 1)},
                )
            return view(*args, **kwargs)
        return wrapper
    return decorator
