"""
Fixed-window rate limiter for the Gateway service.

Windows live in process memory, one per client key. The map is bounded:
entries are kept in least-recently-used order and capped at
``max_clients``, and windows that have been idle for several window
durations are swept out lazily.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from shared.logging import get_logger


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class RateLimitPolicy:
    """Quota for one route family."""

    name: str
    window_duration_ms: int
    max_requests_per_window: int
    retry_after_seconds: int = 2


@dataclass
class RateWindow:
    """Counter for the current window of a single client key."""

    window_start: float
    count: int


@dataclass(frozen=True)
class RateDecision:
    """Outcome of one admission check."""

    ok: bool
    limit: int
    remaining: int
    retry_after_seconds: int


RATE_LIMIT_POLICIES: Dict[str, RateLimitPolicy] = {
    "cart_mutation": RateLimitPolicy("cart_mutation", 60_000, 120),
    "cart_read": RateLimitPolicy("cart_read", 60_000, 240),
    "account_register": RateLimitPolicy("account_register", 60_000, 20, retry_after_seconds=3),
    "account_orders": RateLimitPolicy("account_orders", 60_000, 60),
    "catalog_product": RateLimitPolicy("catalog_product", 60_000, 240),
    "catalog_list": RateLimitPolicy("catalog_list", 60_000, 120),
}


class FixedWindowRateLimiter:
    """Admit at most ``max_requests_per_window`` requests per client per window."""

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        max_clients: int = 10000,
        stale_after_windows: int = 2,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_clients < 1:
            raise ValueError("max_clients must be at least 1")
        self.policy = policy
        self.max_clients = max_clients
        self.stale_after_ms = max(1, stale_after_windows) * policy.window_duration_ms
        self._clock = clock or _monotonic_ms
        self._windows: "OrderedDict[str, RateWindow]" = OrderedDict()
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None
        self.logger = get_logger("gateway.rate_limiter")

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, client_key: str) -> bool:
        return client_key in self._windows

    def admit(self, client_key: str) -> RateDecision:
        """Record one request for ``client_key`` and decide whether it may proceed."""
        policy = self.policy
        now = self._clock()

        with self._lock:
            window = self._windows.get(client_key)
            if window is None or now - window.window_start > policy.window_duration_ms:
                window = RateWindow(window_start=now, count=1)
                self._windows[client_key] = window
                self._windows.move_to_end(client_key)
                self._evict(now)
            else:
                window.count += 1
                self._windows.move_to_end(client_key)
            count = window.count

        if count > policy.max_requests_per_window:
            self.logger.warning(
                "Rate limit exceeded",
                policy=policy.name,
                client_key=client_key,
                current_count=count,
                limit=policy.max_requests_per_window,
            )
            return RateDecision(
                ok=False,
                limit=policy.max_requests_per_window,
                remaining=0,
                retry_after_seconds=policy.retry_after_seconds,
            )

        return RateDecision(
            ok=True,
            limit=policy.max_requests_per_window,
            remaining=policy.max_requests_per_window - count,
            retry_after_seconds=policy.retry_after_seconds,
        )

    def _evict(self, now: float) -> None:
        # Caller holds self._lock.
        if self._last_sweep is None or now - self._last_sweep >= self.policy.window_duration_ms:
            self._last_sweep = now
            stale = [
                key for key, window in self._windows.items()
                if now - window.window_start > self.stale_after_ms
            ]
            for key in stale:
                del self._windows[key]
            if stale:
                self.logger.debug("Swept stale rate windows", policy=self.policy.name, evicted=len(stale))

        while len(self._windows) > self.max_clients:
            self._windows.popitem(last=False)
