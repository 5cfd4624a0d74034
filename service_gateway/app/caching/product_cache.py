"""
In-process product list cache with in-flight request coalescing.
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class ProductListCache:
    """Short-lived cache in front of the upstream product list.

    Identical concurrent misses share one upstream call, and a load keeps
    running and is stored even if the caller that started it goes away.
    Failed loads are never stored, and the cache holds at most
    ``max_entries`` keys, dropping the oldest first. Best effort only: each
    worker process has its own.
    """

    cache_type = "product_list"

    def __init__(
        self,
        ttl_seconds: float = 15.0,
        max_entries: int = 512,
        *,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self.metrics = metrics
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}
        self.logger = get_logger("gateway.product_cache")

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Return a fresh cached value, join an in-flight load, or start one."""
        cached = self.get(key)
        if cached is not None:
            self._record(hit=True)
            return cached

        pending = self._in_flight.get(key)
        if pending is not None:
            self._record(hit=True)
            self.logger.debug("Joined in-flight product list load", key=key)
            return await asyncio.shield(pending)

        self._record(hit=False)
        task = asyncio.ensure_future(loader())
        self._in_flight[key] = task
        # Registered before any shield so the value is stored before awaiters resume.
        task.add_done_callback(lambda done: self._finish_load(key, done))
        return await asyncio.shield(task)

    def _finish_load(self, key: str, task: "asyncio.Future[Any]") -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.warning("Product list load failed", key=key, error=str(error))
            return
        self.set(key, task.result())

    def clear(self) -> None:
        self._entries.clear()

    def _record(self, hit: bool) -> None:
        if self.metrics:
            self.metrics.record_cache_access(self.cache_type, hit)
