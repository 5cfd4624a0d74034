"""
Unit tests for the product list cache.
"""

import asyncio

import pytest

from service_gateway.app.caching import ProductListCache
from shared.errors import UpstreamError
from shared.metrics import MetricsCollector


class SecondsClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestProductListCache:
    """Test cases for ProductListCache."""

    @pytest.fixture
    def seconds(self):
        return SecondsClock()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("gateway-test")

    @pytest.fixture
    def cache(self, seconds, metrics):
        return ProductListCache(ttl_seconds=15.0, max_entries=3, metrics=metrics, clock=seconds)

    def test_entries_expire_after_ttl(self, cache, seconds):
        cache.set("k", {"data": []})

        seconds.now += 14.9
        assert cache.get("k") == {"data": []}

        seconds.now += 0.2
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_oldest_entries_are_dropped(self, cache):
        for key in ("a", "b", "c", "d"):
            cache.set(key, key)

        assert len(cache) == 3
        assert cache.get("a") is None
        assert cache.get("d") == "d"

    @pytest.mark.asyncio
    async def test_get_or_load_caches_result(self, cache, metrics):
        calls = []

        async def loader():
            calls.append(1)
            return {"data": [1]}

        assert await cache.get_or_load("k", loader) == {"data": [1]}
        assert await cache.get_or_load("k", loader) == {"data": [1]}

        assert len(calls) == 1
        assert metrics.registry.get_sample_value("cache_hits_total", {"cache_type": "product_list"}) == 1
        assert metrics.registry.get_sample_value("cache_misses_total", {"cache_type": "product_list"}) == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_load(self, cache):
        calls = []
        release = asyncio.Event()

        async def loader():
            calls.append(1)
            await release.wait()
            return {"data": ["shared"]}

        waiters = [asyncio.ensure_future(cache.get_or_load("k", loader)) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*waiters)

        assert len(calls) == 1
        assert all(result == {"data": ["shared"]} for result in results)

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_discard_load(self, cache):
        calls = []
        release = asyncio.Event()

        async def loader():
            calls.append(1)
            await release.wait()
            return {"data": ["kept"]}

        first = asyncio.ensure_future(cache.get_or_load("k", loader))
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        release.set()

        assert await cache.get_or_load("k", loader) == {"data": ["kept"]}
        assert await cache.get_or_load("k", loader) == {"data": ["kept"]}
        assert len(calls) == 1
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_with_failing_load(self, cache):
        attempts = []
        release = asyncio.Event()

        async def failing():
            attempts.append(1)
            await release.wait()
            raise UpstreamError(status_code=503, message="Failed to fetch products")

        first = asyncio.ensure_future(cache.get_or_load("k", failing))
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        release.set()
        for _ in range(5):
            await asyncio.sleep(0)

        async def loader():
            return {"data": []}

        assert await cache.get_or_load("k", loader) == {"data": []}
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_failed_load_is_not_cached(self, cache):
        attempts = []

        async def failing():
            attempts.append(1)
            raise UpstreamError(status_code=503, message="Failed to fetch products")

        for _ in range(2):
            with pytest.raises(UpstreamError):
                await cache.get_or_load("k", failing)

        assert len(attempts) == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_distinct_keys_load_separately(self, cache):
        async def loader_for(value):
            return value

        assert await cache.get_or_load("a", lambda: loader_for("A")) == "A"
        assert await cache.get_or_load("b", lambda: loader_for("B")) == "B"

    def test_clear(self, cache):
        cache.set("k", 1)
        cache.clear()

        assert cache.get("k") is None
