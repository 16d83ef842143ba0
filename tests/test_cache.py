"""
Tests for TemplateCache.
"""

import asyncio

import pytest

from aerie.cache import TemplateCache


class TestTemplateCache:

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            TemplateCache(ttl=-1)

    def test_set_and_get(self):
        cache = TemplateCache()
        cache.set("/views/a.html", "compiled")
        assert cache.get("/views/a.html") == "compiled"
        assert "/views/a.html" in cache
        assert len(cache) == 1

    def test_zero_ttl_expires_immediately(self):
        cache = TemplateCache(ttl=0)
        cache.set("k", "v")
        assert cache.get("k") is None
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_get_or_compute_hits_within_ttl(self):
        cache = TemplateCache(ttl=None)
        calls = []

        async def factory():
            calls.append(1)
            return object()

        first = await cache.get_or_compute("k", factory)
        second = await cache.get_or_compute("k", factory)

        assert first is second
        assert len(calls) == 1
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1

    @pytest.mark.asyncio
    async def test_get_or_compute_recomputes_after_expiry(self):
        cache = TemplateCache(ttl=0.01)
        values = iter(["old", "new"])

        first = await cache.get_or_compute("k", lambda: next(values))
        await asyncio.sleep(0.05)
        second = await cache.get_or_compute("k", lambda: next(values))

        assert (first, second) == ("old", "new")

    @pytest.mark.asyncio
    async def test_invalidate(self):
        cache = TemplateCache()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        assert "a" not in cache
        assert "b" in cache

        cache.invalidate()
        assert len(cache) == 0
