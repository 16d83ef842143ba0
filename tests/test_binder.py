"""
Tests for route patterns, entry ordering and MvcBinding.
"""

import pytest

from aerie import Controller, ResourceApi
from aerie.binder import MvcBinding, RouteEntry, build_patterns, default_pattern, sort_entries
from aerie.cache import TemplateCache
from aerie.config import MvcConfig
from aerie.faults import DiscoveryFault
from aerie.templates import PartialRegistry

from tests.conftest import ROOT, ROOT3, make_exchange


def make_binding(directory, **options):
    config = MvcConfig().with_options(directory=str(directory), **options)
    return MvcBinding(config, cache=TemplateCache(), partials=PartialRegistry())


class TestPatterns:

    def test_default_pattern(self):
        pattern = default_pattern("/shop")
        assert pattern.startswith("/shop/:a?/:b?")
        assert pattern.endswith("/:z?")
        assert pattern.count("/:") == 26

    def test_explicit_patterns_before_default(self):
        class Versioned(ResourceApi):
            path = "/items"
            paths = ["/legacy/items", "/items"]

        patterns = build_patterns(Versioned, "/apis/versioned")

        assert patterns == ("/:version/items", "/legacy/items", "/items", default_pattern("/apis/versioned"))

    def test_explicit_path_overlapping_default_is_tried_first(self):
        class ItemApi(ResourceApi):
            path = "/apis/item/:id"

        patterns = build_patterns(ItemApi, "/apis/item")

        assert patterns[0] == "/:version/apis/item/:id"
        assert patterns[1] == "/apis/item/:id"
        assert patterns[-1] == default_pattern("/apis/item")

    def test_build_patterns_without_path(self):
        assert build_patterns(ResourceApi, "") == (default_pattern(""),)


class TestSortEntries:

    def entry(self, context, handler):
        return RouteEntry(context=context, patterns=(default_pattern(context),), middleware=(), handler=handler)

    def test_deepest_first_apis_win_ties(self):
        entries = [
            self.entry("", Controller()),
            self.entry("/shop", Controller()),
            self.entry("/shop", ResourceApi()),
            self.entry("/apis/express", ResourceApi()),
        ]

        ordered = [(e.context, e.is_api) for e in sort_entries(entries)]

        assert ordered == [("/apis/express", True), ("/shop", True), ("/shop", False), ("", False)]


class TestMvcBinding:

    @pytest.mark.asyncio
    async def test_bind_collects_handlers(self):
        binding = make_binding(ROOT3)
        await binding.ready()

        assert binding.is_ready
        assert sorted(binding.controllers) == ["CartController"]
        assert sorted(binding.apis) == ["ThirdExpressApi"]
        assert binding.describe() == [
            ("api", "/otherApis/thirdExpress", "ThirdExpressApi"),
            ("controller", "/shop", "CartController"),
        ]

    @pytest.mark.asyncio
    async def test_apis_have_no_error_templates(self):
        binding = make_binding(ROOT)
        await binding.ready()
        assert binding.apis["ExpressApi"].errors is None
        assert binding.controllers["MyController"].errors is not None

    @pytest.mark.asyncio
    async def test_missing_directory(self, tmp_path):
        binding = make_binding(tmp_path / "missing")
        with pytest.raises(DiscoveryFault):
            await binding.ready()

    @pytest.mark.asyncio
    async def test_app_info_from_config(self):
        binding = make_binding(ROOT3, name="shop", version="2.0.0", description="Fruit")
        await binding.ready()
        info = binding.controllers["CartController"].app_info
        assert (info.name, info.version, info.description) == ("shop", "2.0.0", "Fruit")

    @pytest.mark.asyncio
    async def test_string_filter_matches_hostname(self):
        binding = make_binding(ROOT3, filter=r"^shop\.")
        assert await binding.matches(make_exchange(headers=[("host", "shop.example.com:8000")]))
        assert not await binding.matches(make_exchange(headers=[("host", "www.example.com")]))

    @pytest.mark.asyncio
    async def test_async_predicate_filter(self):
        async def only_post(exchange):
            return exchange.request.method == "POST"

        binding = make_binding(ROOT3, filter=only_post)
        assert await binding.matches(make_exchange("POST"))
        assert not await binding.matches(make_exchange("GET"))

    @pytest.mark.asyncio
    async def test_filtered_out_calls_next(self):
        reached = []

        async def next_layer():
            reached.append(True)

        binding = make_binding(ROOT3, filter=lambda exchange: False)
        exchange = make_exchange(path="/shop")
        exchange.next = next_layer
        await binding(exchange)

        assert reached == [True]
        assert not binding.is_ready

    @pytest.mark.asyncio
    async def test_not_found_catch_all(self):
        binding = make_binding(ROOT3, not_found=True)
        exchange = make_exchange(path="/nothing/here")
        await binding(exchange)

        assert exchange.response.status_code == 404

    @pytest.mark.asyncio
    async def test_binding_middleware_runs_first(self):
        seen = []

        async def trace(exchange):
            seen.append(exchange.request.raw_path)
            await exchange.next()

        binding = make_binding(ROOT3, middleware=[trace])
        exchange = make_exchange(path="/third-express")
        await binding(exchange)

        assert seen == ["/third-express"]
        assert exchange.response.status_code == 200
