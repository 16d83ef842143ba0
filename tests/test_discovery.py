"""
Tests for filename-convention discovery.
"""

from pathlib import Path

import pytest

from aerie import Controller, Model, ResourceApi
from aerie.discovery import (
    HandlerKind,
    describe_file,
    discover,
    load_handler_class,
    load_model_class,
    walk_files,
)
from aerie.faults import DiscoveryFault

from tests.conftest import ROOT, ROOT3

ROOT_DIR = Path("/srv/site")


class TestDescribeFile:

    @pytest.mark.parametrize("filename,kind", [
        ("ExpressApi.py", HandlerKind.API),
        ("HomeCtrl.py", HandlerKind.CONTROLLER),
        ("HomeController.py", HandlerKind.CONTROLLER),
        ("express_api.py", HandlerKind.API),
        ("home_ctrl.py", HandlerKind.CONTROLLER),
        ("home_controller.py", HandlerKind.CONTROLLER),
    ])
    def test_suffixes(self, filename, kind):
        descriptor = describe_file(ROOT_DIR, ROOT_DIR / filename)
        assert descriptor is not None
        assert descriptor.kind is kind

    @pytest.mark.parametrize("filename", [
        "HomeModel.py",
        "HomeView.html",
        "ExpressApi.js",
        "Api.py",
        "_private_api.py",
        "helpers.py",
    ])
    def test_non_handlers(self, filename):
        assert describe_file(ROOT_DIR, ROOT_DIR / filename) is None

    def test_api_context_appends_camel_stem(self):
        assert describe_file(ROOT_DIR, ROOT_DIR / "apis" / "ExpressApi.py").context == "/apis/express"
        assert describe_file(ROOT_DIR, ROOT_DIR / "apis" / "second_express_api.py").context == "/apis/secondExpress"
        assert describe_file(ROOT_DIR, ROOT_DIR / "SecondExpressApi.py").context == "/secondExpress"

    def test_controller_context_is_directory(self):
        assert describe_file(ROOT_DIR, ROOT_DIR / "HomeController.py").context == ""
        assert describe_file(ROOT_DIR, ROOT_DIR / "shop" / "cart" / "CartCtrl.py").context == "/shop/cart"

    def test_context_segments_are_encoded(self):
        descriptor = describe_file(ROOT_DIR, ROOT_DIR / "my shop" / "CartController.py")
        assert descriptor.context == "/my%20shop"

    def test_camel_companions(self):
        descriptor = describe_file(ROOT_DIR, ROOT_DIR / "shop" / "CartController.py")
        assert descriptor.model_file == ROOT_DIR / "shop" / "CartModel.py"
        assert descriptor.view_file == ROOT_DIR / "shop" / "CartView.html"
        assert descriptor.assets_dir == ROOT_DIR / "shop" / "CartAssets"
        assert descriptor.config_file == ROOT_DIR / "shop" / "CartConfig.json"
        assert descriptor.model_name == "cartModel"
        assert descriptor.class_name == "CartController"

    def test_snake_companions(self):
        descriptor = describe_file(ROOT_DIR, ROOT_DIR / "shop" / "cart_ctrl.py")
        assert descriptor.model_file == ROOT_DIR / "shop" / "cart_model.py"
        assert descriptor.view_file == ROOT_DIR / "shop" / "cart_view.html"
        assert descriptor.assets_dir == ROOT_DIR / "shop" / "cart_assets"
        assert descriptor.config_file == ROOT_DIR / "shop" / "cart_config.json"
        assert descriptor.class_name == "CartCtrl"
        assert descriptor.model_class_name == "CartModel"

    def test_is_pure(self):
        # Nothing under /srv/site exists; classification still succeeds
        assert describe_file(ROOT_DIR, ROOT_DIR / "ghost" / "GhostApi.py").context == "/ghost/ghost"


class TestWalk:

    def test_walk_skips_caches(self, tmp_path):
        (tmp_path / "__pycache__").mkdir()
        (tmp_path / "__pycache__" / "HomeController.cpython-312.pyc").write_bytes(b"")
        (tmp_path / ".hidden").mkdir()
        (tmp_path / ".hidden" / "SecretApi.py").write_text("")
        (tmp_path / "HomeController.py").write_text("")

        assert walk_files(tmp_path) == [tmp_path / "HomeController.py"]

    def test_discover_fixture_root(self):
        found = {(d.kind, d.context) for d in discover(ROOT)}
        assert (HandlerKind.CONTROLLER, "") in found
        assert (HandlerKind.CONTROLLER, "/bad") in found
        assert (HandlerKind.API, "/apis/express") in found
        assert (HandlerKind.API, "/apis/secondExpress") in found
        assert (HandlerKind.API, "/apis/someMiddleware") in found


class TestLoading:

    def test_load_controller_and_model(self):
        descriptor = describe_file(ROOT, ROOT / "MyController.py")
        controller = load_handler_class(descriptor, Controller)
        model = load_model_class(descriptor, Model)

        assert controller.__name__ == "MyController"
        assert issubclass(controller, Controller)
        assert model.__name__ == "MyModel"

    def test_loading_twice_returns_same_class(self):
        descriptor = describe_file(ROOT, ROOT / "apis" / "ExpressApi.py")
        assert load_handler_class(descriptor, ResourceApi) is load_handler_class(descriptor, ResourceApi)

    def test_snake_case_handler(self):
        descriptor = describe_file(ROOT3, ROOT3 / "shop" / "cart_controller.py")
        assert load_handler_class(descriptor, Controller).__name__ == "CartController"
        assert load_model_class(descriptor, Model).__name__ == "CartModel"

    def test_missing_model_is_none(self):
        descriptor = describe_file(ROOT, ROOT / "bad" / "BadController.py")
        assert load_model_class(descriptor, Model) is None

    def test_import_error_is_a_discovery_fault(self):
        descriptor = describe_file(ROOT, ROOT / "apis" / "BrokenApi.py")
        with pytest.raises(DiscoveryFault) as info:
            load_handler_class(descriptor, ResourceApi)
        assert "RuntimeError" in info.value.metadata["reason"]

    def test_wrong_base_is_a_discovery_fault(self, tmp_path):
        handler = tmp_path / "WrongApi.py"
        handler.write_text("class WrongApi:\n    pass\n")
        descriptor = describe_file(tmp_path, handler)
        with pytest.raises(DiscoveryFault):
            load_handler_class(descriptor, ResourceApi)
