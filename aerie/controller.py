"""
Controller - renders a view from Model data.

On GET/POST a controller builds the view data (Model data merged with
route config and asset lists), renders its view through the shared
TemplateEngine, passes the fragment through ``view_parser`` and wraps it
in the view's layout chain.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type

from .assets import build_assets, list_asset_files, merge_config, read_route_config
from .config import Environment
from .dispatcher import RequestDispatcher
from .exchange import HttpExchange
from .model import Model
from .templates.engine import TemplateEngine
from .utils import maybe_await

logger = logging.getLogger("aerie.controller")


@dataclass(frozen=True)
class RouteResources:
    """Companion files of a controller, resolved at discovery time."""

    root: Path = field(default_factory=Path.cwd)
    config_file: Optional[Path] = None
    assets_dir: Optional[Path] = None
    assets_prefix: str = "/"
    environment: Environment = field(default_factory=Environment)


class Controller(RequestDispatcher):
    """
    Base class for view-rendering handlers.

    Args:
        view_file: Path of the view template, or None
        model: Model class instantiated per render, or None
        model_name: Name the model was discovered under
        engine: TemplateEngine, or an awaitable resolving to one
        errors: Error template map, or an awaitable resolving to one
        resources: Route config file and assets directory
    """

    def __init__(
        self,
        view_file: Optional[str] = None,
        model: Optional[Type[Model]] = None,
        model_name: Optional[str] = None,
        engine: Any = None,
        errors: Any = None,
        *,
        resources: Optional[RouteResources] = None,
        context: str = "",
        app_info=None,
    ):
        super().__init__(context=context, errors=errors, app_info=app_info)
        self.view_file = view_file
        self.model = model
        self.model_name = model_name
        self.engine = engine
        self.resources = resources or RouteResources()

    @property
    def has_view(self) -> bool:
        return bool(self.view_file)

    @property
    def has_model(self) -> bool:
        return self.model is not None

    def do_get(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.send(exchange)

    def do_post(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.send(exchange)

    def view_parser(self, exchange: HttpExchange, html: str) -> Any:
        """Post-process the rendered view before layouts apply."""
        return html

    async def resolve_engine(self) -> Optional[TemplateEngine]:
        return await maybe_await(self.engine)

    # ========================================================================
    # Data
    # ========================================================================

    async def build_data(self, exchange: HttpExchange) -> Dict[str, Any]:
        """Model data merged with ``config`` and ``assets``."""
        model_config = None
        if self.model is None:
            data = exchange.as_context()
        else:
            model = self.model(exchange)
            result = await maybe_await(model.get_data())
            if isinstance(result, Model):
                data = result.to_dict()
                model_config = result.config
            elif isinstance(result, Mapping):
                data = dict(result)
            else:
                data = {"data": result}
            model_config = model_config or model.config

        environment = self.resources.environment
        file_config = await self._cached("config", self.resources.config_file, read_route_config)
        config = merge_config(file_config, environment, model_config)
        files = await self._cached(
            f"assets:{environment.mode}",
            self.resources.assets_dir,
            lambda directory: list_asset_files(directory, environment),
        )
        data["config"] = config
        data["assets"] = build_assets(config, files, self.resources.root, self.resources.assets_prefix)
        return data

    async def _cached(self, kind: str, path: Optional[Path], reader) -> Any:
        if path is None:
            return reader(None)
        engine = await self.resolve_engine()

        async def factory():
            return await asyncio.to_thread(reader, path)

        if engine is None:
            return await factory()
        return await engine.cache.get_or_compute(f"{kind}:{Path(path).resolve()}", factory)

    # ========================================================================
    # Rendering
    # ========================================================================

    async def render(self, exchange: HttpExchange) -> str:
        try:
            data = await self.build_data(exchange)
        except Exception as e:
            logger.error(f"{type(self).__name__} could not build view data: {e}", exc_info=True)
            data = exchange.as_context()
        return await self._parse_template(exchange, data)

    async def _parse_template(self, exchange: HttpExchange, data: Mapping[str, Any]) -> str:
        try:
            engine = await self.resolve_engine()
            if engine is None:
                raise RuntimeError(f"{type(self).__name__} has no template engine")
            view = await engine.compile(self.view_file)
            html = view.render(data)
            html = await maybe_await(self.view_parser(exchange, html))
            return engine.wrap(view, html, data)
        except Exception as e:
            logger.error(f"{type(self).__name__} failed to render {self.view_file}: {e}", exc_info=True)
            return str(e)

    async def send(self, exchange: HttpExchange) -> None:
        html = await self.render(exchange)
        exchange.response.status(200)
        exchange.response.send(html)

    async def send_model(self, exchange: HttpExchange) -> None:
        """Respond with the view data as JSON."""
        try:
            data = await self.build_data(exchange)
        except Exception as e:
            logger.error(f"{type(self).__name__} could not build view data: {e}", exc_info=True)
            await self.internal_server_error(exchange)
            return
        data.pop("exchange", None)
        data.pop("request", None)
        exchange.response.status(200)
        exchange.response.json(data)
