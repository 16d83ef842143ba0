"""
Application - ASGI entry point hosting one or more MVC bindings.

Bindings share one listener, one template cache and one partial
registry. Each binding may be scoped by a ``filter`` so several
sub-applications answer on the same port for different hostnames.

Example:
    app = Application()
    app.bind_mvc("./site")
    app.bind_mvc("./admin", filter=r"^admin\\.")

    # uvicorn module:app, or
    app.listen(port=3000)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .api import ResourceApi
from .binder import MvcBinding
from .cache import TemplateCache
from .config import ConfigLoader, Environment, MvcConfig
from .controller import Controller
from .errors import ErrorKind, error_payload
from .exchange import HttpExchange
from .request import Request
from .response import Response
from .routing import Router
from .templates.loader import PartialRegistry

logger = logging.getLogger("aerie.application")


class Application:
    """
    ASGI application.

    Args:
        directory: Bind this directory right away (shortcut for ``bind_mvc``)
        mode: ``development`` or ``production``; read from ``AERIE_ENV`` when None
        cache_ttl: Template cache TTL; taken from ``config`` (or the mode) when None
        config: Base options every ``bind_mvc`` call starts from
        **options: Options of the initial binding
    """

    def __init__(
        self,
        directory: Optional[str] = None,
        *,
        mode: Optional[str] = None,
        cache_ttl: Optional[float] = None,
        config: Optional[MvcConfig] = None,
        **options: Any,
    ):
        if mode is not None:
            self.environment = Environment.parse(mode)
        elif config is not None:
            self.environment = config.environment
        else:
            self.environment = Environment.from_env()

        self.base_config = (config or MvcConfig()).with_options(mode=self.environment.mode)
        self.cache = TemplateCache(cache_ttl if cache_ttl is not None else self.base_config.template_ttl)
        self.partials = PartialRegistry()
        self.router = Router(name="application")
        self.bindings: List[MvcBinding] = []
        self._started = False

        if directory is not None:
            self.bind_mvc(directory, **options)

    @classmethod
    def from_loader(cls, loader: ConfigLoader, **overrides: Any) -> "Application":
        """Build an application whose single binding comes from a ConfigLoader."""
        config = loader.mvc_config(**overrides)
        app = cls(config=config)
        app.bind_config(config)
        return app

    def __repr__(self) -> str:
        return f"<Application mode={self.environment.mode} bindings={len(self.bindings)}>"

    # ========================================================================
    # Configuration
    # ========================================================================

    def use(self, *args: Any) -> "Application":
        """Mount application-wide middleware; same signature as ``Router.use``."""
        self.router.use(*args)
        return self

    def bind_mvc(self, directory: str, filter: Any = None, **options: Any) -> MvcBinding:
        """
        Discover and bind the controllers and apis under ``directory``.

        Discovery starts immediately when an event loop is running and
        otherwise on ``ready()``.

        Raises:
            ConfigFault: Unknown option
        """
        config = self.base_config.with_options(directory=str(directory), filter=filter, **options)
        return self.bind_config(config)

    def bind_config(self, config: MvcConfig) -> MvcBinding:
        binding = MvcBinding(config, cache=self.cache, partials=self.partials)
        self.bindings.append(binding)
        self.router.use(binding)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, discovery of {binding.root} waits for ready()")
        else:
            binding.start()
        return binding

    async def ready(self) -> "Application":
        """Wait until every binding finished discovery."""
        if self.bindings:
            await asyncio.gather(*(binding.ready() for binding in self.bindings))
        if not self._started:
            self._started = True
            logger.info(f"Application ready ({self.environment.mode}), {len(self.bindings)} binding(s)")
        return self

    # ========================================================================
    # Lookups
    # ========================================================================

    @property
    def controllers(self) -> List[Controller]:
        return [c for binding in self.bindings for c in binding.controllers.values()]

    @property
    def apis(self) -> List[ResourceApi]:
        return [a for binding in self.bindings for a in binding.apis.values()]

    def get_controller(self, name: str) -> Optional[Controller]:
        """Controller by class name or context (``"MyController"``, ``"/shop"``)."""
        for binding in self.bindings:
            if name in binding.controllers:
                return binding.controllers[name]
            for controller in binding.controllers.values():
                if controller.context == name or (name == "/" and controller.context == ""):
                    return controller
        return None

    def describe(self) -> List[Tuple[str, str, str, str]]:
        """(directory, kind, context, class) rows in match order."""
        return [
            (str(binding.root), *row)
            for binding in self.bindings
            for row in binding.describe()
        ]

    # ========================================================================
    # ASGI
    # ========================================================================

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            logger.warning(f"Unsupported ASGI scope type: {scope_type}")

    async def handle_http(self, scope: dict, receive: Callable, send: Callable) -> None:
        request = Request(scope, receive, max_body_size=self.base_config.max_body_size)
        exchange = HttpExchange(request=request, app=self)

        async def fallthrough() -> None:
            if not exchange.response.finished:
                exchange.response.status(404)
                exchange.response.json(error_payload(ErrorKind.NOT_FOUND))

        try:
            await self.ready()
            await self.router.handle(exchange, done=fallthrough)
        except Exception as e:
            logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
            response = Response.json(error_payload(ErrorKind.INTERNAL_SERVER), status=500)
            await response.send_asgi(send, head=request.method == "HEAD")
            return

        await exchange.response.to_response().send_asgi(send, head=request.method == "HEAD")

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable) -> None:
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.ready()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    logger.error(f"Startup error: {e}", exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                self.cache.invalidate()
                await send({"type": "lifespan.shutdown.complete"})
                break

    # ========================================================================
    # Serving
    # ========================================================================

    async def serve(self, host: str = "127.0.0.1", port: int = 3000, log_level: str = "info") -> None:
        """Wait for discovery, then run uvicorn on the current loop."""
        import uvicorn

        await self.ready()
        config = uvicorn.Config(self, host=host, port=port, log_level=log_level)
        server = uvicorn.Server(config)
        logger.info(f"Listening on http://{host}:{port}")
        await server.serve()

    def listen(self, port: int = 3000, host: str = "127.0.0.1", log_level: str = "info") -> None:
        """Blocking ``serve()``."""
        asyncio.run(self.serve(host=host, port=port, log_level=log_level))

    def cache_stats(self) -> Dict[str, Any]:
        stats = self.cache.stats
        return {"entries": len(self.cache), "hits": stats.hits, "misses": stats.misses}
