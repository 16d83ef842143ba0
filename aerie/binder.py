"""
MVC binding - discovered handlers turned into routes.

One ``MvcBinding`` per ``Application.bind_mvc`` call. It owns a sub-router
that is mounted on the application router, plus the binding's template
engine (its own layouts; the cache and partial registry are shared with
every other binding of the application).

Route order inside a binding:

    1. binding middleware (``MvcConfig.middleware``)
    2. statics prefix, other statics, vendor directory (each + scoped 404)
    3. handlers, deepest context first, apis before controllers
    4. optional catch-all 404
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from string import ascii_lowercase
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .api import ResourceApi
from .cache import TemplateCache
from .config import MvcConfig
from .controller import Controller, RouteResources
from .discovery import (
    HandlerDescriptor, discover, load_handler_class, load_model_class,
)
from .dispatcher import AppInfo, RequestDispatcher
from .errors import ErrorKind, error_payload
from .exchange import HttpExchange
from .faults import DiscoveryFault
from .model import Model
from .negotiation import load_error_templates
from .routing import Router
from .static import StaticFiles
from .templates.engine import TemplateEngine
from .templates.loader import PartialRegistry
from .utils import Deferred, join_paths, maybe_await

logger = logging.getLogger("aerie.binder")

VENDOR_PREFIX = "/__/vendor"
OTHER_STATICS_PREFIX = "/__"


def default_pattern(context: str) -> str:
    """``<context>/:a?/:b?/.../:z?``"""
    return context + "".join(f"/:{letter}?" for letter in ascii_lowercase)


def build_patterns(handler_cls: type, context: str) -> Tuple[str, ...]:
    """
    Patterns a handler is bound under.

    Explicit ``paths``, ``path`` and its ``/:version`` mirror come first,
    longest first; the default positional pattern of the context is last.
    """
    patterns: List[str] = list(getattr(handler_cls, "paths", None) or ())
    path = getattr(handler_cls, "path", None)
    if path:
        patterns.append(join_paths(path))
        patterns.append(join_paths("/:version", path))
    fallback = default_pattern(context)
    explicit = [p for p in dict.fromkeys(patterns) if p != fallback]
    return (*sorted(explicit, key=len, reverse=True), fallback)


def _as_tuple(middleware: Any) -> Tuple[Any, ...]:
    if not middleware:
        return ()
    if callable(middleware):
        return (middleware,)
    return tuple(middleware)


@dataclass(frozen=True)
class RouteEntry:
    """A handler ready to be registered on a router."""

    context: str
    patterns: Tuple[str, ...]
    middleware: Tuple[Any, ...]
    handler: RequestDispatcher

    @property
    def depth(self) -> int:
        return self.context.count("/")

    @property
    def is_api(self) -> bool:
        return isinstance(self.handler, ResourceApi)


def sort_entries(entries: Sequence[RouteEntry]) -> List[RouteEntry]:
    """Deeper contexts first so a shallower catch-all cannot shadow them; apis win ties."""
    return sorted(entries, key=lambda e: (-e.depth, 0 if e.is_api else 1, e.context))


def _instantiate(descriptor: HandlerDescriptor, cls: type, **kwargs: Any) -> Any:
    try:
        return cls(**kwargs)
    except Exception as e:
        raise DiscoveryFault(str(descriptor.path), f"{type(e).__name__}: {e}") from e


async def not_found(exchange: HttpExchange) -> None:
    """Terminal layer answering 404 JSON."""
    response = exchange.response
    if response.finished:
        return
    response.status(404)
    response.json(error_payload(ErrorKind.NOT_FOUND))


class MvcBinding:
    """
    Discovery, handler construction and route registration for one directory.

    Args:
        config: Options of the binding
        cache: Application-wide template cache
        partials: Application-wide partial registry
    """

    def __init__(self, config: MvcConfig, *, cache: TemplateCache, partials: PartialRegistry):
        self.config = config
        self.root = config.root
        self.environment = config.environment
        self.app_info = AppInfo(config.name, config.version, config.description)
        self.engine = TemplateEngine(cache=cache, partials=partials, helpers=config.helpers)
        self.router = Router(name=f"mvc:{self.root}")
        self.entries: List[RouteEntry] = []
        self.controllers: Dict[str, Controller] = {}
        self.apis: Dict[str, ResourceApi] = {}
        self._filter = self._compile_filter(config.filter)

        self._engine_ready = Deferred(self._prepare_engine)
        self._errors = Deferred(self._load_errors)
        self._bound = Deferred(self._bind)

    def __repr__(self) -> str:
        return f"<MvcBinding {self.root} controllers={len(self.controllers)} apis={len(self.apis)}>"

    # ========================================================================
    # Readiness
    # ========================================================================

    def start(self) -> None:
        """Begin discovery in the background."""
        self._bound.start()

    async def ready(self) -> "MvcBinding":
        await self._bound
        return self

    @property
    def is_ready(self) -> bool:
        return self._bound.done

    def _directories(self, name: str, extra: Sequence[str]) -> List[Path]:
        return [self.root / name, *(Path(d) for d in extra)]

    async def _prepare_engine(self) -> TemplateEngine:
        await self.engine.load_partials(self._directories(self.config.partials_dir, self.config.extra_partials))
        await self.engine.load_layouts(self._directories(self.config.layouts_dir, self.config.extra_layouts))
        return self.engine

    async def _load_errors(self):
        engine = await self._engine_ready
        return await load_error_templates(engine, [self.root / self.config.errors_dir])

    # ========================================================================
    # Discovery
    # ========================================================================

    async def _bind(self) -> None:
        if not self.root.is_dir():
            raise DiscoveryFault(str(self.root), "directory does not exist")

        descriptors = await asyncio.to_thread(discover, self.root)
        entries: List[RouteEntry] = []
        for descriptor in descriptors:
            try:
                handler = self.build_handler(descriptor)
            except DiscoveryFault as e:
                logger.error(f"Skipping {descriptor.path}: {e.message}")
                continue
            entries.append(RouteEntry(
                context=descriptor.context,
                patterns=build_patterns(type(handler), descriptor.context),
                middleware=_as_tuple(getattr(handler, "middleware", None)),
                handler=handler,
            ))

        self.entries = sort_entries(entries)
        self._register()
        await self._engine_ready
        await self._errors
        logger.info(
            f"Bound {self.root}: {len(self.controllers)} controllers, {len(self.apis)} apis"
        )

    def build_handler(self, descriptor: HandlerDescriptor) -> RequestDispatcher:
        """
        Import and instantiate the handler described by ``descriptor``.

        Raises:
            DiscoveryFault: The handler file cannot be loaded or its class
                cannot be constructed
        """
        if not descriptor.is_controller:
            cls = load_handler_class(descriptor, ResourceApi)
            api = _instantiate(descriptor, cls, context=descriptor.context, errors=None, app_info=self.app_info)
            self.apis[cls.__name__] = api
            return api

        cls = load_handler_class(descriptor, Controller)
        try:
            model = load_model_class(descriptor, Model)
        except DiscoveryFault as e:
            logger.warning(f"Ignoring model of {cls.__name__}: {e.message}")
            model = None

        view_file: Optional[str] = None
        if model is None:
            logger.warning(f"{cls.__name__} has no model, it will render without model and view")
        else:
            view_file = str(descriptor.view_file)

        resources = RouteResources(
            root=self.root,
            config_file=descriptor.config_file if descriptor.config_file.is_file() else None,
            assets_dir=descriptor.assets_dir if descriptor.assets_dir.is_dir() else None,
            assets_prefix=self.config.statics or "/",
            environment=self.environment,
        )
        controller = _instantiate(
            descriptor,
            cls,
            view_file=view_file,
            model=model,
            model_name=descriptor.model_name if model else None,
            engine=self._engine_ready,
            errors=self._errors,
            resources=resources,
            context=descriptor.context,
            app_info=self.app_info,
        )
        self.controllers[cls.__name__] = controller
        return controller

    # ========================================================================
    # Routes
    # ========================================================================

    def _register(self) -> None:
        router = self.router
        for middleware in self.config.middleware:
            router.use(middleware)

        self._register_statics()

        for entry in self.entries:
            if isinstance(entry.handler, Controller) and self.config.model_json:
                router.route(
                    [join_paths(entry.context, "model.json")],
                    *entry.middleware,
                    entry.handler.send_model,
                    methods=["GET"],
                )
            router.route(entry.patterns, *entry.middleware, entry.handler.handle)
            logger.debug(f"Bound {type(entry.handler).__name__} to {entry.context or '/'}")

        if self.config.not_found:
            router.use(not_found)

    def _register_statics(self) -> None:
        router = self.router
        if self.config.statics:
            prefix = join_paths(self.config.statics)
            router.use(prefix, StaticFiles(self.root, prefix), not_found)

        for directory in self.config.other_statics:
            path = Path(directory)
            if not path.is_absolute():
                path = self.root / path
            prefix = join_paths(OTHER_STATICS_PREFIX, Path(directory).as_posix())
            router.use(prefix, StaticFiles(path, prefix), not_found)

        if self.config.vendor_dir:
            router.use(VENDOR_PREFIX, StaticFiles(self.root / self.config.vendor_dir, VENDOR_PREFIX), not_found)

    # ========================================================================
    # Filter & dispatch
    # ========================================================================

    @staticmethod
    def _compile_filter(value: Any):
        if value is None or callable(value):
            return value
        if isinstance(value, str):
            value = re.compile(value, re.IGNORECASE)
        return value

    async def matches(self, exchange: HttpExchange) -> bool:
        if self._filter is None:
            return True
        if isinstance(self._filter, re.Pattern):
            return bool(self._filter.search(exchange.request.hostname or ""))
        return bool(await maybe_await(self._filter(exchange)))

    async def __call__(self, exchange: HttpExchange) -> None:
        outer_next = exchange.next
        if not await self.matches(exchange):
            await outer_next()
            return
        await self.ready()
        exchange.request.max_body_size = self.config.max_body_size
        await self.router.handle(exchange, done=outer_next)

    def describe(self) -> List[Tuple[str, str, str]]:
        """(kind, context, class name) rows in match order."""
        return [
            ("api" if entry.is_api else "controller", entry.context or "/", type(entry.handler).__name__)
            for entry in self.entries
        ]
