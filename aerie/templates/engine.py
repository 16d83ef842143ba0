"""
Template Engine - Jinja2 view compilation with layout inheritance.

Provides:
- CompiledView / Layout: a compiled template plus its parent layout name
  and the partials it references
- TemplateEngine: compiles views through the shared TemplateCache, loads
  layouts and partials from directories, and wraps rendered views in
  their layout chain
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from jinja2 import Environment, Template, TemplateSyntaxError, select_autoescape
from markupsafe import Markup

from ..cache import TemplateCache
from ..faults import LayoutCycleFault, LayoutNotFoundFault
from .helpers import BUILTIN_PARTIALS, DEFAULT_HELPERS
from .loader import PartialLoader, PartialRegistry, iter_template_files, template_name
from .markup import extract_layout, extract_partial_names, preprocess

logger = logging.getLogger("aerie.templates.engine")

EMPTY_VIEW_KEY = "<empty>"


@dataclass(frozen=True)
class CompiledView:
    """A compiled template with the metadata extracted from its source."""

    template: Template
    layout: Optional[str] = None
    partials: Tuple[str, ...] = ()
    path: Optional[str] = None

    def render(self, data: Optional[Mapping[str, Any]] = None) -> str:
        return self.template.render(dict(data or {}))


@dataclass(frozen=True)
class Layout(CompiledView):
    """A compiled layout, indexed by ``name`` in the engine."""

    name: str = ""


def _read_source(path: Optional[str]) -> str:
    if not path or not os.path.isfile(path):
        return ""
    with open(path, encoding="utf-8") as fh:
        return fh.read()


class TemplateEngine:
    """
    Jinja2 environment plus the layouts of one binding.

    The cache and partial registry are injected so that every binding of
    an Application shares them; layouts belong to the engine.

    Args:
        cache: Shared cache of compiled views, keyed by absolute path
        partials: Shared partial registry
        helpers: Extra Jinja2 globals added after the default helpers
        autoescape: Enable HTML autoescaping

    Example:
        engine = TemplateEngine(cache=TemplateCache(), partials=PartialRegistry())
        await engine.load_partials([root / "partials"])
        await engine.load_layouts([root / "layouts"])
        view = await engine.compile(str(root / "homeView.html"))
        html = engine.wrap(view, view.render(data), data)
    """

    def __init__(
        self,
        *,
        cache: TemplateCache,
        partials: PartialRegistry,
        helpers: Optional[Mapping[str, Callable]] = None,
        autoescape: bool = True,
    ):
        self.cache = cache
        self.partials = partials
        self.layouts: Dict[str, Layout] = {}

        self.env = Environment(
            loader=PartialLoader(partials),
            autoescape=select_autoescape(default_for_string=True, default=True) if autoescape else False,
            keep_trailing_newline=True,
        )
        self.env.globals.update(DEFAULT_HELPERS)
        if helpers:
            self.env.globals.update(helpers)

        for name, source in BUILTIN_PARTIALS.items():
            partials.setdefault(name, source)

    # ========================================================================
    # Compilation
    # ========================================================================

    def compile_source(self, source: str, path: Optional[str] = None) -> CompiledView:
        """Compile raw view source; no caching."""
        return CompiledView(
            template=self.env.from_string(preprocess(source)),
            layout=extract_layout(source),
            partials=tuple(extract_partial_names(source)),
            path=path,
        )

    async def compile(self, view_path: Optional[str]) -> CompiledView:
        """
        Compile a view file through the cache.

        A missing path or file compiles as empty source.
        """
        key = os.path.abspath(view_path) if view_path else EMPTY_VIEW_KEY

        async def factory() -> CompiledView:
            source = await asyncio.to_thread(_read_source, view_path)
            return self.compile_source(source, key)

        return await self.cache.get_or_compute(key, factory)

    # ========================================================================
    # Layouts & Partials
    # ========================================================================

    def _load_layouts_sync(self, directories: Iterable[Path]) -> Dict[str, Layout]:
        loaded: Dict[str, Layout] = {}
        for directory in directories:
            directory = Path(directory)
            for path in iter_template_files(directory):
                source = path.read_text(encoding="utf-8")
                name = template_name(directory, path)
                try:
                    template = self.env.from_string(preprocess(source))
                except TemplateSyntaxError as e:
                    logger.error(f"Skipping layout {path}: {e}")
                    continue
                loaded[name] = Layout(
                    template=template,
                    layout=extract_layout(source),
                    partials=tuple(extract_partial_names(source)),
                    path=str(path),
                    name=name,
                )
        return loaded

    async def load_layouts(self, directories: Iterable[Path]) -> Dict[str, Layout]:
        """
        Compile every template under ``directories`` as a layout.

        Layouts are named by their path relative to the directory they were
        found in, extension stripped (``layouts/admin/base.html`` -> ``admin/base``).
        A layout that does not compile is logged and skipped, so views naming
        it fail with ``LayoutNotFoundFault``.
        """
        loaded = await asyncio.to_thread(self._load_layouts_sync, list(directories))
        self.layouts.update(loaded)
        if loaded:
            logger.debug(f"Loaded layouts: {', '.join(sorted(loaded))}")
        return loaded

    async def load_partials(self, directories: Iterable[Path]) -> None:
        """Register every template under ``directories`` as a partial."""
        await asyncio.to_thread(self.partials.load_directories, list(directories))

    def register_partial(self, name: str, source: str) -> None:
        self.partials.register(name, source)

    # ========================================================================
    # Layout chain
    # ========================================================================

    def layout_chain(self, first: Optional[str]) -> List[Layout]:
        """
        Layouts to apply, innermost first, starting at ``first``.

        Raises:
            LayoutNotFoundFault: A layout in the chain is not loaded
            LayoutCycleFault: The chain loops back on itself
        """
        chain: List[Layout] = []
        visited: List[str] = []
        current = first
        while current:
            if current in visited:
                raise LayoutCycleFault(visited + [current])
            visited.append(current)
            layout = self.layouts.get(current)
            if layout is None:
                raise LayoutNotFoundFault(current, chain=visited)
            chain.append(layout)
            current = layout.layout
        return chain

    def wrap(self, view: CompiledView, html: str, data: Optional[Mapping[str, Any]] = None) -> str:
        """
        Render ``html`` through the layout chain of ``view``.

        Each layout receives the previous stage's output as both ``content``
        and ``body`` alongside the view data.
        """
        base = dict(data or {})
        for layout in self.layout_chain(view.layout):
            markup = Markup(html)
            html = layout.render({**base, "content": markup, "body": markup})
        return html

    async def render(self, view_path: Optional[str], data: Optional[Mapping[str, Any]] = None) -> str:
        """Compile, render and wrap a view in one call."""
        view = await self.compile(view_path)
        return self.wrap(view, view.render(data), data)
