"""
Router - ordered layer stack with ``next`` continuations.

Provides:
- compile_pattern(): ``/apis/third/:a?/:b?`` style patterns to regex
- Layer: a handler bound to one or more patterns (full match) or a mount
  prefix (prefix match)
- RouteStack: several handlers sharing one route, chained by ``next``
- Router: walks matching layers in registration order

Handlers receive the exchange; calling ``await exchange.next()`` passes
control to the next matching layer, and the router's ``done``
continuation runs when no layer is left.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import unquote

from .exchange import HttpExchange
from .utils import maybe_await

logger = logging.getLogger("aerie.routing")

Handler = Callable[[HttpExchange], Any]
Done = Callable[[], Awaitable[None]]

_TOKEN = re.compile(r"/:(\w+)(\?)?|/\*|/[^/]*")


# ============================================================================
# Pattern compilation
# ============================================================================

def compile_pattern(pattern: str, *, end: bool = True) -> Tuple[Pattern, List[str]]:
    """
    Compile a route pattern.

    ``/:name`` captures one segment, ``/:name?`` an optional one and ``/*``
    the rest of the path. Matching is case-insensitive and tolerates a
    trailing slash. With ``end=False`` the pattern matches as a prefix on a
    segment boundary.

    Returns:
        (regex, parameter names)
    """
    names: List[str] = []
    parts: List[str] = []
    body = pattern.rstrip("/") if pattern not in ("", "/") else ""
    position = 0
    for match in _TOKEN.finditer(body):
        if match.start() != position:
            break
        position = match.end()
        token = match.group(0)
        if match.group(1):
            name = match.group(1)
            names.append(name)
            segment = f"/(?P<{name}>[^/]+?)"
            parts.append(f"(?:{segment})?" if match.group(2) else segment)
        elif token == "/*":
            parts.append("(?:/.*)?")
        else:
            parts.append(re.escape(token))
    if position != len(body):
        raise ValueError(f"Invalid route pattern: {pattern!r}")

    suffix = "/?$" if end else "(?=/|$)"
    return re.compile("^" + "".join(parts) + suffix, re.IGNORECASE), names


def decode_param(value: str) -> str:
    """Percent-decode a captured segment; ``+`` is kept as-is."""
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


# ============================================================================
# Layers
# ============================================================================

@dataclass
class Layer:
    """A handler bound to path patterns."""

    patterns: Tuple[str, ...]
    handler: Handler
    end: bool = True
    methods: Optional[frozenset] = None
    _compiled: List[Tuple[Pattern, List[str]]] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        self._compiled = [compile_pattern(p, end=self.end) for p in self.patterns]

    def match(self, path: str) -> Optional[Dict[str, str]]:
        for regex, _names in self._compiled:
            found = regex.match(path)
            if found:
                return {
                    name: decode_param(value)
                    for name, value in found.groupdict().items()
                    if value is not None
                }
        return None

    def allows(self, method: str) -> bool:
        if self.methods is None:
            return True
        return method in self.methods or (method == "HEAD" and "GET" in self.methods)


class RouteStack:
    """Handlers run in sequence on one route, each reaching the next through ``exchange.next``."""

    def __init__(self, handlers: Sequence[Handler]):
        self.handlers = list(handlers)

    async def __call__(self, exchange: HttpExchange) -> None:
        outer_next = exchange.next
        index = 0

        async def next_handler() -> None:
            nonlocal index
            if index >= len(self.handlers):
                exchange.next = outer_next
                await outer_next()
                return
            handler = self.handlers[index]
            index += 1
            exchange.next = next_handler
            await maybe_await(handler(exchange))

        await next_handler()


# ============================================================================
# Router
# ============================================================================

class Router:
    """
    Ordered stack of layers.

    A Router is itself a handler, so one can be mounted inside another.
    """

    def __init__(self, name: str = "router"):
        self.name = name
        self.layers: List[Layer] = []

    def use(self, *args: Any) -> "Router":
        """
        Mount middleware.

        ``use(handler)`` runs for every request, ``use("/prefix", handler)``
        only for paths under the prefix.
        """
        if args and isinstance(args[0], str):
            prefix, handlers = args[0], args[1:]
        else:
            prefix, handlers = "", args
        for handler in handlers:
            self.layers.append(Layer(patterns=(prefix,), handler=handler, end=False))
        return self

    def route(self, patterns: Sequence[str], *handlers: Handler, methods: Optional[Sequence[str]] = None) -> "Router":
        """Bind ``handlers`` to full matches of any of ``patterns``."""
        if not handlers:
            raise ValueError("route() needs at least one handler")
        handler = handlers[0] if len(handlers) == 1 else RouteStack(handlers)
        allowed = frozenset(m.upper() for m in methods) if methods else None
        self.layers.append(Layer(patterns=tuple(patterns), handler=handler, methods=allowed))
        return self

    async def handle(self, exchange: HttpExchange, done: Optional[Done] = None) -> None:
        """Run the exchange through every matching layer until one does not call ``next``."""
        request = exchange.request
        path = request.raw_path
        method = request.method
        index = 0

        async def finish() -> None:
            if done is not None:
                await done()

        async def next_layer() -> None:
            nonlocal index
            while index < len(self.layers):
                layer = self.layers[index]
                index += 1
                if not layer.allows(method):
                    continue
                params = layer.match(path)
                if params is None:
                    continue
                request.params = params
                exchange.next = next_layer
                await maybe_await(layer.handler(exchange))
                return
            await finish()

        await next_layer()

    async def __call__(self, exchange: HttpExchange) -> None:
        await self.handle(exchange, exchange.next)

    def describe(self) -> List[Tuple[str, str]]:
        """(pattern, handler repr) pairs in match order."""
        rows = []
        for layer in self.layers:
            for pattern in layer.patterns:
                rows.append((pattern or "/", repr(layer.handler)))
        return rows
