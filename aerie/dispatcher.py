"""
Request dispatcher - the per-handler dispatch pipeline.

Every handler (Controller or ResourceApi) runs requests through the same
ordered stages:

    precheck -> auth -> method auth -> argument extraction -> invoke

Each stage either lets the request continue or writes a response and
stops. ``handle()`` never raises: a handler exception, from any verb,
becomes a 500.

Error responses are produced from the ``ErrorKind`` catalog; one helper
method per catalog entry (``not_found_error``, ``wrong_accept_error``,
...) is generated on ``RequestDispatcher`` from the table.
"""

from __future__ import annotations

import inspect
import logging
import re
from dataclasses import dataclass, field
from string import ascii_lowercase
from typing import (
    Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol,
    Sequence, Tuple, runtime_checkable,
)

from .errors import ErrorKind, error_payload
from .exchange import HttpExchange
from .faults import InvalidBody, PayloadTooLarge
from .negotiation import negotiate_error_type
from .utils import maybe_await

logger = logging.getLogger("aerie.dispatcher")

VERBS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")
URL_VERBS = frozenset({"GET", "HEAD", "OPTIONS"})
BODY_VERBS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

PASSTHROUGH_HEADERS = frozenset({"access-control-allow-origin"})

_INT = re.compile(r"^[-+]?\d+$")
_FLOAT = re.compile(r"^[-+]?(?:\d+\.\d*|\.\d+|\d+(?:\.\d*)?[eE][-+]?\d+)$")


# ============================================================================
# Protocol & helpers
# ============================================================================

@runtime_checkable
class RequestHandler(Protocol):
    """Anything the router can hand an exchange to."""

    async def handle(self, exchange: HttpExchange) -> None:
        ...


@dataclass(frozen=True)
class AppInfo:
    """Application metadata sent as ``x-app-*`` headers."""

    name: str = "aerie"
    version: str = "0.0.0"
    description: str = ""


def coerce_param(value: Any) -> Any:
    """``"true"``/``"false"`` to bool, numeric strings to int/float, others unchanged."""
    if not isinstance(value, str):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    if _INT.match(value):
        return int(value)
    if _FLOAT.match(value):
        return float(value)
    return value


def fit_arguments(func: Callable, args: List[Any]) -> List[Any]:
    """Drop trailing positional arguments ``func`` cannot accept."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return args
    capacity = 0
    for parameter in signature.parameters.values():
        if parameter.kind == parameter.VAR_POSITIONAL:
            return args
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD):
            capacity += 1
    # First positional slot is the exchange
    return args[: max(capacity - 1, 0)]


@dataclass
class DispatchCall:
    """State carried between pipeline stages for one request."""

    verb: str
    args: List[Any] = field(default_factory=list)


Stage = Callable[[HttpExchange, DispatchCall], Awaitable[bool]]


# ============================================================================
# RequestDispatcher
# ============================================================================

class RequestDispatcher:
    """
    Base of every discovered handler.

    Subclasses override ``do_<verb>`` methods and any of the hooks below;
    every hook may be a plain method or a coroutine.

    Class attributes:
        headers: Extra response headers, sent prefixed with ``x-``
        path: Explicit route path (also bound under ``/:version`` + path)
        paths: Additional explicit route paths
        path_config: Names projected onto ``request.params`` from positional args
        middleware: Callable or sequence run before dispatch on this route
    """

    headers: Mapping[str, Any] = {}
    path: Optional[str] = None
    paths: Sequence[str] = ()
    path_config: Optional[Sequence[str]] = None
    middleware: Any = None

    def __init__(
        self,
        *,
        context: str = "",
        errors: Any = None,
        app_info: Optional[AppInfo] = None,
    ):
        self.context = context
        self.errors = errors
        self.app_info = app_info or AppInfo()
        self._stages: Tuple[Stage, ...] = (
            self._precheck_stage,
            self._auth_stage,
            self._method_auth_stage,
            self._extract_stage,
            self._invoke_stage,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} context={self.context or '/'!r}>"

    # ------------------------------------------------------------------
    # Overridable hooks
    # ------------------------------------------------------------------

    def is_request_ok(self, exchange: HttpExchange) -> Any:
        return True

    def request_ok(self, exchange: HttpExchange) -> Any:
        return None

    def request_not_ok(self, exchange: HttpExchange) -> Any:
        return self.bad_request_error(exchange)

    def auth(self, exchange: HttpExchange) -> Any:
        return True

    def logged_in(self, exchange: HttpExchange) -> Any:
        return False

    def auth_get(self, exchange: HttpExchange) -> Any:
        return True

    def auth_post(self, exchange: HttpExchange) -> Any:
        return True

    def auth_put(self, exchange: HttpExchange) -> Any:
        return True

    def auth_patch(self, exchange: HttpExchange) -> Any:
        return True

    def auth_delete(self, exchange: HttpExchange) -> Any:
        return True

    def auth_head(self, exchange: HttpExchange) -> Any:
        return True

    def auth_options(self, exchange: HttpExchange) -> Any:
        return True

    # ------------------------------------------------------------------
    # Verb handlers
    # ------------------------------------------------------------------

    def do_get(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.method_not_allowed_error(exchange)

    def do_post(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.method_not_allowed_error(exchange)

    def do_put(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.method_not_allowed_error(exchange)

    def do_patch(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.method_not_allowed_error(exchange)

    def do_delete(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.method_not_allowed_error(exchange)

    def do_options(self, exchange: HttpExchange, *args: Any) -> Any:
        return self.method_not_allowed_error(exchange)

    def do_head(self, exchange: HttpExchange, *args: Any) -> Any:
        exchange.response.status(200)
        exchange.response.end()

    async def on_result(self, exchange: HttpExchange, result: Any) -> None:
        """Called with the verb handler's return value; no-op by default."""
        return None

    def _verb_table(self) -> Dict[str, Tuple[Callable, Callable]]:
        return {
            "GET": (self.auth_get, self.do_get),
            "POST": (self.auth_post, self.do_post),
            "PUT": (self.auth_put, self.do_put),
            "PATCH": (self.auth_patch, self.do_patch),
            "DELETE": (self.auth_delete, self.do_delete),
            "HEAD": (self.auth_head, self.do_head),
            "OPTIONS": (self.auth_options, self.do_options),
        }

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def handle(self, exchange: HttpExchange) -> None:
        """Run the dispatch pipeline; always leaves a response on the exchange."""
        method = exchange.request.method
        call = DispatchCall(verb=method if method in VERBS else "GET")
        exchange.request.state["app_info"] = self.app_info
        try:
            for stage in self._stages:
                if not await stage(exchange, call):
                    return
        except Exception as e:
            logger.error(f"{type(self).__name__} failed on {method} {exchange.request.path}: {e}", exc_info=True)
            if not exchange.response.finished:
                await self.internal_server_error(exchange)

    async def _precheck_stage(self, exchange: HttpExchange, call: DispatchCall) -> bool:
        if not await maybe_await(self.is_request_ok(exchange)):
            await self._settle(self.request_not_ok(exchange))
            return False
        await maybe_await(self.request_ok(exchange))
        return True

    async def _auth_stage(self, exchange: HttpExchange, call: DispatchCall) -> bool:
        if await maybe_await(self.auth(exchange)):
            return True
        if await maybe_await(self.logged_in(exchange)):
            await self.forbidden_error(exchange)
        else:
            await self.unauthorized_error(exchange)
        return False

    async def _method_auth_stage(self, exchange: HttpExchange, call: DispatchCall) -> bool:
        authorize, _ = self._verb_table()[call.verb]
        if await maybe_await(authorize(exchange)):
            return True
        await self.forbidden_error(exchange)
        return False

    async def _extract_stage(self, exchange: HttpExchange, call: DispatchCall) -> bool:
        request = exchange.request
        if call.verb in BODY_VERBS:
            if request.is_multipart():
                call.args = []
                return True
            try:
                call.args = [await request.parsed_body()]
                return True
            except InvalidBody:
                logger.debug(f"No usable body on {call.verb} {request.path}, reading arguments from the URL")
            except PayloadTooLarge:
                await self.payload_too_large_error(exchange)
                return False
        call.args = self.url_arguments(exchange)
        return True

    async def _invoke_stage(self, exchange: HttpExchange, call: DispatchCall) -> bool:
        _, handler = self._verb_table()[call.verb]
        try:
            result = await self._settle(handler(exchange, *fit_arguments(handler, call.args)))
        except Exception as e:
            logger.error(
                f"{type(self).__name__}.{handler.__name__} raised: {e}",
                exc_info=True,
            )
            if not exchange.response.finished:
                await self.internal_server_error(exchange)
            return False
        await self.on_result(exchange, result)
        return True

    @staticmethod
    async def _settle(value: Any) -> Any:
        """Await until the value is no longer awaitable (handlers may return helper coroutines)."""
        while inspect.isawaitable(value):
            value = await value
        return value

    # ------------------------------------------------------------------
    # Arguments
    # ------------------------------------------------------------------

    def url_arguments(self, exchange: HttpExchange) -> List[Any]:
        """
        Arguments taken from the URL.

        A literal ``?`` in the URL makes the parsed query the sole argument.
        Otherwise route params ``a``..``z`` are collected, in order, up to the
        first missing one, and coerced with ``coerce_param``.
        """
        request = exchange.request
        if request.has_query:
            return [request.query]

        args: List[Any] = []
        for letter in ascii_lowercase:
            value = request.params.get(letter)
            if value is None:
                break
            args.append(coerce_param(value))

        if self.path_config:
            for name, value in zip(self.path_config, args):
                request.params[name] = value
        return args

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def decorate(self, exchange: HttpExchange) -> None:
        """Attach version and application headers to the response."""
        response = exchange.response
        response.set_header("x-version-requested", exchange.request.params.get("version") or "latest")
        metadata = {
            "app-name": self.app_info.name,
            "app-version": self.app_info.version,
            "app-description": self.app_info.description,
        }
        metadata.update(self.headers or {})
        for name, value in metadata.items():
            if value is None:
                continue
            key = name.lower()
            if key in PASSTHROUGH_HEADERS:
                response.set_header(key, value)
            else:
                response.set_header(f"x-{key}", value)

    async def error_templates(self) -> Optional[Mapping[str, Any]]:
        if self.errors is None:
            return None
        return await maybe_await(self.errors)

    async def send_error(self, exchange: HttpExchange, kind: ErrorKind, message: Any = None) -> None:
        """
        Respond with an error from the catalog.

        HTML/plain-text preferring clients get the ``<status>`` (or generic
        ``error``) template when one is loaded; everyone else gets JSON.
        """
        response = exchange.response
        if response.finished:
            logger.warning(f"Response already sent, dropping {kind.status} {kind.phrase}")
            return

        response.status(kind.status)
        self.decorate(exchange)

        templates = await self.error_templates()
        media_type = negotiate_error_type(exchange.request.header("accept"))
        if templates and media_type != "application/json":
            template = templates.get(str(kind.status)) or templates.get("error")
            if template is not None:
                text = template.render({
                    "status": kind.status,
                    "error": kind.phrase,
                    "message": message if message is not None else kind.phrase,
                })
                response.set_header("content-type", f"{media_type}; charset=utf-8")
                response.send(text)
                return

        if isinstance(message, (Mapping, list)):
            response.json(message)
        else:
            response.json(error_payload(kind))


def _make_error_helper(kind: ErrorKind):
    async def helper(self: RequestDispatcher, exchange: HttpExchange, message: Any = None) -> None:
        await self.send_error(exchange, kind, message)

    helper.__name__ = kind.method_name
    helper.__qualname__ = f"RequestDispatcher.{kind.method_name}"
    helper.__doc__ = f"Respond {kind.status} {kind.phrase}."
    return helper


for _kind in ErrorKind:
    setattr(RequestDispatcher, _kind.method_name, _make_error_helper(_kind))
