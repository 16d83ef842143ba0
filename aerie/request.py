"""
Request - ASGI request wrapper.

Provides:
- Typed, async request object wrapping ASGI scope/receive
- Body reading with idempotent caching and a size limit
- Query, header, JSON and urlencoded form parsing
- Positional route params and per-request state
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from ._datastructures import Headers, MultiDict, ParsedContentType
from .faults import InvalidBody, PayloadTooLarge

FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
JSON_MEDIA_TYPES = ("application/json", "application/x-json", "text/json")


class Request:
    """
    Request object handed to handlers through the exchange.

    ``params`` holds the route parameters captured by the router for the
    layer currently handling the request; handlers may add named entries
    (see ``path_config`` on handlers).
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 10_485_760,  # 10 MiB
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size

        self.params: Dict[str, Any] = {}
        self.state: Dict[str, Any] = {}

        self._body: Optional[bytes] = None
        self._query_params: Optional[MultiDict] = None
        self._headers: Optional[Headers] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self.scope.get("method", "GET").upper()

    @property
    def path(self) -> str:
        """Request path (decoded)."""
        return self.scope.get("path", "/")

    @property
    def raw_path(self) -> str:
        """Request path as sent on the wire (percent-encoding kept, no query)."""
        raw = self.scope.get("raw_path")
        if raw is None:
            return self.path
        return raw.split(b"?", 1)[0].decode("latin-1")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def original_url(self) -> str:
        """Raw path plus the query string, ``?`` included whenever one was sent."""
        raw = self.scope.get("raw_path")
        if raw is not None and b"?" in raw:
            return raw.decode("latin-1")
        query = self.query_string
        if query:
            return f"{self.raw_path}?{query}"
        return self.raw_path

    @property
    def has_query(self) -> bool:
        """True when the URL carried a literal ``?``."""
        return "?" in self.original_url

    @property
    def hostname(self) -> str:
        """Host header without the port."""
        host = self.header("host")
        if not host:
            server = self.scope.get("server")
            return server[0] if server else ""
        if host.startswith("["):
            return host.split("]", 1)[0] + "]"
        return host.rsplit(":", 1)[0] if ":" in host else host

    # ========================================================================
    # Query Parameters & Headers
    # ========================================================================

    @property
    def query_params(self) -> MultiDict:
        """Get parsed query parameters as MultiDict."""
        if self._query_params is None:
            self._query_params = MultiDict(parse_qsl(self.query_string, keep_blank_values=True))
        return self._query_params

    @property
    def query(self) -> Dict[str, Any]:
        """Query mapping with repeated keys collapsed into lists."""
        return {
            key: values[0] if len(values) == 1 else list(values)
            for key, values in self.query_params.to_dict(multi=True).items()
        }

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = Headers(raw=list(self.scope.get("headers", [])))
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name, default)

    def content_type(self) -> Optional[ParsedContentType]:
        return ParsedContentType.parse(self.header("content-type"))

    def is_multipart(self) -> bool:
        parsed = self.content_type()
        return bool(parsed and parsed.is_multipart)

    # ========================================================================
    # Body Reading
    # ========================================================================

    async def body(self) -> bytes:
        """
        Read full request body (idempotent).

        Raises:
            PayloadTooLarge: If body exceeds max_body_size
        """
        if self._body is not None:
            return self._body

        chunks = []
        total_size = 0
        while True:
            message = await self._receive()
            if message["type"] != "http.request":
                break
            chunk = message.get("body", b"")
            if chunk:
                total_size += len(chunk)
                if total_size > self.max_body_size:
                    raise PayloadTooLarge(metadata={"max_allowed": self.max_body_size, "actual": total_size})
                chunks.append(chunk)
            if not message.get("more_body", False):
                break

        self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        """
        Parse request body as JSON.

        Raises:
            InvalidBody: If the body is empty or not valid JSON
        """
        body_bytes = await self.body()
        if not body_bytes.strip():
            raise InvalidBody(message="Request body is empty")
        try:
            return stdlib_json.loads(body_bytes.decode("utf-8"))
        except (UnicodeDecodeError, stdlib_json.JSONDecodeError) as e:
            raise InvalidBody(message=f"Invalid JSON: {e}")

    async def form(self) -> Dict[str, Any]:
        """
        Parse an urlencoded form body.

        Raises:
            InvalidBody: If the body is empty
        """
        body_bytes = await self.body()
        if not body_bytes.strip():
            raise InvalidBody(message="Request body is empty")
        parsed = self.content_type()
        charset = parsed.charset if parsed else "utf-8"
        fields = MultiDict(parse_qsl(body_bytes.decode(charset), keep_blank_values=True))
        return {
            key: values[0] if len(values) == 1 else list(values)
            for key, values in fields.to_dict(multi=True).items()
        }

    async def parsed_body(self) -> Any:
        """
        Parse the body according to its Content-Type.

        Form bodies are decoded as urlencoded fields; anything else is
        treated as JSON.
        """
        parsed = self.content_type()
        if parsed and parsed.media_type == FORM_MEDIA_TYPE:
            return await self.form()
        return await self.json()

    def __repr__(self) -> str:
        return f"Request({self.method} {self.original_url})"
