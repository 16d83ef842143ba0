"""
HttpExchange - the per-request unit of context.

Provides:
- ResponseSink: buffered response writer with status/header/body setters
- HttpExchange: request + response sink + ``next`` continuation

An exchange is created by the ASGI entry point for every HTTP request,
passed by reference through routers, middleware and handlers, and
discarded once the buffered response has been written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from .request import Request
from .response import Response, dump_json

logger = logging.getLogger("aerie.exchange")

NextCallable = Callable[[], Awaitable[None]]


async def _end_of_chain() -> None:
    return None


class ResponseSink:
    """
    Outbound half of an exchange.

    Handlers set status and headers, then write the body exactly once
    through ``send``, ``json`` or ``end``. Once a non-200 status has been
    set, a later ``status(200)`` is ignored so a success path cannot
    overwrite a failure that was already decided.
    """

    def __init__(self):
        self.status_code: int = 200
        self.headers: Dict[str, str] = {}
        self.body: bytes = b""
        self.finished: bool = False
        self._status_set = False

    def status(self, code: int) -> "ResponseSink":
        if code == 200 and self._status_set and self.status_code != 200:
            logger.debug(f"Ignoring status 200, response already marked {self.status_code}")
            return self
        self.status_code = code
        self._status_set = True
        return self

    def set_header(self, name: str, value: Any) -> "ResponseSink":
        self.headers[name.lower()] = str(value)
        return self

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def send(self, content: Any = b"") -> None:
        """
        Write the body.

        ``str`` is sent as HTML unless a content-type was set already,
        dict/list as JSON, ``bytes`` as-is.
        """
        if isinstance(content, (dict, list)):
            self.json(content)
            return
        if isinstance(content, str):
            self.headers.setdefault("content-type", "text/html; charset=utf-8")
            self._finish(content.encode("utf-8"))
            return
        if content is None:
            content = b""
        if isinstance(content, bytes):
            self.headers.setdefault("content-type", "application/octet-stream")
            self._finish(content)
            return
        self.headers.setdefault("content-type", "text/plain; charset=utf-8")
        self._finish(str(content).encode("utf-8"))

    def json(self, obj: Any) -> None:
        self.headers["content-type"] = "application/json; charset=utf-8"
        self._finish(dump_json(obj))

    def end(self, content: Any = b"") -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._finish(content or b"")

    def _finish(self, body: bytes) -> None:
        if self.finished:
            logger.warning("Response already sent, ignoring additional body")
            return
        self.body = body
        self.finished = True

    def to_response(self) -> Response:
        media_type = self.headers.get("content-type")
        return Response(
            content=self.body,
            status=self.status_code,
            headers=self.headers,
            media_type=media_type,
        )

    def __repr__(self) -> str:
        return f"ResponseSink(status={self.status_code}, finished={self.finished})"


@dataclass
class HttpExchange:
    """
    Request, response sink and the continuation to the next layer.

    ``next`` is rebound by the router before each layer runs; calling it
    hands the exchange to the following matching layer.
    """

    request: Request
    response: ResponseSink = field(default_factory=ResponseSink)
    next: NextCallable = _end_of_chain
    app: Any = None

    def as_context(self) -> Dict[str, Any]:
        """Template data used when no Model is configured."""
        request = self.request
        return {
            "exchange": self,
            "request": request,
            "params": request.params,
            "query": request.query,
            "hostname": request.hostname,
            "path": request.path,
        }
