"""
Response - ASGI response builder.

Provides:
- Response with bytes/str/JSON content
- JSON factory for error payloads
- ASGI send with content-length computation
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

logger = logging.getLogger("aerie.response")


def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if isinstance(o, (set, tuple)):
        return list(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if hasattr(o, "to_dict"):
        return o.to_dict()
    return str(o)


def dump_json(obj: Any) -> bytes:
    """Serialize ``obj`` the way every Aerie JSON body is serialized."""
    return json.dumps(obj, default=_json_default_serializer, separators=(",", ":")).encode("utf-8")


class Response:
    """
    HTTP response ready to be written to an ASGI ``send`` callable.

    Content may be bytes, str, or a dict/list (serialized as JSON).
    """

    def __init__(
        self,
        content: Union[bytes, str, Mapping, List, None] = b"",
        status: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        media_type: Optional[str] = None,
        *,
        encoding: str = "utf-8",
    ):
        self.status = status
        self.encoding = encoding
        self._headers: Dict[str, str] = {}
        if headers:
            for key, value in headers.items():
                self._headers[key.lower()] = value

        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers:
            self._headers["content-type"] = self._detect_media_type(content)

        self._content = content

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers

    @property
    def body(self) -> bytes:
        return self._encode_body(self._content)

    def _detect_media_type(self, content: Any) -> str:
        if isinstance(content, (dict, list)):
            return "application/json; charset=utf-8"
        if isinstance(content, str):
            return "text/plain; charset=utf-8"
        return "application/octet-stream"

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def json(cls, obj: Any, status: int = 200, *, headers: Optional[Mapping[str, str]] = None) -> "Response":
        """Create JSON response."""
        return cls(
            content=dump_json(obj),
            status=status,
            headers=headers,
            media_type="application/json; charset=utf-8",
        )

    # ========================================================================
    # ASGI
    # ========================================================================

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]], *, head: bool = False) -> None:
        """
        Send response via ASGI.

        Args:
            send: ASGI send callable
            head: Omit the body (HEAD requests) while keeping content-length
        """
        body = self._encode_body(self._content)
        if "content-length" not in self._headers:
            self._headers["content-length"] = str(len(body))

        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": b"" if head else body,
            "more_body": False,
        })

    def _prepare_headers(self) -> List[tuple]:
        return [
            (name.encode("latin-1"), str(value).encode("latin-1"))
            for name, value in self._headers.items()
        ]

    def _encode_body(self, content: Any) -> bytes:
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.encoding)
        if isinstance(content, (dict, list)):
            return dump_json(content)
        return str(content).encode(self.encoding)

    def __repr__(self) -> str:
        return f"Response(status={self.status}, content-type={self._headers.get('content-type')!r})"
