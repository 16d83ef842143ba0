"""
Shared test fixtures and helpers for the Aerie test suite.
"""

from pathlib import Path
from typing import List, Optional

import httpx
import pytest

from aerie import Application
from aerie.exchange import HttpExchange
from aerie.request import Request

FIXTURES = Path(__file__).parent / "fixtures"
ROOT = FIXTURES / "root"
ROOT2 = FIXTURES / "root2"
ROOT3 = FIXTURES / "root3"
LAYOUTS_ROOT = FIXTURES / "layouts_root"


# ============================================================================
# Request Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    raw_path: Optional[bytes] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    for name, value in headers or []:
        raw_headers.append(
            (name.encode("latin-1") if isinstance(name, str) else name,
             value.encode("latin-1") if isinstance(value, str) else value)
        )
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": raw_path if raw_path is not None else path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or a chunk list."""
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive


def make_request(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    body: bytes = b"",
    **kwargs,
) -> Request:
    """Build a full Request object for testing."""
    scope = make_scope(method=method, path=path, query_string=query_string, headers=headers)
    return Request(scope, make_receive(body), **kwargs)


def make_exchange(method: str = "GET", path: str = "/", *, params: Optional[dict] = None, **kwargs) -> HttpExchange:
    """Build an HttpExchange around ``make_request``."""
    request = make_request(method=method, path=path, **kwargs)
    if params:
        request.params.update(params)
    return HttpExchange(request=request)


def client_for(app: Application, base_url: str = "http://testserver") -> httpx.AsyncClient:
    """In-process HTTP client for an Application."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=base_url)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def root_app() -> Application:
    return Application(str(ROOT), mode="development", statics="/assets/")


@pytest.fixture
def root2_app() -> Application:
    return Application(str(ROOT2), mode="development")
