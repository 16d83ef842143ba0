"""
Static file serving for MVC bindings.

Features:
- Prefix-mounted directory serving (GET and HEAD only)
- Content-type detection via mimetypes + custom mappings
- Weak ETag generation with If-None-Match support
- Directory traversal prevention with realpath canonicalization
- Python sources and dotfiles are never served

Misses call ``exchange.next()`` so a scoped 404 layer placed after the
static mount answers for missing files.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import mimetypes
import os
from email.utils import formatdate
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import unquote

from .exchange import HttpExchange

logger = logging.getLogger("aerie.static")

_EXTRA_MIME_TYPES: Dict[str, str] = {
    ".woff2": "font/woff2",
    ".woff": "font/woff",
    ".webp": "image/webp",
    ".map": "application/json",
    ".mjs": "application/javascript",
    ".ico": "image/x-icon",
}

for _ext, _mime in _EXTRA_MIME_TYPES.items():
    mimetypes.add_type(_mime, _ext)

DENIED_SUFFIXES = {".py", ".pyc", ".pyo"}


class StaticFiles:
    """
    Serve files from ``directory`` for request paths under ``prefix``.

    Args:
        directory: Filesystem directory to serve
        prefix: URL prefix the directory is mounted at (``/assets``)
        cache_max_age: Cache-Control max-age in seconds, 0 = no-cache
    """

    def __init__(self, directory: Path, prefix: str = "/", *, cache_max_age: int = 0):
        self.directory = Path(directory).resolve()
        self.prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self.cache_max_age = cache_max_age

    async def __call__(self, exchange: HttpExchange) -> None:
        request = exchange.request
        if request.method not in ("GET", "HEAD"):
            await exchange.next()
            return

        relative = self._relative_path(request.raw_path)
        if not relative:
            await exchange.next()
            return

        served = await asyncio.to_thread(self._load, relative)
        if served is None:
            await exchange.next()
            return

        status, content, headers = served
        if status == 200:
            etag = headers.get("etag")
            client_etag = request.header("if-none-match")
            if etag and client_etag and client_etag.strip() in ("*", etag):
                status, content = 304, b""

        response = exchange.response
        response.status(status)
        for name, value in headers.items():
            response.set_header(name, value)
        response.end(content)

    def _relative_path(self, raw_path: str) -> str:
        path = unquote(raw_path)
        if self.prefix:
            head = path[:len(self.prefix)]
            rest = path[len(self.prefix):]
            if head.lower() != self.prefix.lower() or (rest and not rest.startswith("/")):
                return ""
            path = rest
        return path.lstrip("/")

    def _load(self, relative: str) -> Optional[Tuple[int, bytes, Dict[str, str]]]:
        file_path = (self.directory / relative).resolve()
        try:
            parts = file_path.relative_to(self.directory).parts
        except ValueError:
            logger.warning(f"Refusing path outside static root: {relative}")
            return 403, b"Forbidden", {"content-type": "text/plain; charset=utf-8"}

        if any(part.startswith(".") for part in parts):
            return None
        if file_path.suffix.lower() in DENIED_SUFFIXES or not file_path.is_file():
            return None

        try:
            st = file_path.stat()
            content = file_path.read_bytes()
        except OSError:
            return None

        return 200, content, self._build_headers(file_path, st)

    def _build_headers(self, path: Path, st: os.stat_result) -> Dict[str, str]:
        mime, _ = mimetypes.guess_type(str(path))
        raw = f"{st.st_ino}-{st.st_mtime_ns}-{st.st_size}"
        digest = hashlib.md5(raw.encode(), usedforsecurity=False).hexdigest()[:16]
        cache_control = f"max-age={self.cache_max_age}, public" if self.cache_max_age else "no-cache"
        return {
            "content-type": mime or "application/octet-stream",
            "etag": f'W/"{digest}"',
            "last-modified": formatdate(st.st_mtime, usegmt=True),
            "cache-control": cache_control,
        }

    def __repr__(self) -> str:
        return f"StaticFiles({self.prefix or '/'} -> {self.directory})"
