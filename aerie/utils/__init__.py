"""
Aerie Utils Package

Utility modules for the Aerie framework:
- urls: URL path joining and context encoding
- naming: camelCase / PascalCase helpers used by discovery
- awaitables: calling hooks that may or may not be coroutines
"""

from .awaitables import Deferred, maybe_await
from .naming import camel_case, pascal_case
from .urls import encode_context, join_paths

__all__ = [
    "Deferred",
    "maybe_await",
    "camel_case",
    "pascal_case",
    "encode_context",
    "join_paths",
]
