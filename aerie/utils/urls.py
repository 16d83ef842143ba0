"""
URL Utilities for Aerie.
"""

from urllib.parse import quote


def join_paths(*parts: str) -> str:
    """
    Join URL path segments.

    Handles:
    - Multiple slashes (//) -> /
    - Trailing/leading slashes
    - Empty segments

    Example:
        join_paths("/apis/", "express") -> "/apis/express"
    """
    clean_parts = []
    for part in parts:
        if not part:
            continue
        clean = part.strip("/")
        if clean:
            clean_parts.append(clean)
    return "/" + "/".join(clean_parts)


def encode_context(*segments: str) -> str:
    """
    Build a URL context from raw directory segments.

    Each segment is percent-encoded on its own; an empty result is the
    root context ``""``.
    """
    encoded = [quote(segment, safe="") for segment in segments if segment]
    if not encoded:
        return ""
    return "/" + "/".join(encoded)
