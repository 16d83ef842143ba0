"""
Core data structures for Aerie request handling.

Provides:
- MultiDict: Multi-value dictionary for query params and form data
- Headers: Case-insensitive header access
- ParsedContentType: Content-Type parsing helper
- MediaRange / parse_accept: Accept header parsing with quality values
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Dict, Iterator, List, Mapping,
    Optional, Tuple, Union
)


# ============================================================================
# MultiDict
# ============================================================================

class MultiDict(Mapping[str, List[str]]):
    """
    Read-only dictionary that keeps every value of a repeated key.

    Used for query parameters and form data where keys can repeat.
    """

    def __init__(self, items: Optional[List[Tuple[str, str]]] = None):
        self._data: Dict[str, List[str]] = {}
        for key, value in items or ():
            self._data.setdefault(key, []).append(value)

    def __getitem__(self, key: str) -> List[str]:
        """Get all values for a key."""
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MultiDict({dict(self._data)})"

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for a key."""
        values = self._data.get(key)
        return values[0] if values else default

    def get_all(self, key: str) -> List[str]:
        """Get all values for a key."""
        return self._data.get(key, [])

    def to_dict(self, multi: bool = False) -> Dict[str, Union[str, List[str]]]:
        """
        Convert to regular dict.

        Args:
            multi: If True, return lists for all keys; otherwise the first
                value of each key.
        """
        if multi:
            return {k: list(v) for k, v in self._data.items()}
        return {k: v[0] for k, v in self._data.items() if v}


# ============================================================================
# Headers
# ============================================================================

@dataclass
class Headers:
    """
    Case-insensitive header access with raw preservation.

    Normalizes header names while preserving original casing.
    """

    raw: List[Tuple[bytes, bytes]] = field(default_factory=list)
    _index: Dict[str, List[Tuple[bytes, bytes]]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._index = {}
        for name, value in self.raw:
            key = name.decode("latin-1").lower()
            self._index.setdefault(key, []).append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for header (case-insensitive)."""
        pairs = self._index.get(name.lower())
        if pairs:
            return pairs[0][1].decode("latin-1")
        return default

    def get_all(self, name: str) -> List[str]:
        """Get all values for header (case-insensitive)."""
        pairs = self._index.get(name.lower(), [])
        return [value.decode("latin-1") for _, value in pairs]

    def set(self, name: str, value: str) -> None:
        """Replace a header value (used by middleware rewriting requests)."""
        key = name.lower()
        encoded = (key.encode("latin-1"), value.encode("latin-1"))
        self.raw = [pair for pair in self.raw if pair[0].decode("latin-1").lower() != key]
        self.raw.append(encoded)
        self._index[key] = [encoded]

    def has(self, name: str) -> bool:
        return name.lower() in self._index

    def items(self) -> Iterator[Tuple[str, str]]:
        for name, value in self.raw:
            yield name.decode("latin-1"), value.decode("latin-1")

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(f"Header '{name}' not found")
        return value

    def __repr__(self) -> str:
        return f"Headers({list(self.items())})"


# ============================================================================
# ParsedContentType
# ============================================================================

@dataclass
class ParsedContentType:
    """
    Parsed Content-Type header.

    Extracts media type and parameters (e.g., charset).
    """

    media_type: str
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, content_type: Optional[str]) -> Optional["ParsedContentType"]:
        """Parse Content-Type header."""
        if not content_type:
            return None

        parts = content_type.split(";")
        media_type = parts[0].strip().lower()

        params = {}
        for part in parts[1:]:
            if "=" in part:
                key, value = part.split("=", 1)
                params[key.strip().lower()] = value.strip().strip('"')

        return cls(media_type=media_type, params=params)

    @property
    def charset(self) -> str:
        return self.params.get("charset", "utf-8")

    @property
    def is_multipart(self) -> bool:
        return self.media_type.startswith("multipart/")


# ============================================================================
# Accept
# ============================================================================

@dataclass(frozen=True)
class MediaRange:
    """Single entry of an Accept header."""

    media_type: str
    quality: float = 1.0
    position: int = 0

    def matches(self, media_type: str) -> bool:
        if self.media_type == "*/*":
            return True
        major, _, minor = self.media_type.partition("/")
        other_major, _, other_minor = media_type.partition("/")
        if minor == "*":
            return major == other_major
        return self.media_type == media_type

    @property
    def specificity(self) -> int:
        if self.media_type == "*/*":
            return 0
        if self.media_type.endswith("/*"):
            return 1
        return 2


def parse_accept(header: Optional[str]) -> List[MediaRange]:
    """
    Parse an Accept header into media ranges.

    Ranges are sorted by quality (descending), then by their position in
    the header so that ties keep the client's order.
    """
    if not header:
        return []

    ranges: List[MediaRange] = []
    for position, part in enumerate(header.split(",")):
        pieces = [p.strip() for p in part.split(";")]
        media_type = pieces[0].lower()
        if not media_type:
            continue
        quality = 1.0
        for param in pieces[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        ranges.append(MediaRange(media_type, quality, position))

    ranges.sort(key=lambda r: (-r.quality, r.position))
    return ranges


def best_match(header: Optional[str], offered: List[str]) -> Optional[str]:
    """
    Pick the offered media type the Accept header prefers.

    Returns ``None`` when the header is absent or nothing offered is
    acceptable.
    """
    best: Optional[Tuple[float, int, int, int]] = None
    chosen: Optional[str] = None
    ranges = parse_accept(header)
    for offer_index, offer in enumerate(offered):
        for media_range in ranges:
            if media_range.quality <= 0 or not media_range.matches(offer):
                continue
            score = (media_range.quality, media_range.specificity, -media_range.position, -offer_index)
            if best is None or score > best:
                best = score
                chosen = offer
            break
    return chosen
