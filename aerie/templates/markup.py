"""
Source-level markup handled before Jinja2 compilation.

Two conventions are recognised in raw view/layout source:

- Parent layout marker, on a single line::

      {{!< layouts/main }}      or      {#< layouts/main #}

- Partial inclusion token::

      {{> header }}

  rewritten to ``{% include "header" %}`` so Jinja2 resolves it through
  the partial registry.
"""

import re
from typing import List, Optional

LAYOUT_PATTERN = re.compile(
    r"\{\{!<\s*([\w/.\-]+)\s*\}\}|\{#<\s*([\w/.\-]+)\s*#\}",
    re.IGNORECASE,
)
LAYOUT_LINE_PATTERN = re.compile(
    r"^[ \t]*(?:\{\{!<\s*[\w/.\-]+\s*\}\}|\{#<\s*[\w/.\-]+\s*#\})[ \t]*\r?\n?",
    re.IGNORECASE | re.MULTILINE,
)
PARTIAL_PATTERN = re.compile(r"\{\{~?>\s*([^\s}\"']+)[^}]*\}\}")
INCLUDE_PATTERN = re.compile(r"\{%-?\s*include\s+[\"']([^\"']+)[\"']")


def extract_layout(source: str) -> Optional[str]:
    """Name of the parent layout declared in ``source``, if any."""
    match = LAYOUT_PATTERN.search(source)
    if not match:
        return None
    return match.group(1) or match.group(2)


def extract_partial_names(source: str) -> List[str]:
    """Names of every partial referenced by ``source``, in order, without repeats."""
    names: List[str] = []
    for pattern in (PARTIAL_PATTERN, INCLUDE_PATTERN):
        for name in pattern.findall(source):
            if name not in names:
                names.append(name)
    return names


def strip_layout(source: str) -> str:
    return LAYOUT_PATTERN.sub("", LAYOUT_LINE_PATTERN.sub("", source))


def preprocess(source: str) -> str:
    """Strip the layout marker and rewrite partial tokens as Jinja2 includes."""
    source = strip_layout(source)
    return PARTIAL_PATTERN.sub(lambda m: '{% include "' + m.group(1) + '" %}', source)
