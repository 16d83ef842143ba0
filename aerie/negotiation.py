"""
Content negotiation for error responses, and error template loading.

Errors are sent as JSON unless the client's Accept header prefers HTML or
plain text; JSON wins ties (``*/*``) and requests without an Accept header.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from jinja2 import TemplateSyntaxError

from ._datastructures import best_match
from .templates.engine import CompiledView, TemplateEngine
from .templates.loader import iter_template_files, template_name

logger = logging.getLogger("aerie.negotiation")

ERROR_MEDIA_TYPES = ["application/json", "text/html", "text/plain"]


def negotiate_error_type(accept: Optional[str]) -> str:
    """Media type an error response should use for ``accept``."""
    return best_match(accept, ERROR_MEDIA_TYPES) or "application/json"


async def load_error_templates(engine: TemplateEngine, directories: Iterable[Path]) -> Dict[str, CompiledView]:
    """
    Compile error templates.

    ``errors/404.html`` is used for 404 responses, ``errors/error.html`` for
    any status without a dedicated template. A template that does not
    compile is logged and left out.
    """
    def _read() -> Dict[str, str]:
        sources: Dict[str, str] = {}
        for directory in directories:
            directory = Path(directory)
            for path in iter_template_files(directory):
                sources[template_name(directory, path)] = path.read_text(encoding="utf-8")
        return sources

    sources = await asyncio.to_thread(_read)
    templates: Dict[str, CompiledView] = {}
    for name, source in sources.items():
        try:
            templates[name] = engine.compile_source(source, name)
        except TemplateSyntaxError as e:
            logger.error(f"Skipping error template {name}: {e}")
    if templates:
        logger.debug(f"Loaded error templates: {', '.join(sorted(templates))}")
    return templates
