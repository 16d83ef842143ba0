"""
Partial registry and the Jinja2 loader that serves it.

Partials are registered by name (relative path, extension stripped) and
resolved by Jinja2 whenever a view includes them. One registry is shared
by every binding of an Application; registering the same name again
replaces the previous source.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from jinja2 import BaseLoader, TemplateNotFound

from .markup import preprocess

logger = logging.getLogger("aerie.templates.loader")

TEMPLATE_EXTENSIONS = {".html", ".htm", ".hbs", ".handlebars", ".jinja", ".jinja2", ".j2", ".txt", ".xml"}


def is_template_file(filename: str) -> bool:
    return os.path.splitext(filename)[1].lower() in TEMPLATE_EXTENSIONS


def template_name(root: Path, path: Path) -> str:
    """``<root>/forms/input.html`` -> ``forms/input``."""
    relative = path.relative_to(root).with_suffix("")
    return relative.as_posix()


def iter_template_files(directory: Path) -> Iterator[Path]:
    """Template files under ``directory``, recursively, in a stable order."""
    if not directory.is_dir():
        return
    for current, dirs, files in os.walk(directory):
        dirs.sort()
        for filename in sorted(files):
            if is_template_file(filename):
                yield Path(current) / filename


class PartialRegistry:
    """Named partial sources shared across engines."""

    def __init__(self):
        self._sources: Dict[str, str] = {}

    def register(self, name: str, source: str) -> None:
        self._sources[name] = preprocess(source)

    def setdefault(self, name: str, source: str) -> None:
        if name not in self._sources:
            self.register(name, source)

    def get(self, name: str) -> Optional[str]:
        return self._sources.get(name)

    def names(self) -> List[str]:
        return sorted(self._sources)

    def load_directory(self, directory: Path) -> int:
        """Register every template under ``directory``; returns the count."""
        count = 0
        for path in iter_template_files(directory):
            name = template_name(directory, path)
            self.register(name, path.read_text(encoding="utf-8"))
            count += 1
        if count:
            logger.debug(f"Registered {count} partial(s) from {directory}")
        return count

    def load_directories(self, directories: Iterable[Path]) -> int:
        return sum(self.load_directory(Path(d)) for d in directories)

    def __contains__(self, name: str) -> bool:
        return name in self._sources

    def __len__(self) -> int:
        return len(self._sources)


class PartialLoader(BaseLoader):
    """
    Jinja2 loader backed by a PartialRegistry.

    Args:
        registry: Registry holding the partial sources
    """

    def __init__(self, registry: PartialRegistry):
        self.registry = registry

    def get_source(
        self,
        environment,
        template: str,
    ) -> Tuple[str, Optional[str], Optional[Callable[[], bool]]]:
        source = self.registry.get(template)
        if source is None:
            raise TemplateNotFound(template)
        return source, None, lambda: self.registry.get(template) == source

    def list_templates(self) -> List[str]:
        return self.registry.names()
