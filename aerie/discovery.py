"""
Handler discovery by filename convention.

Classification is a pure function of the path (``describe_file``); nothing
is imported until ``load_handler_class`` / ``load_model_class`` run.

Conventions (CamelCase or snake_case, never mixed within one handler):

    apis/ExpressApi.py            api         context /apis/express
    apis/second_express_api.py    api         context /apis/secondExpress
    shop/CartController.py        controller  context /shop
    shop/cart_ctrl.py             controller  context /shop

Controller companions sit next to the handler file:

    CartModel.py  CartView.html  CartAssets/  CartConfig.json
    cart_model.py cart_view.html cart_assets/ cart_config.json
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import List, Optional, Type

from .faults import DiscoveryFault
from .utils import camel_case, encode_context, pascal_case

logger = logging.getLogger("aerie.discovery")

MODULE_NAMESPACE = "aerie_mvc"
SKIPPED_DIRS = {"__pycache__", "node_modules"}

_CAMEL_SUFFIXES = (("Controller", "controller"), ("Ctrl", "controller"), ("Api", "api"))
_SNAKE_SUFFIXES = (("_controller", "controller"), ("_ctrl", "controller"), ("_api", "api"))


class HandlerKind(str, Enum):
    CONTROLLER = "controller"
    API = "api"


@dataclass(frozen=True)
class HandlerDescriptor:
    """
    Everything derivable from a handler's path alone.

    Companion paths are candidates; whether they exist is checked when the
    handler is bound.
    """

    kind: HandlerKind
    path: Path
    stem: str
    suffix: str
    snake: bool
    context: str
    model_name: str
    model_file: Path
    view_file: Path
    assets_dir: Path
    config_file: Path

    @property
    def class_name(self) -> str:
        """Expected class name (``ExpressApi`` for ``express_api.py``)."""
        if not self.snake:
            return self.stem + self.suffix
        return pascal_case(self.stem) + self.suffix[1:].capitalize()

    @property
    def model_class_name(self) -> str:
        return f"{pascal_case(self.stem)}Model"

    @property
    def is_controller(self) -> bool:
        return self.kind is HandlerKind.CONTROLLER


def _split_suffix(file_stem: str):
    for suffix, kind in _SNAKE_SUFFIXES:
        if file_stem.endswith(suffix) and len(file_stem) > len(suffix):
            return file_stem[: -len(suffix)], suffix, HandlerKind(kind), True
    for suffix, kind in _CAMEL_SUFFIXES:
        if file_stem.endswith(suffix) and len(file_stem) > len(suffix):
            return file_stem[: -len(suffix)], suffix, HandlerKind(kind), False
    return None


def describe_file(root: Path, path: Path) -> Optional[HandlerDescriptor]:
    """
    Classify ``path`` (somewhere under ``root``) as a handler, or None.

    Pure: the filesystem is never touched.
    """
    if path.suffix != ".py" or path.name.startswith(("_", ".")):
        return None
    split = _split_suffix(path.stem)
    if split is None:
        return None
    stem, suffix, kind, snake = split

    relative_dir = path.parent.relative_to(root)
    segments = [part for part in relative_dir.parts if part not in ("", ".")]
    if kind is HandlerKind.API:
        segments.append(camel_case(stem))

    def companion(name: str, ext: str = "") -> Path:
        if snake:
            return path.parent / f"{stem}_{name.lower()}{ext}"
        return path.parent / f"{stem}{name}{ext}"

    return HandlerDescriptor(
        kind=kind,
        path=path,
        stem=stem,
        suffix=suffix,
        snake=snake,
        context=encode_context(*segments),
        model_name=f"{camel_case(stem)}Model",
        model_file=companion("Model", ".py"),
        view_file=companion("View", ".html"),
        assets_dir=companion("Assets"),
        config_file=companion("Config", ".json"),
    )


def walk_files(root: Path) -> List[Path]:
    """All files under ``root``, skipping hidden and cache directories, sorted."""
    found: List[Path] = []
    for current, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in SKIPPED_DIRS and not d.startswith("."))
        for filename in sorted(files):
            found.append(Path(current) / filename)
    return found


def discover(root: Path) -> List[HandlerDescriptor]:
    """Describe every handler file under ``root``."""
    root = Path(root).resolve()
    descriptors = []
    for path in walk_files(root):
        descriptor = describe_file(root, path)
        if descriptor is not None:
            logger.debug(f"Discovered {descriptor.kind.value} {descriptor.class_name} at {descriptor.context or '/'}")
            descriptors.append(descriptor)
    return descriptors


# ============================================================================
# Module loading
# ============================================================================

def load_module(path: Path) -> ModuleType:
    """Import a Python file under a unique module name."""
    digest = hashlib.md5(str(path.resolve()).encode(), usedforsecurity=False).hexdigest()[:10]
    module_name = f"{MODULE_NAMESPACE}.{path.stem}_{digest}"
    if module_name in sys.modules:
        return sys.modules[module_name]

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise DiscoveryFault(str(path), "not an importable Python file")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise DiscoveryFault(str(path), f"{type(e).__name__}: {e}") from e
    return module


def find_class(module: ModuleType, preferred: str, base: type) -> Optional[Type]:
    """``preferred`` when it subclasses ``base``, else the first such class defined in ``module``."""
    candidate = getattr(module, preferred, None)
    if inspect.isclass(candidate) and issubclass(candidate, base) and candidate is not base:
        return candidate
    for _, member in inspect.getmembers(module, inspect.isclass):
        if member.__module__ == module.__name__ and issubclass(member, base) and member is not base:
            return member
    return None


def load_handler_class(descriptor: HandlerDescriptor, base: type) -> Type:
    """
    Import the handler class of ``descriptor``.

    Raises:
        DiscoveryFault: Import failed or no subclass of ``base`` is defined
    """
    module = load_module(descriptor.path)
    cls = find_class(module, descriptor.class_name, base)
    if cls is None:
        raise DiscoveryFault(str(descriptor.path), f"no {base.__name__} subclass found")
    return cls


def load_model_class(descriptor: HandlerDescriptor, base: type) -> Optional[Type]:
    """Model class of a controller, or None when the companion file is missing."""
    if not descriptor.model_file.is_file():
        return None
    module = load_module(descriptor.model_file)
    cls = find_class(module, descriptor.model_class_name, base)
    if cls is None:
        raise DiscoveryFault(str(descriptor.model_file), f"no {base.__name__} subclass found")
    return cls
