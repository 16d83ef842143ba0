"""
Aerie Templates - Jinja2 rendering with layouts and partials.

Views may declare a parent layout with ``{{!< name }}`` and include
partials with ``{{> name }}`` or ``{% include "name" %}``.
"""

from .engine import CompiledView, Layout, TemplateEngine
from .helpers import BUILTIN_PARTIALS, class_list, default_to, html_attribute
from .loader import PartialLoader, PartialRegistry
from .markup import extract_layout, extract_partial_names, preprocess

__all__ = [
    "CompiledView",
    "Layout",
    "TemplateEngine",
    "PartialLoader",
    "PartialRegistry",
    "BUILTIN_PARTIALS",
    "class_list",
    "default_to",
    "html_attribute",
    "extract_layout",
    "extract_partial_names",
    "preprocess",
]
