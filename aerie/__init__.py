"""
Aerie - convention-based MVC for ASGI

Point an Application at a directory and it:
- Discovers controllers and apis by filename (``*Controller.py``, ``*Api.py``, ...)
- Binds them to routes derived from their paths (``apis/ExpressApi.py`` -> ``/apis/express``)
- Dispatches requests through precheck, auth, argument extraction and ``do_<verb>``
- Renders controller views with Jinja2, layouts and partials
- Answers errors from a fixed catalog as JSON or HTML templates
"""

__version__ = "0.1.0"

from .api import ResourceApi
from .application import Application
from .binder import MvcBinding, RouteEntry
from .cache import TemplateCache
from .config import ConfigLoader, Environment, MvcConfig
from .controller import Controller, RouteResources
from .discovery import HandlerDescriptor, HandlerKind, describe_file
from .dispatcher import AppInfo, RequestDispatcher, RequestHandler
from .errors import ErrorDescriptor, ErrorKind
from .exchange import HttpExchange, ResponseSink
from .faults import (
    ConfigFault,
    DiscoveryFault,
    Fault,
    FaultDomain,
    InvalidBody,
    LayoutCycleFault,
    LayoutNotFoundFault,
    PayloadTooLarge,
    Severity,
    TemplateFault,
)
from .model import Model
from .request import Request
from .response import Response
from .routing import Router
from .static import StaticFiles
from .templates import CompiledView, Layout, PartialRegistry, TemplateEngine

__all__ = [
    "__version__",
    # Core
    "Application",
    "MvcBinding",
    "RouteEntry",
    "MvcConfig",
    "ConfigLoader",
    "Environment",
    # Handlers
    "RequestDispatcher",
    "RequestHandler",
    "AppInfo",
    "Controller",
    "RouteResources",
    "ResourceApi",
    "Model",
    # Discovery
    "HandlerDescriptor",
    "HandlerKind",
    "describe_file",
    # HTTP
    "HttpExchange",
    "ResponseSink",
    "Request",
    "Response",
    "Router",
    "StaticFiles",
    # Errors
    "ErrorKind",
    "ErrorDescriptor",
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "DiscoveryFault",
    "TemplateFault",
    "LayoutNotFoundFault",
    "LayoutCycleFault",
    "InvalidBody",
    "PayloadTooLarge",
    # Templates
    "TemplateEngine",
    "TemplateCache",
    "CompiledView",
    "Layout",
    "PartialRegistry",
]
