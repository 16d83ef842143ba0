"""
Aerie Faults - Structured fault types.

Exceptions raised inside Aerie are typed fault signals carrying a stable
machine-readable code, a human-readable message, a domain, a severity and
free-form metadata. HTTP-facing failures are expressed separately through
the error catalog (see ``aerie.errors``); faults describe *why* something
went wrong inside the framework.

Defines:
- Fault base class
- FaultDomain (explicit fault domains)
- Severity levels
- Concrete faults for config, discovery, rendering and request bodies
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level used when the fault is reported.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.DISCOVERY = FaultDomain("discovery", "Handler discovery errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route binding errors")
FaultDomain.RENDER = FaultDomain("render", "Template rendering errors")
FaultDomain.IO = FaultDomain("io", "I/O operations")
FaultDomain.FLOW = FaultDomain("flow", "Handler execution errors")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.DISCOVERY: Severity.ERROR,
    FaultDomain.ROUTING: Severity.ERROR,
    FaultDomain.RENDER: Severity.ERROR,
    FaultDomain.IO: Severity.WARN,
    FaultDomain.FLOW: Severity.ERROR,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "LAYOUT_CYCLE")
        message: Human-readable summary
        domain: Fault domain
        severity: Fault severity
        metadata: Additional context data

    Subclasses may declare ``code``, ``message`` and ``domain`` as class
    attributes and omit them from the constructor call.
    """

    code: Optional[str] = None
    message: Optional[str] = None
    domain: Optional[FaultDomain] = None

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else type(self).code
        self.message = message if message is not None else type(self).message
        self.domain = domain if domain is not None else type(self).domain

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize fault to dictionary for logging."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "metadata": self.metadata,
        }


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Configuration value is missing or invalid."""

    domain = FaultDomain.CONFIG

    def __init__(self, key: str, reason: str, **metadata):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **metadata},
        )


# ============================================================================
# DISCOVERY Faults
# ============================================================================

class DiscoveryFault(Fault):
    """A handler file could not be loaded."""

    domain = FaultDomain.DISCOVERY

    def __init__(self, path: str, reason: str, **metadata):
        super().__init__(
            code="DISCOVERY_FAILED",
            message=f"Cannot load handler from '{path}': {reason}",
            metadata={"path": path, "reason": reason, **metadata},
        )


# ============================================================================
# RENDER Faults
# ============================================================================

class TemplateFault(Fault):
    """Base class for template faults."""

    domain = FaultDomain.RENDER


class LayoutNotFoundFault(TemplateFault):
    """A view or layout names a parent layout that was never loaded."""

    def __init__(self, name: str, **metadata):
        super().__init__(
            code="LAYOUT_NOT_FOUND",
            message=f"Layout '{name}' is not registered",
            metadata={"layout": name, **metadata},
        )


class LayoutCycleFault(TemplateFault):
    """Layout parent chain loops back on itself."""

    def __init__(self, chain: list[str], **metadata):
        super().__init__(
            code="LAYOUT_CYCLE",
            message=f"Layout chain is cyclic: {' -> '.join(chain)}",
            metadata={"chain": chain, **metadata},
        )


# ============================================================================
# IO Faults
# ============================================================================

class RequestFault(Fault):
    """Base class for request body faults."""

    domain = FaultDomain.IO


class InvalidBody(RequestFault):
    """Request body is empty or could not be parsed."""

    code = "INVALID_BODY"
    message = "Request body could not be parsed"


class PayloadTooLarge(RequestFault):
    """Request payload exceeds limits."""

    code = "PAYLOAD_TOO_LARGE"
    message = "Payload too large"
