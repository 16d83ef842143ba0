"""
Error catalog - the fixed taxonomy of HTTP error responses.

Every named error condition maps to exactly one ``ErrorDescriptor``
(status code, reason phrase, helper method name). Several names share a
status code (``bad_request_error`` and ``invalid_content_error`` are both
400) so handlers can express intent without inventing status codes.

Handlers never look errors up by string at runtime; they either call the
generated helper (``self.not_found_error(exchange)``) or pass an
``ErrorKind`` member to ``send_error``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


@dataclass(frozen=True)
class ErrorDescriptor:
    """Status code, canonical reason phrase and helper name of an error."""

    status: int
    phrase: str
    method_name: str


class ErrorKind(Enum):
    """All error conditions a handler can respond with."""

    BAD_REQUEST = ErrorDescriptor(400, "Bad Request", "bad_request_error")
    INVALID_CONTENT = ErrorDescriptor(400, "Bad Request", "invalid_content_error")
    INVALID_PARAMETERS = ErrorDescriptor(400, "Bad Request", "invalid_parameters_error")
    UNAUTHORIZED = ErrorDescriptor(401, "Unauthorized", "unauthorized_error")
    PAYMENT_REQUIRED = ErrorDescriptor(402, "Payment Required", "payment_required_error")
    FORBIDDEN = ErrorDescriptor(403, "Forbidden", "forbidden_error")
    NOT_FOUND = ErrorDescriptor(404, "Not Found", "not_found_error")
    METHOD_NOT_ALLOWED = ErrorDescriptor(405, "Method Not Allowed", "method_not_allowed_error")
    NOT_ACCEPTABLE = ErrorDescriptor(406, "Not Acceptable", "not_acceptable_error")
    WRONG_ACCEPT = ErrorDescriptor(406, "Not Acceptable", "wrong_accept_error")
    PROXY_AUTHENTICATION_REQUIRED = ErrorDescriptor(
        407, "Proxy Authentication Required", "proxy_authentication_required_error"
    )
    REQUEST_TIMEOUT = ErrorDescriptor(408, "Request Timeout", "request_timeout_error")
    CONFLICT = ErrorDescriptor(409, "Conflict", "conflict_error")
    GONE = ErrorDescriptor(410, "Gone", "gone_error")
    LENGTH_REQUIRED = ErrorDescriptor(411, "Length Required", "length_required_error")
    PRECONDITION_FAILED = ErrorDescriptor(412, "Precondition Failed", "precondition_failed_error")
    PAYLOAD_TOO_LARGE = ErrorDescriptor(413, "Payload Too Large", "payload_too_large_error")
    URI_TOO_LONG = ErrorDescriptor(414, "URI Too Long", "uri_too_long_error")
    UNSUPPORTED_MEDIA_TYPE = ErrorDescriptor(415, "Unsupported Media Type", "unsupported_media_type_error")
    RANGE_NOT_SATISFIABLE = ErrorDescriptor(416, "Range Not Satisfiable", "range_not_satisfiable_error")
    EXPECTATION_FAILED = ErrorDescriptor(417, "Expectation Failed", "expectation_failed_error")
    IM_A_TEAPOT = ErrorDescriptor(418, "I'm a teapot", "im_a_teapot_error")
    MISDIRECTED_REQUEST = ErrorDescriptor(421, "Misdirected Request", "misdirected_request_error")
    UNPROCESSABLE_ENTITY = ErrorDescriptor(422, "Unprocessable Entity", "unprocessable_entity_error")
    VALIDATION = ErrorDescriptor(422, "Unprocessable Entity", "validation_error")
    LOCKED = ErrorDescriptor(423, "Locked", "locked_error")
    FAILED_DEPENDENCY = ErrorDescriptor(424, "Failed Dependency", "failed_dependency_error")
    TOO_EARLY = ErrorDescriptor(425, "Too Early", "too_early_error")
    UPGRADE_REQUIRED = ErrorDescriptor(426, "Upgrade Required", "upgrade_required_error")
    PRECONDITION_REQUIRED = ErrorDescriptor(428, "Precondition Required", "precondition_required_error")
    TOO_MANY_REQUESTS = ErrorDescriptor(429, "Too Many Requests", "too_many_requests_error")
    REQUEST_HEADER_FIELDS_TOO_LARGE = ErrorDescriptor(
        431, "Request Header Fields Too Large", "request_header_fields_too_large_error"
    )
    UNAVAILABLE_FOR_LEGAL_REASONS = ErrorDescriptor(
        451, "Unavailable For Legal Reasons", "unavailable_for_legal_reasons_error"
    )
    INTERNAL_SERVER = ErrorDescriptor(500, "Internal Server Error", "internal_server_error")
    NOT_IMPLEMENTED = ErrorDescriptor(501, "Not Implemented", "not_implemented_error")
    BAD_GATEWAY = ErrorDescriptor(502, "Bad Gateway", "bad_gateway_error")
    SERVICE_UNAVAILABLE = ErrorDescriptor(503, "Service Unavailable", "service_unavailable_error")
    MAINTENANCE = ErrorDescriptor(503, "Service Unavailable", "maintenance_error")
    GATEWAY_TIMEOUT = ErrorDescriptor(504, "Gateway Timeout", "gateway_timeout_error")
    HTTP_VERSION_NOT_SUPPORTED = ErrorDescriptor(
        505, "HTTP Version Not Supported", "http_version_not_supported_error"
    )
    VARIANT_ALSO_NEGOTIATES = ErrorDescriptor(506, "Variant Also Negotiates", "variant_also_negotiates_error")
    INSUFFICIENT_STORAGE = ErrorDescriptor(507, "Insufficient Storage", "insufficient_storage_error")
    LOOP_DETECTED = ErrorDescriptor(508, "Loop Detected", "loop_detected_error")
    NOT_EXTENDED = ErrorDescriptor(510, "Not Extended", "not_extended_error")
    NETWORK_AUTHENTICATION_REQUIRED = ErrorDescriptor(
        511, "Network Authentication Required", "network_authentication_required_error"
    )

    @property
    def status(self) -> int:
        return self.value.status

    @property
    def phrase(self) -> str:
        return self.value.phrase

    @property
    def method_name(self) -> str:
        return self.value.method_name


_BY_STATUS: Dict[int, ErrorKind] = {}
for _kind in ErrorKind:
    # First declared name wins for a shared status code
    _BY_STATUS.setdefault(_kind.status, _kind)


def kind_for_status(status: int) -> Optional[ErrorKind]:
    """Return the canonical error kind for a status code, if any."""
    return _BY_STATUS.get(status)


def error_payload(kind: ErrorKind) -> Dict[str, object]:
    """JSON body sent for an error when no template applies."""
    return {"error": kind.phrase, "status": kind.status}
