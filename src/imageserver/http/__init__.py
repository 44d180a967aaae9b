"""
HTTP protocol layer: request parsing, response building, status codes,
MIME types and routing.
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    error_response,
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, mime_for

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "error_response",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "Router",
    "Route",
    "HTTPStatus",
    "get_mime_type",
    "mime_for",
]
