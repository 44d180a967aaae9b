"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the image server can emit, with their reason phrases.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  WHERE EACH CODE COMES FROM                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │  200 OK                     image delivered (cached or streamed)    │
    │  204 No Content             CORS preflight                          │
    │  304 Not Modified           If-None-Match equals the current ETag   │
    │  400 Bad Request            empty path / malformed request          │
    │  403 Forbidden              path escapes the base directory         │
    │  404 Not Found              no regular file at the resolved path    │
    │  405 Method Not Allowed     anything but GET / OPTIONS              │
    │  408 Request Timeout        client too slow sending its request     │
    │  413 Payload Too Large      request exceeds max_request_size        │
    │  500 Internal Server Error  I/O failure before the response began   │
    │  503 Service Unavailable    worker queue full                       │
    │  505 HTTP Version Not Supp. anything but HTTP/1.0 or HTTP/1.1       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes as an IntEnum.

    Being an IntEnum, members compare equal to plain integers
    (HTTPStatus.OK == 200) and format as their number in f-strings.
    """

    # 2xx SUCCESS
    OK = 200
    NO_CONTENT = 204

    # 3xx REDIRECTION
    NOT_MODIFIED = 304          # Cached version is still valid

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase that follows the code in the status line:

            HTTP/1.1 304 Not Modified
                     ─── ────────────
                      │       └── Reason phrase
                      └────────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        204 and 304 responses end at the blank line after the headers,
        so they must not advertise a Content-Length of their own.
        """
        return self not in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
