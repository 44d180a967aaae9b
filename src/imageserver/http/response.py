"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

HTTPResponse models what goes back on the wire; ResponseBuilder is the
fluent way to make one.

=============================================================================
BUFFERED VS STREAMED BODIES
=============================================================================

An image response carries its body in one of two ways:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  BUFFERED (body=bytes)                                              │
    │  ─────────────────────────────────────────────────────────────────  │
    │  Small images, usually straight out of the memory cache.            │
    │  to_bytes() returns head + body in one piece.                       │
    │                                                                      │
    │  STREAMED (stream=iterable of chunks)                               │
    │  ─────────────────────────────────────────────────────────────────  │
    │  Large images. The server writes head_bytes() first, then each      │
    │  chunk as it is read from disk. Content-Length MUST already be in   │
    │  the headers: once the head is sent it cannot change.               │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Iterable, Union
import json

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "ImageServer/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response.

    Attributes:
        status: Status code.
        headers: Response headers (original casing preserved).
        body: Buffered body bytes.
        stream: Optional iterable of body chunks. When set, `body` is
            ignored and the server copies the chunks to the socket.
        version: HTTP version for the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    stream: Optional[Iterable[bytes]] = field(default=None, repr=False)
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 304 Not Modified"."""
        return f"{self.version} {self.status} {self.status.phrase}"

    @property
    def is_streamed(self) -> bool:
        return self.stream is not None

    @property
    def content_length(self) -> int:
        """Body size as advertised (Content-Length header if set)."""
        declared = self.headers.get("Content-Length")
        if declared is not None:
            return int(declared)
        return 0 if self.is_streamed else len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def head_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the status line and headers, up to and including the
        blank line that ends them.

        Adds Content-Length (buffered bodies only), Date and Server when
        missing. 204/304 responses never get a Content-Length.

        Raises:
            ValueError: streamed response without a Content-Length.
        """
        response_headers = dict(self.headers)

        if not self.status.allows_body:
            response_headers.pop("Content-Length", None)
        elif "Content-Length" not in response_headers:
            if self.is_streamed:
                raise ValueError("Streamed response requires a Content-Length header")
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("utf-8") + b"\r\n"

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """Serialize a buffered response (head + body)."""
        if self.is_streamed:
            raise ValueError("Streamed responses are sent with head_bytes() + stream")
        body = self.body if self.status.allows_body else b""
        return self.head_bytes(server_name) + body

    def close(self) -> None:
        """Release the body stream, if it holds a resource."""
        close = getattr(self.stream, "close", None)
        if close is not None:
            close()


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Example:
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("image/png")
            .cache(max_age=86400)
            .body(png_bytes)
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._stream: Optional[Iterable[bytes]] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        self._stream = None
        self._headers["Content-Length"] = str(len(body))
        return self

    def stream(self, chunks: Iterable[bytes], length: int) -> "ResponseBuilder":
        """
        Use a chunk iterable as the body.

        Args:
            chunks: Body chunks; must yield exactly `length` bytes in total.
            length: Value for Content-Length, fixed before any byte is sent.
        """
        self._stream = chunks
        self._body = b""
        self._headers["Content-Length"] = str(length)
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        self.body(json.dumps(data, ensure_ascii=False))
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def cache(self, max_age: int = 86400) -> "ResponseBuilder":
        """Allow browsers and proxies to keep the response for max_age seconds."""
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            stream=self._stream,
        )


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP date (RFC 7231 IMF-fixdate).

    Example: "Sun, 06 Nov 1994 08:49:37 GMT"

    Day and month names are written out by hand because strftime's %a/%b
    follow the process locale.
    """
    dt = dt.astimezone(timezone.utc) if dt.tzinfo else dt
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """JSON error response: {"error": message}."""
    status = HTTPStatus(status)
    return (ResponseBuilder()
        .status(status)
        .json({"error": message or status.phrase})
        .build())


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed")
    response.headers["Allow"] = ", ".join(allowed_methods)
    return response


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
