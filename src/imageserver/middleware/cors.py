"""
=============================================================================
CORS
=============================================================================

Lets pages on other origins use the images (canvas drawing, fetch()).

The default configuration allows any origin, method and header, which is
what a public image host wants. Preflight (OPTIONS) requests are answered
here with 204 and never reach the image handler.

    Browser                                       Image server
       │  OPTIONS /cats/tabby.jpg                      │
       │  Origin: https://blog.example                 │
       │  Access-Control-Request-Method: GET           │
       │──────────────────────────────────────────────▶│
       │  204 No Content                               │
       │  Access-Control-Allow-Origin: *               │
       │  Access-Control-Allow-Methods: GET, OPTIONS   │
       │◀──────────────────────────────────────────────│
       │  GET /cats/tabby.jpg                          │
       │──────────────────────────────────────────────▶│

=============================================================================
"""

from typing import Optional, List
from dataclasses import dataclass, field

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


@dataclass
class CORSConfig:
    allow_origins: List[str] = field(default_factory=lambda: ["*"])
    allow_methods: List[str] = field(default_factory=lambda: ["GET", "OPTIONS"])
    allow_headers: List[str] = field(default_factory=lambda: ["*"])
    expose_headers: List[str] = field(default_factory=lambda: ["ETag", "Last-Modified"])
    max_age: int = 86400


class CORSMiddleware(Middleware):
    """Adds CORS headers and answers preflight requests."""

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        origin = request.get_header("Origin")

        if request.method == "OPTIONS":
            return self._handle_preflight(request, origin)

        response = next(request)
        self._add_cors_headers(response, origin)
        return response

    def _handle_preflight(self, request: HTTPRequest, origin: str) -> HTTPResponse:
        response = ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()
        self._add_cors_headers(response, origin)

        response.headers["Access-Control-Allow-Methods"] = ", ".join(self.config.allow_methods)

        requested_headers = request.get_header("Access-Control-Request-Headers")
        if requested_headers:
            if "*" in self.config.allow_headers:
                # echo back: "*" is not honoured for credentialed requests
                response.headers["Access-Control-Allow-Headers"] = requested_headers
            else:
                response.headers["Access-Control-Allow-Headers"] = ", ".join(
                    self.config.allow_headers
                )

        response.headers["Access-Control-Max-Age"] = str(self.config.max_age)
        return response

    def _add_cors_headers(self, response: HTTPResponse, origin: str):
        if "*" in self.config.allow_origins:
            allowed_origin = "*"
        elif origin in self.config.allow_origins:
            allowed_origin = origin
        else:
            return

        response.headers["Access-Control-Allow-Origin"] = allowed_origin

        if self.config.expose_headers:
            response.headers["Access-Control-Expose-Headers"] = ", ".join(
                self.config.expose_headers
            )

        if allowed_origin != "*":
            vary = response.headers.get("Vary", "")
            if "Origin" not in vary:
                response.headers["Vary"] = f"{vary}, Origin".lstrip(", ")
