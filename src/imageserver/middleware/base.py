"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Middleware wraps the router: each one sees the request on the way in and
the response on the way out.

    request ──▶ Logging ──▶ CORS ──▶ Router ──▶ ImageHandler
    response ◀── Logging ◀── CORS ◀──────────────────┘

A middleware can also answer without calling next (CORS does this for
preflight requests).

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

    Example:
        class TimingMiddleware(Middleware):
            def __call__(self, request, next):
                start = time.time()
                response = next(request)
                response.headers["X-Response-Time"] = f"{time.time() - start:.3f}"
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware chain. The first added is the outermost."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Build one callable: middleware[0](middleware[1](... handler))."""
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
