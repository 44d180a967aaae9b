"""
=============================================================================
URL ROUTING
=============================================================================

Maps (method, path) to a handler function.

=============================================================================
ROUTE PATTERNS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Pattern          Matches                 path_params               │
    │  ───────────────  ──────────────────────  ───────────────────────── │
    │  /status          /status                 {}                        │
    │  /albums/:id      /albums/42              {"id": "42"}              │
    │  /*path           /cats/tabby.jpg         {"path": "cats/tabby.jpg"}│
    │                   /                       {"path": ""}              │
    └─────────────────────────────────────────────────────────────────────┘

The image server registers a single wildcard route, `GET /*path`, so every
request path reaches the image handler. An empty capture (a request for
"/") is left for the handler to reject.

Routes are tried in registration order; the first match wins. A path that
matches some route but not for this method gets 405 with an Allow header.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    path: str                        # URL pattern (e.g. /*path)
    method: Optional[str]            # HTTP method (None = any method)
    handler: Handler
    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Request router.

    Usage:
        router = Router()

        @router.get("/*path")
        def serve(request):
            return images.handle(request)

        response = router.handle(request)
    """

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
    ) -> Route:
        pattern, param_names = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Convert a route pattern to a compiled regex.

            /albums/:id   →  ^/albums/(?P<id>[^/]+)$
            /*path        →  ^/(?P<path>.*)$
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            elif segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break  # wildcard consumes the rest
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")
        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    @staticmethod
    def _normalize(path: str) -> str:
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        path = self._normalize(path)

        for route in self._routes:
            if route.method and route.method != method.upper():
                continue
            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for routes matching this path."""
        path = self._normalize(path)
        methods = set()

        for route in self._routes:
            if route._pattern.match(path):
                if route.method:
                    methods.add(route.method)
                else:
                    return ["GET", "HEAD", "OPTIONS"]

        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        Sets request.path_params from the matched pattern. Returns 405 when
        the path matches under another method, 404 when nothing matches.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found(f"No route matches {request.path}")

    def route(self, path: str, method: Optional[str] = None) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")
