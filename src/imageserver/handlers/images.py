"""
=============================================================================
IMAGE HANDLER
=============================================================================

Serves image files from the base directory. Registered on `GET /*path`.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. RECEIVE PATH      path_params["path"]      empty    → 400       │
    │  2. VALIDATE          PathResolver             escapes  → 403       │
    │  3. CHECK EXISTENCE   ResolvedFile.stat        missing  → 404       │
    │  4. VALIDATORS        Content-Type, ETag, Last-Modified,            │
    │                       Cache-Control            matches  → 304       │
    │  5. DELIVER           ContentDelivery          read err → 500       │
    │                                                otherwise → 200      │
    └─────────────────────────────────────────────────────────────────────┘

Anything unexpected raised in steps 3-5 is logged and answered with 500.
Errors while a large file is already streaming are the server's concern:
the head has been sent, so it can only abort the connection.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, error_response, internal_error
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_mime_type
from ..files.cache import ContentCache, MemoryContentCache, CachePolicy
from ..files.delivery import ContentDelivery
from ..files.errors import ServeError
from ..files.resolver import PathResolver
from ..files.validators import ResolvedFile, evaluate


logger = logging.getLogger(__name__)


class ImageHandler:
    """
    Image file handler.

    Usage:
        images = ImageHandler("/srv/images")
        server.get("/*path")(images.handle)

    Args:
        base_dir: Directory to serve; created if missing.
        cache: Content cache for small files. A private
            MemoryContentCache of 200 MiB is used if not given.
        policy: Cacheable-size threshold and cache TTL.
        client_max_age: max-age sent in Cache-Control.
        buffer_size: Chunk size for streamed files.
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        cache: Optional[ContentCache] = None,
        policy: Optional[CachePolicy] = None,
        client_max_age: int = 86400,
        buffer_size: int = 64 * 1024,
    ):
        base = Path(base_dir)
        base.mkdir(parents=True, exist_ok=True)

        self.resolver = PathResolver(base)
        self.base_dir = self.resolver.base_dir
        self.client_max_age = client_max_age
        self.delivery = ContentDelivery(
            cache if cache is not None else MemoryContentCache(),
            policy,
            buffer_size,
        )

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        # ─────────────────────────────────────────────────────────────────
        # RECEIVE PATH + VALIDATE
        # ─────────────────────────────────────────────────────────────────
        raw_path = request.path_params.get("path", "").lstrip("/")

        resolution = self.resolver.resolve(raw_path)
        if not resolution.ok:
            return self._error(resolution.error)

        try:
            return self._serve(resolution.path, request)
        except Exception as e:
            logger.exception(f"Error serving {resolution.path}: {e}")
            return internal_error()

    def _serve(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        # ─────────────────────────────────────────────────────────────────
        # CHECK EXISTENCE
        # ─────────────────────────────────────────────────────────────────
        resolved = ResolvedFile.stat(path)
        if resolved is None:
            return self._error(ServeError.NOT_FOUND)

        # ─────────────────────────────────────────────────────────────────
        # VALIDATORS / CONDITIONAL REQUEST
        # ─────────────────────────────────────────────────────────────────
        validators = evaluate(resolved, request.get_header("If-None-Match"))

        builder = (ResponseBuilder()
            .content_type(get_mime_type(resolved.path))
            .header("ETag", validators.etag)
            .header("Last-Modified", validators.last_modified)
            .cache(self.client_max_age))

        if validators.not_modified:
            return builder.status(HTTPStatus.NOT_MODIFIED).build()

        # ─────────────────────────────────────────────────────────────────
        # DELIVER
        # ─────────────────────────────────────────────────────────────────
        delivery = self.delivery.deliver(resolved)
        if not delivery.ok:
            return self._error(delivery.error)

        if delivery.stream is not None:
            builder.stream(delivery.stream, delivery.content_length)
        else:
            builder.body(delivery.body)

        return builder.status(HTTPStatus.OK).build()

    @staticmethod
    def _error(error: ServeError) -> HTTPResponse:
        return error_response(error.status, error.message)
