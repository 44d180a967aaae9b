"""
=============================================================================
IMAGE SERVER
=============================================================================

Ties the transport (socket server, thread pool, parser) to the application
(router, middleware, image handler).

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │  ThreadPool  │    │    Router    │        │
    │    └──────┬───────┘    └──────┬───────┘    └──────┬───────┘        │
    │           ▼                   ▼                   ▼                │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │  Connection  │    │  keep-alive  │    │ ImageHandler │        │
    │    │              │    │     loop     │    │  + cache     │        │
    │    └──────────────┘    └──────────────┘    └──────────────┘        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SENDING A RESPONSE
=============================================================================

    buffered   conn.send(head + body)

    streamed   conn.send(head)
               for chunk in stream: conn.send(chunk)
                 client gone   → stop, close the connection
                 read error    → abort the connection (RST); the status
                                 line is already sent, so a 500 is no
                                 longer possible
               stream.close()  (always: releases the file handle)

=============================================================================
"""

import logging
from typing import Optional, Callable

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus,
    Router, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware, CORSMiddleware
from .files import MemoryContentCache, CachePolicy
from .handlers import ImageHandler


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server.

    Usage:
        server = HTTPServer(config)
        server.use(LoggingMiddleware())
        server.get("/*path")(handler)
        server.run()

    Most callers want create_app(), which wires up the image handler.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            max_queue_size=self.config.max_connections,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = Router()
        self._middleware = MiddlewarePipeline()

        # middleware.wrap(router.handle), built in run()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._running = False

        # set by create_app
        self.images: Optional[ImageHandler] = None
        self.cache: Optional[MemoryContentCache] = None

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. The first added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def get(self, path: str):
        """Register a GET route (decorator)."""
        return self._router.get(path)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server. Blocks until shutdown (Ctrl+C, SIGTERM or stop()).
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port

        self._setup_logging()
        self._handler = self._middleware.wrap(self._router.handle)

        self._running = True
        self._thread_pool.start()

        logger.info(f"Starting image server on {self.config.host}:{self.config.port}")
        self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask a running server to shut down. Returns immediately."""
        self._socket_server.shutdown()

    def _print_startup_banner(self):
        print()
        print(f"  {self.config.server_name} running")
        print(f"  Listening on http://{self.config.host}:{self.config.port}")
        print(f"  Serving images from: {self.config.base_dir}")
        print(f"  Workers: {self.config.min_workers}-{self.config.max_workers} threads")
        print("  Press Ctrl+C to stop")
        print()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("imageserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a new connection on the thread pool (accept-loop thread)."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Keep-alive loop for one connection (worker thread).

        read → parse → middleware + router → send → repeat or close
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = conn.state.PROCESSING

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error()

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    if not self._send_response(conn, response):
                        break

                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_response(self, conn: Connection, response: HTTPResponse) -> bool:
        """
        Write a response. Returns False when the connection must not be
        reused (client gone, or aborted mid-stream).
        """
        if not response.is_streamed:
            return conn.send(response.to_bytes(self.config.server_name))

        try:
            if not conn.send(response.head_bytes(self.config.server_name)):
                return False

            for chunk in response.stream:
                if not conn.send(chunk):
                    logger.debug(f"[{conn.id}] Client disconnected mid-stream")
                    return False

        except OSError as e:
            logger.error(
                f"[{conn.id}] Stream failed after {conn.bytes_sent} bytes, aborting: {e}"
            )
            conn.abort()
            return False

        finally:
            response.close()

        return True

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Error response for failures outside the handler (parse, timeout)."""
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())

        conn.send(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build an image server from a configuration.

    Wires the access log, CORS (if enabled), and the image handler on
    `GET /*path` with a content cache sized from the config.

    Example:
        app = create_app(ServerConfig(base_dir="/srv/images"))
        app.run()
    """
    config = config or ServerConfig()
    server = HTTPServer(config)

    server.use(LoggingMiddleware(log_format=config.log_format))
    if config.cors_enabled:
        server.use(CORSMiddleware())

    cache = MemoryContentCache(size_limit=config.cache_size_limit)
    images = ImageHandler(
        config.base_dir,
        cache=cache,
        policy=CachePolicy(max_entry_size=config.max_cacheable_size, ttl=config.cache_ttl),
        client_max_age=config.client_max_age,
        buffer_size=config.stream_buffer_size,
    )
    server.get("/*path")(images.handle)

    server.images = images
    server.cache = cache
    return server
