"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the image server.

=============================================================================
CONFIGURATION GROUPS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE SETTINGS COME FROM                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m imageserver --base-dir /srv/images              │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── IMAGESERVER_PORT=9000 python -m imageserver               │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The transport settings (host, port, workers, timeouts) size the socket
server and thread pool. The image settings (base directory, cache limits,
client max-age, streaming buffer) are handed to the image handler, the
content cache and the delivery component at startup.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional


MIB = 1024 * 1024
KIB = 1024


@dataclass
class ServerConfig:
    """
    Configuration for the image server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers, max_connections

    IMAGE SERVING
    - base_dir, cache_size_limit, max_cacheable_size, cache_ttl,
      client_max_age, stream_buffer_size, cors_enabled

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 23564
    """The port number to listen on."""

    backlog: int = 128
    """
    Maximum number of queued connections in the kernel accept queue.
    """

    buffer_size: int = 8192
    """Size of the receive buffer in bytes."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds.
    Also bounds how long a single chunk write may block on a slow client.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Enable HTTP keep-alive connections."""

    keep_alive_timeout: float = 5.0
    """Idle time in seconds before a keep-alive connection is closed."""

    max_request_size: int = 64 * KIB
    """
    Maximum allowed request size in bytes.
    Only GET requests are served, so anything larger is rejected with 413.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 8
    """Worker threads created at startup."""

    max_workers: int = 100
    """
    Upper bound on worker threads.
    Every in-flight transfer occupies one worker while it blocks on disk
    or socket I/O, so this is the number of concurrent transfers.
    """

    max_connections: int = 1000
    """
    Connections allowed to wait for a worker.
    When this queue is full new connections get 503 Service Unavailable.
    """

    # ─────────────────────────────────────────────────────────────────────
    # IMAGE SERVING
    # ─────────────────────────────────────────────────────────────────────

    base_dir: str = field(default_factory=os.getcwd)
    """
    Directory images are served from.
    Created on startup if it does not exist. No request may escape it.
    """

    cache_size_limit: int = 200 * MIB
    """Total bytes the in-memory content cache may hold."""

    max_cacheable_size: int = 5 * MIB
    """
    Files up to this size are served from the memory cache.
    Larger files are always streamed from disk.
    """

    cache_ttl: float = 30 * 60.0
    """Seconds a cached file stays valid (absolute expiration)."""

    client_max_age: int = 86400
    """max-age sent to clients in the Cache-Control header."""

    stream_buffer_size: int = 64 * KIB
    """Chunk size used when streaming large files."""

    cors_enabled: bool = True
    """Allow cross-origin requests from any origin."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'json' or 'text'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "ImageServer/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        IMAGESERVER_HOST             Bind address (default: 0.0.0.0)
        IMAGESERVER_PORT             Listen port (default: 23564)
        IMAGESERVER_WORKERS          Max worker threads (default: 100)
        IMAGESERVER_MAX_CONNECTIONS  Pending connection queue (default: 1000)
        IMAGESERVER_TIMEOUT          Socket timeout in seconds (default: 30)
        IMAGESERVER_BASE_DIR         Image directory (default: cwd)
        IMAGESERVER_CACHE_SIZE       Cache limit in bytes (default: 200 MiB)
        IMAGESERVER_CACHEABLE_SIZE   Largest cached file (default: 5 MiB)
        IMAGESERVER_CACHE_TTL        Cache TTL in seconds (default: 1800)
        IMAGESERVER_MAX_AGE          Client max-age (default: 86400)
        IMAGESERVER_STREAM_BUFFER    Streaming chunk size (default: 64 KiB)
        IMAGESERVER_CORS             "0"/"false" disables CORS
        IMAGESERVER_LOG_LEVEL        Logging level (default: INFO)

        =====================================================================
        """
        defaults = cls()
        env = os.environ
        max_workers = int(env.get("IMAGESERVER_WORKERS", defaults.max_workers))
        return cls(
            host=env.get("IMAGESERVER_HOST", defaults.host),
            port=int(env.get("IMAGESERVER_PORT", defaults.port)),
            min_workers=min(defaults.min_workers, max_workers),
            max_workers=max_workers,
            max_connections=int(
                env.get("IMAGESERVER_MAX_CONNECTIONS", defaults.max_connections)
            ),
            timeout=float(env.get("IMAGESERVER_TIMEOUT", defaults.timeout)),
            base_dir=env.get("IMAGESERVER_BASE_DIR", defaults.base_dir),
            cache_size_limit=int(
                env.get("IMAGESERVER_CACHE_SIZE", defaults.cache_size_limit)
            ),
            max_cacheable_size=int(
                env.get("IMAGESERVER_CACHEABLE_SIZE", defaults.max_cacheable_size)
            ),
            cache_ttl=float(env.get("IMAGESERVER_CACHE_TTL", defaults.cache_ttl)),
            client_max_age=int(env.get("IMAGESERVER_MAX_AGE", defaults.client_max_age)),
            stream_buffer_size=int(
                env.get("IMAGESERVER_STREAM_BUFFER", defaults.stream_buffer_size)
            ),
            cors_enabled=_parse_bool(env.get("IMAGESERVER_CORS"), defaults.cors_enabled),
            log_level=env.get("IMAGESERVER_LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails immediately instead of
        on the first request that depends on it.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.cache_size_limit < 0:
            raise ValueError("cache_size_limit must be >= 0")

        if self.max_cacheable_size < 0:
            raise ValueError("max_cacheable_size must be >= 0")

        if self.max_cacheable_size > self.cache_size_limit:
            raise ValueError("max_cacheable_size must not exceed cache_size_limit")

        if self.cache_ttl <= 0:
            raise ValueError("cache_ttl must be > 0")

        if self.client_max_age < 0:
            raise ValueError("client_max_age must be >= 0")

        if self.stream_buffer_size < 1:
            raise ValueError("stream_buffer_size must be >= 1")


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off", "")
