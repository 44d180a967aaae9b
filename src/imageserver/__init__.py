"""
=============================================================================
IMAGESERVER
=============================================================================

A threaded HTTP/1.1 server for static images.

    GET /cats/tabby.jpg
        → resolve inside the base directory (403 on escape attempts)
        → ETag / Last-Modified, 304 when the client copy is current
        → files up to 5 MiB from a 200 MiB in-memory LRU cache,
          larger files streamed from disk in 64 KiB chunks

Quick start:

    from imageserver import ServerConfig, create_app

    app = create_app(ServerConfig(base_dir="/srv/images", port=8080))
    app.run()

Or from a shell:

    python -m imageserver --base-dir /srv/images

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, create_app

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
