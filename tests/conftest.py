"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from imageserver import HTTPServer, ServerConfig, create_app


# Minimal valid PNG header + padding; content only matters byte-for-byte
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 40      # 10248 bytes
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x42" * 2044                # 2048 bytes


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for an image."""
    return (
        b"GET /gallery/cat%20photo.jpg?size=large HTTP/1.1\r\n"
        b"Host: localhost:23564\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: image/*\r\n"
        b'If-None-Match: "1A2B-800"\r\n'
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    """
    A base directory with a few images:

        images/
        ├── logo.png            10 KB
        ├── photo.JPG           2 KB
        ├── notes.txt
        └── gallery/
            └── cat photo.jpg   2 KB
    """
    base = tmp_path / "images"
    (base / "gallery").mkdir(parents=True)
    (base / "logo.png").write_bytes(PNG_BYTES)
    (base / "photo.JPG").write_bytes(JPEG_BYTES)
    (base / "notes.txt").write_text("not an image")
    (base / "gallery" / "cat photo.jpg").write_bytes(JPEG_BYTES)
    return base


@pytest.fixture
def secret_file(tmp_path: Path) -> Path:
    """A file next to (outside of) the image directory."""
    path = tmp_path / "secret.txt"
    path.write_text("top secret")
    return path


@pytest.fixture
def config(image_dir: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=23564,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        base_dir=str(image_dir),
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": self.port},
            daemon=True
        )
        self._thread.start()

        # Wait for server to be ready
        for _ in range(50):  # 5 seconds max
            try:
                with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                    s.connect(('127.0.0.1', self.port))
                    return
            except ConnectionRefusedError:
                time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def image_server(config: ServerConfig, free_port: int) -> Generator[TestServer, None, None]:
    """A running image server on a free port, serving image_dir."""
    config.port = free_port
    config.keep_alive_timeout = 1.0
    config.max_cacheable_size = 16 * 1024   # logo.png cached, big files streamed
    config.stream_buffer_size = 4096

    test_srv = TestServer(create_app(config), free_port)
    test_srv.start()

    yield test_srv

    test_srv.stop()
