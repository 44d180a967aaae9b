"""
=============================================================================
CONTENT DELIVERY
=============================================================================

Decides how an image's bytes reach the client, based on its size.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     size <= max_entry_size (5 MiB)?                 │
    │                        │                       │                    │
    │                       yes                      no                   │
    │                        ▼                       ▼                    │
    │              cache.get(key)            open file (read only)        │
    │               │          │             Content-Length = st_size     │
    │              hit        miss           stream 64 KiB chunks         │
    │               │          │             cache never touched          │
    │               │     read whole file                                 │
    │               │     cache.put(key)                                  │
    │               ▼          ▼                                          │
    │          body bytes, Content-Length = len(bytes)                    │
    └─────────────────────────────────────────────────────────────────────┘

Both branches fix Content-Length before any body byte is written.

Failures that happen here (file vanished between stat and open, read
error) are returned as ServeError.IO_FAILURE: nothing has been sent yet,
so the handler can still answer 500. Failures while a stream is being
copied happen after the head is on the wire; FileStream raises OSError and
the server aborts the connection.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from .cache import ContentCache, CachePolicy
from .errors import ServeError
from .validators import ResolvedFile


logger = logging.getLogger(__name__)


class FileStream:
    """
    Iterates over exactly `length` bytes of an open file in chunks.

    Never yields more than the declared length, even if the file grew
    after it was stat'ed. Raises OSError if the file is shorter than
    declared, since the promised Content-Length can no longer be honoured.
    The file is closed when iteration ends or close() is called.
    """

    def __init__(self, file: BinaryIO, length: int, buffer_size: int = 64 * 1024):
        self._file = file
        self.length = length
        self.buffer_size = buffer_size
        self.bytes_read = 0

    def __iter__(self) -> Iterator[bytes]:
        try:
            while self.bytes_read < self.length:
                chunk = self._file.read(min(self.buffer_size, self.length - self.bytes_read))
                if not chunk:
                    raise OSError(
                        f"{getattr(self._file, 'name', 'file')} ended after "
                        f"{self.bytes_read} of {self.length} bytes"
                    )
                self.bytes_read += len(chunk)
                yield chunk
        finally:
            self.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


@dataclass
class Delivery:
    """
    Result of ContentDelivery.deliver.

    Exactly one of `body` (buffered), `stream` (large file) or `error` is
    meaningful.
    """

    content_length: int = 0
    body: bytes = b""
    stream: Optional[FileStream] = None
    cache_hit: bool = False
    error: Optional[ServeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ContentDelivery:
    """
    Serves file contents from the memory cache or from disk.

    Args:
        cache: Store for small files.
        policy: Cacheable-size threshold, key derivation and TTL.
        buffer_size: Chunk size for streamed files.
    """

    def __init__(
        self,
        cache: ContentCache,
        policy: Optional[CachePolicy] = None,
        buffer_size: int = 64 * 1024,
    ):
        self.cache = cache
        self.policy = policy or CachePolicy()
        self.buffer_size = buffer_size

    def deliver(self, resolved: ResolvedFile, cache_key: Optional[str] = None) -> Delivery:
        """Pick the cached or streamed path for this file."""
        if self.policy.is_cacheable(resolved):
            return self._deliver_small(resolved, cache_key or self.policy.key_for(resolved))
        return self._deliver_large(resolved)

    def _deliver_small(self, resolved: ResolvedFile, key: str) -> Delivery:
        data = self.cache.get(key)
        if data is not None:
            return Delivery(content_length=len(data), body=data, cache_hit=True)

        try:
            data = resolved.path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {resolved.path}: {e}")
            return Delivery(error=ServeError.IO_FAILURE)

        try:
            self.cache.put(key, data, self.policy.ttl)
        except Exception as e:
            # The bytes are already in hand; a broken cache only costs a re-read
            logger.warning(f"Failed to cache {resolved.path}: {e}")

        return Delivery(content_length=len(data), body=data)

    def _deliver_large(self, resolved: ResolvedFile) -> Delivery:
        try:
            file = open(resolved.path, "rb")
        except OSError as e:
            logger.error(f"Failed to open {resolved.path}: {e}")
            return Delivery(error=ServeError.IO_FAILURE)

        return Delivery(
            content_length=resolved.size,
            stream=FileStream(file, resolved.size, self.buffer_size),
        )
