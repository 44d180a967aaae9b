"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted TCP socket: reads whole requests off it, writes
responses (in one piece or chunk by chunk), and closes it either politely
or abruptly.

=============================================================================
READING A REQUEST
=============================================================================

    1. recv() until "\\r\\n\\r\\n" (end of headers) is buffered
    2. read Content-Length from the headers (0 for a plain GET)
    3. recv() until that many body bytes follow
    4. anything beyond belongs to the next pipelined request; keep it

=============================================================================
ENDING A CONNECTION
=============================================================================

    close()  graceful: shutdown(SHUT_WR), drain what the client still
             sends, then close. The client sees a clean EOF.

    abort()  abrupt: SO_LINGER 0 then close, which sends RST. Used when a
             streamed image fails half way: the Content-Length already on
             the wire can no longer be honoured, and a reset tells the
             client the body is incomplete instead of letting it wait.

=============================================================================
"""

import socket
import struct
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes."""


class ConnectionState(Enum):
    NEW = "new"                # Just accepted
    READING = "reading"        # Reading request data
    PROCESSING = "processing"  # Handler is executing
    WRITING = "writing"        # Response head and/or body being sent
    KEEP_ALIVE = "keep_alive"  # Waiting for the next request
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: (ip, port) of the client.
        id: Short identifier used in log lines.
        requests_handled: Requests read on this connection so far.
        bytes_sent: Bytes written on this connection so far.
    """

    socket: socket.socket
    address: tuple[str, int]
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0
    bytes_sent: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0         # first request, and every send
    keep_alive_timeout: float = 5.0         # wait for subsequent requests
    max_request_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            The raw request bytes, or None if the client closed the
            connection or a keep-alive wait timed out.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                if len(self._buffer) > self.max_request_size:
                    raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                if len(self._buffer) > self.max_request_size:
                    raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        for line in headers.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Write bytes to the client.

        Used for whole responses as well as the head and each chunk of a
        streamed one. Returns False if the client has gone away; the
        caller should stop writing and drop the connection.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        self.last_activity = time.time()
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """Close gracefully. Safe to call more than once."""
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        self._release()
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def abort(self):
        """Close with a TCP reset so the client knows the response is incomplete."""
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.setsockopt(
                socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0)
            )
        except OSError:
            pass

        self._release()
        logger.debug(f"[{self.id}] Connection aborted after {self.bytes_sent} bytes")

    def _release(self):
        try:
            self.socket.close()
        except OSError:
            pass
        self.state = ConnectionState.CLOSED

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
