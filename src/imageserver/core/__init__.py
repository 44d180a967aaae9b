"""
Transport core: listening socket, client connections and worker threads.
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # accepts TCP connections
    "Connection",       # one client socket: request in, response out
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",       # worker threads, one task per connection
]
