"""
Networking core: accepting sockets, reading one request per connection and
running connection handlers on a fixed worker pool.
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .worker_pool import WorkerPool

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "WorkerPool",
]
