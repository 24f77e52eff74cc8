"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket. Every connection carries exactly one request:

    IDLE ──► READING ──► PROCESSING ──► WRITING ──► CLOSED
               │                                      ▲
               └── client sent nothing / read failed ─┘

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever bytes have arrived, not whole messages:

    Client sends:   "GET /amelia HTTP/1.1\r\nHost: x\r\n\r\n"

    Server may see: recv() → "GET /ame"
                    recv() → "lia HTTP/1.1\r\nHost: x\r\n\r\n"

So read_request() keeps reading into one bounded buffer and stops at the
first of:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. the end of the headers (\r\n\r\n) has arrived                  │
    │  2. buffer_size bytes have arrived                                  │
    │  3. the client stopped sending (EOF)                                │
    └─────────────────────────────────────────────────────────────────────┘

There is no Content-Length framing: anything that arrived after the blank
line in that read is the body.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging
import socket
import time
import uuid

from ..errors import ConnectionFailedError


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    """Connection lifecycle states."""

    IDLE = "idle"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One client connection.

    Used as a context manager so the socket is always released:

        with Connection(client_socket, address, buffer_size=2048) as conn:
            data = conn.read_request()
            conn.write(response_bytes)

    Connection has a write(bytes) method, so it is the sink a Context
    writes its response to.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.IDLE
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 2048
    timeout: Optional[float] = 30.0

    bytes_sent: int = field(default=0, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else "-"

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one request's worth of bytes from the socket.

        Returns:
            The bytes read (at most buffer_size), or None if the client
            closed the connection without sending anything.

        Raises:
            ConnectionFailedError: If the read timed out or the socket
                reported an error.
        """
        self.state = ConnectionState.READING
        buffer = b""

        try:
            while len(buffer) < self.buffer_size:
                chunk = self.socket.recv(self.buffer_size - len(buffer))
                if not chunk:
                    break  # EOF
                buffer += chunk
                if HEADER_TERMINATOR in buffer:
                    break
        except socket.timeout as e:
            raise ConnectionFailedError(
                f"[{self.id}] timed out reading request", self.address
            ) from e
        except OSError as e:
            raise ConnectionFailedError(
                f"[{self.id}] failed to read request: {e}", self.address
            ) from e

        if not buffer:
            return None

        self.state = ConnectionState.PROCESSING
        logger.debug(f"[{self.id}] Read {len(buffer)} bytes from {self.client_ip}")
        return buffer

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> None:
        """
        Send all of `data` to the client.

        Raises:
            ConnectionFailedError: If the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise ConnectionFailedError(
                f"[{self.id}] failed to send response: {e}", self.address
            ) from e
        self.bytes_sent += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection.

        shutdown(SHUT_WR) sends FIN first, which is how the client learns
        the response body has ended. Errors here mean the client is already
        gone, so they are only logged.
        """
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError as e:
            logger.debug(f"[{self.id}] shutdown failed: {e}")

        try:
            self.socket.close()
        except OSError as e:
            logger.debug(f"[{self.id}] close failed: {e}")

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed ({self.bytes_sent} bytes sent)")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
