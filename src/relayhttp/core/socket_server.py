"""
=============================================================================
TCP ACCEPT LOOP
=============================================================================

The low-level server: owns the listening socket, accepts clients and hands
each one, wrapped in a Connection, to a callback.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket() → setsockopt(SO_REUSEADDR) → bind() → listen()           │
    │                                                 │                    │
    │                                                 ▼                    │
    │                      ┌──────────────── accept() ◄─────────┐          │
    │                      │  (1s timeout so stop() is seen)    │          │
    │                      ▼                                    │          │
    │              on_connection(conn) ─────────────────────────┘          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A failure while accepting or handing off one client is logged and the loop
keeps going. Only shutdown() (or SIGINT / SIGTERM when serving from the
main thread) ends it.

=============================================================================
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Tuple
import logging
import signal
import socket
import threading

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_TIMEOUT = 1.0

ConnectionCallback = Callable[[Connection], None]


class SocketServer:
    """
    Listening socket plus accept loop.

        listener = SocketServer(config)
        listener.bind()                # optional, start() binds if needed
        listener.start(on_connection)  # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._stop = threading.Event()
        self._serving = False

    @property
    def is_running(self) -> bool:
        return self._serving and not self._stop.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """
        Bound (host, port). Once bound this is the real port, which is
        what a configured port of 0 resolves to.
        """
        if self._listener is None:
            return (self.config.host, self.config.port)
        host, port = self._listener.getsockname()[:2]
        return (host, port)

    def bind(self) -> Tuple[str, int]:
        """Create the listening socket. Safe to call more than once."""
        if self._listener is not None:
            return self.address

        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Rebind right after a restart instead of waiting out TIME_WAIT
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        listener.settimeout(ACCEPT_TIMEOUT)

        endpoint = (self.config.host, self.config.port)
        try:
            listener.bind(endpoint)
            listener.listen(self.config.backlog)
        except OSError as e:
            listener.close()
            logger.error(f"Cannot listen on {endpoint[0]}:{endpoint[1]}: {e}")
            raise

        self._listener = listener
        return self.address

    def start(self, on_connection: ConnectionCallback) -> None:
        """Bind if needed, then accept connections until shutdown()."""
        self.bind()
        self._stop.clear()
        self._serving = True

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

        try:
            with self._stop_on_signals():
                self._serve(on_connection)
        finally:
            self._serving = False
            self._close_listener()

    def shutdown(self) -> None:
        """Ask the accept loop to stop. Returns immediately."""
        if not self._stop.is_set():
            logger.info("Stopping accept loop...")
        self._stop.set()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _serve(self, on_connection: ConnectionCallback) -> None:
        while not self._stop.is_set():
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._stop.is_set():
                    break
                logger.error(f"accept() failed: {e}")
                continue

            logger.debug(f"Accepted {peer[0]}:{peer[1]}")
            try:
                on_connection(Connection(
                    socket=client,
                    address=peer,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                ))
            except Exception:
                logger.exception(f"Dropping connection from {peer[0]}: hand-off failed")
                client.close()

    @contextmanager
    def _stop_on_signals(self) -> Iterator[None]:
        """Route SIGINT / SIGTERM to shutdown() while serving."""
        # signal.signal() is only allowed in the main thread
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        previous = {
            sig: signal.signal(sig, on_signal)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def _close_listener(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener.close()
        except OSError as e:
            logger.debug(f"Closing listening socket failed: {e}")
        self._listener = None
        logger.info("Accept loop stopped")
