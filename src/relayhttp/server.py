"""
=============================================================================
HTTP SERVER
=============================================================================

Ties everything together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ── accept ──► WorkerPool.submit(_process_connection) │
    │                                   │            │                     │
    │                                   │ full       ▼                     │
    │                                   ▼       read_request()             │
    │                          503 + close           │                     │
    │                                                ▼                     │
    │                                   parse_request() ── ParseError ──► 400
    │                                                │   (status table)    │
    │                                                │                     │
    │                                                ▼                     │
    │                                   Dispatcher.dispatch(request, conn) │
    │                                                │                     │
    │                                     exception before any write ──► 500
    │                                                │                     │
    │                                                ▼                     │
    │                                             close                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One request per connection. Every failure is contained in the worker that
handles that connection: the accept loop and the other workers never see
it.

=============================================================================
USAGE
=============================================================================

    server = HTTPServer()

    @server.get("/hello")
    def hello(ctx):
        return ctx.string(f"Hello, {ctx.query('name', 'world')}!")

    server.access_log()            # LoggingMiddleware in config.log_format
    server.run()

=============================================================================
"""

from typing import Optional, Tuple
import logging

from .app import App, Dispatcher
from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, WorkerPool
from .errors import ConnectionFailedError, ParseError
from .http import HTTPStatus, Method, Response, parse_request
from .middleware.logging import LoggingMiddleware


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    HTTP/1.1 server around an App.

    Registration methods delegate to the App. The App is frozen when the
    server starts serving, so registering afterwards raises FrozenError.
    """

    def __init__(self, config: Optional[ServerConfig] = None, app: Optional[App] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.app = app or App()
        self._socket_server = SocketServer(self.config)
        self._pool = WorkerPool(workers=self.config.workers, queue_size=self.config.queue_size)
        self._dispatcher: Optional[Dispatcher] = None

    # =========================================================================
    # REGISTRATION (delegates to App)
    # =========================================================================

    def route(self, method: Method, pattern: str):
        return self.app.route(method, pattern)

    def get(self, pattern: str):
        return self.app.get(pattern)

    def post(self, pattern: str):
        return self.app.post(pattern)

    def status_handler(self, status: HTTPStatus):
        return self.app.status_handler(status)

    def use(self, *middleware) -> "HTTPServer":
        self.app.use(*middleware)
        return self

    def access_log(self) -> "HTTPServer":
        """
        Add request logging in the configured config.log_format.

        Call it before use() so the log sees each request as the client
        sent it.
        """
        return self.use(LoggingMiddleware(log_format=self.config.log_format))

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def bind(self) -> Tuple[str, int]:
        """Bind the listening socket early, e.g. to learn an OS-assigned port."""
        return self._socket_server.bind()

    def run(self) -> None:
        """Configure logging, print the banner and serve until stopped."""
        self._setup_logging()
        self.bind()
        self._print_startup_banner()
        self.serve()

    def serve(self) -> None:
        """
        Freeze the app and run the accept loop (blocking).

        Does not touch logging configuration, so it is what tests call from
        a background thread.
        """
        self._dispatcher = self.app.freeze()
        self._log_routes()
        self._pool.start()
        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Stop accepting connections. serve() returns once workers finish."""
        self._socket_server.shutdown()

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self._pool.shutdown(wait=True)
        logger.info("Server stopped")

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("relayhttp").setLevel(level)

    def _print_startup_banner(self) -> None:
        host, port = self.address
        print()
        print("╔══════════════════════════════════════════════════════════════╗")
        print(f"  {self.config.server_name} running")
        print(f"  http://{host}:{port}")
        print(f"  Workers: {self.config.workers} (queue {self.config.queue_size})")
        print("  Press Ctrl+C to stop")
        print("╚══════════════════════════════════════════════════════════════╝")
        print()

    def _log_routes(self) -> None:
        for route in self._dispatcher.routes:
            logger.info(f"Route {str(route.method):<4} {route.pattern}")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Called by the accept loop. Hands the connection to a worker."""
        if not self._pool.submit(self._process_connection, conn):
            logger.warning(f"[{conn.id}] Worker queue full, rejecting connection")
            with conn:
                self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)

    def _process_connection(self, conn: Connection) -> None:
        """Read, parse, dispatch and close one connection (worker thread)."""
        with conn:
            try:
                raw_request = conn.read_request()
            except ConnectionFailedError as e:
                logger.warning(f"{e}")
                return

            if raw_request is None:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            try:
                request = parse_request(raw_request)
            except ParseError as e:
                logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e.reason}")
                self._reject(conn, HTTPStatus(e.status_code))
                return

            try:
                self._dispatcher.dispatch(request, conn)
            except Exception as e:
                logger.exception(
                    f"[{conn.id}] Error handling {request.method} {request.target}: {e}"
                )
                # Only answer if no response bytes were attempted yet
                if conn.state is not ConnectionState.WRITING:
                    self._send_error(conn, HTTPStatus.INTERNAL_SERVER_ERROR)

    def _reject(self, conn: Connection, status: HTTPStatus) -> None:
        """
        Answer an unparseable request through the app's status table, so a
        handler registered for 400 shapes the response. A failing status
        handler falls back to the bare status response.
        """
        try:
            self._dispatcher.respond(status, conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Status handler for {str(status)} failed: {e}")
            if conn.state is not ConnectionState.WRITING:
                self._send_error(conn, status)

    def _send_error(self, conn: Connection, status: HTTPStatus) -> None:
        """Write a bare status response whose body is the status text."""
        response = Response(status=status, body=str(status))
        try:
            conn.write(response.to_bytes())
        except ConnectionFailedError as e:
            logger.debug(f"Could not send {str(status)}: {e}")
