"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
import time
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from relayhttp import App, HTTPServer, ServerConfig
from relayhttp.http import HTTPStatus


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /hello?name=Amelia HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "Amelia", "email": "amelia@example.com"}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def sink() -> io.BytesIO:
    """In-memory stand-in for a client connection."""
    return io.BytesIO()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes, half-close, and read the response until EOF."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        s.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self.server.bind()
        self._thread = threading.Thread(target=self.server.serve, daemon=True)
        self._thread.start()

        # Wait for the accept loop to be running
        for _ in range(50):  # 5 seconds max
            if self.server.is_running:
                return
            time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def request(self, data: bytes) -> bytes:
        return send_raw(self.port, data)

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server() -> Generator[TestServer, None, None]:
    """Create a test server on an OS-assigned port."""
    app = App()

    @app.get("/")
    def index(ctx):
        return ctx.string("Hello, world!")

    @app.get("/hello")
    def hello(ctx):
        return ctx.string(f"Hello, {ctx.query('name', 'world')}!")

    @app.get("/boom")
    def boom(ctx):
        raise RuntimeError("handler exploded")

    @app.status_handler(HTTPStatus.NOT_FOUND)
    def not_found(ctx):
        return ctx.string("nothing here")

    server = HTTPServer(
        ServerConfig(host="127.0.0.1", port=0, workers=2, timeout=5.0, log_level="WARNING"),
        app=app,
    )

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def serve_app():
    """Factory: serve a given App on an OS-assigned port for one test."""
    started = []

    def start(app: App, **config) -> TestServer:
        options = dict(host="127.0.0.1", port=0, workers=2, timeout=5.0, log_level="WARNING")
        options.update(config)
        test_srv = TestServer(HTTPServer(ServerConfig(**options), app=app))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()
